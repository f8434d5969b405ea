"""In-memory single-slot store for the reference feature vector."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from labelsonar.domain.models import FloatArray
from labelsonar.features.contracts import FingerprintConfig


class BaselineStore:
    """Holds zero or one baseline vector; not thread-safe, serialize access externally.

    The configuration the vector was built with is kept alongside it so a probe
    built under a different configuration can be refused even at equal length.
    """

    def __init__(self) -> None:
        self._vector: FloatArray | None = None
        self._config: FingerprintConfig | None = None

    @property
    def has_baseline(self) -> bool:
        return self._vector is not None

    @property
    def config(self) -> FingerprintConfig | None:
        """Configuration of the stored baseline, when the caller supplied one."""
        return self._config

    def save(self, vector: npt.ArrayLike, *, config: FingerprintConfig | None = None) -> FloatArray:
        """Store a read-only copy, replacing any previous baseline."""
        stored = np.array(vector, dtype=np.float64, copy=True)
        if stored.ndim != 1:
            raise ValueError("baseline vector must be 1D")
        if stored.size == 0:
            raise ValueError("baseline vector must not be empty")
        if not np.all(np.isfinite(stored)):
            raise ValueError("baseline vector must contain only finite values")
        if config is not None and stored.size != config.feature_length:
            raise ValueError(
                f"baseline vector length {stored.size} does not match config feature_length "
                f"{config.feature_length}"
            )
        stored.setflags(write=False)
        self._vector = stored
        self._config = config
        return stored

    def read(self) -> FloatArray | None:
        return self._vector

    def clear(self) -> None:
        self._vector = None
        self._config = None
