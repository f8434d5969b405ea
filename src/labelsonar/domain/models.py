"""Core domain models for LabelSonar."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import numpy as np
import numpy.typing as npt


FloatArray = npt.NDArray[np.float64]


class FeatureFamily(StrEnum):
    """Feature vector layouts; each family carries its own match threshold."""

    DELTA_RATIO = "delta_ratio"
    RAW_BANDS = "raw_bands"


class DegenerateInput(StrEnum):
    """Diagnostic flags for captures whose similarity scores are low-confidence."""

    EMPTY_BUFFER = "empty_buffer"
    SHORT_BUFFER = "short_buffer"
    SILENT_BUFFER = "silent_buffer"
    ZERO_ENERGY_SEGMENT = "zero_energy_segment"
    UNMAPPED_BAND = "unmapped_band"


@dataclass(frozen=True, slots=True)
class SampleBuffer:
    """Raw mono capture: read-only float64 samples plus their sample rate."""

    samples: FloatArray
    sampling_rate_hz: int

    def __post_init__(self) -> None:
        if self.sampling_rate_hz <= 0:
            raise ValueError("sampling_rate_hz must be > 0")
        if not isinstance(self.samples, np.ndarray) or self.samples.dtype != np.float64:
            raise ValueError("samples must be a float64 numpy array; use SampleBuffer.from_samples")
        if self.samples.ndim != 1:
            raise ValueError("samples must be 1D")
        if not np.all(np.isfinite(self.samples)):
            raise ValueError("samples must contain only finite values")
        if self.samples.flags.writeable:
            frozen = self.samples.copy()
            frozen.setflags(write=False)
            object.__setattr__(self, "samples", frozen)

    @classmethod
    def from_samples(cls, samples: npt.ArrayLike, sampling_rate_hz: int) -> SampleBuffer:
        """Build a buffer from any float sequence (f32 or f64)."""
        return cls(
            samples=np.array(samples, dtype=np.float64, copy=True),
            sampling_rate_hz=int(sampling_rate_hz),
        )

    @property
    def num_samples(self) -> int:
        return int(self.samples.size)

    @property
    def duration_s(self) -> float:
        return self.num_samples / float(self.sampling_rate_hz)
