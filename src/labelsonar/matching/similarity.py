"""Cosine similarity scoring with a fixed per-family decision threshold."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from labelsonar.domain.models import FloatArray
from labelsonar.features.contracts import EPSILON


class ConfigurationMismatchError(ValueError):
    """Two feature vectors came from incompatible fingerprint configurations."""

    def __init__(self, baseline_length: int, probe_length: int) -> None:
        super().__init__(
            f"feature vector length mismatch: baseline={baseline_length}, probe={probe_length}; "
            "baseline and probe must be captured with the same configuration"
        )
        self.baseline_length = baseline_length
        self.probe_length = probe_length


@dataclass(frozen=True, slots=True)
class SimilarityResult:
    """Score of one comparison and the decision taken at `threshold`."""

    score: float
    threshold: float
    is_match: bool


def cosine_similarity(a: npt.ArrayLike | None, b: npt.ArrayLike | None) -> float:
    """Cosine similarity; 0.0 when either vector is absent or the lengths differ.

    That 0.0 means "no meaningful comparison", not low similarity. Use
    `score_similarity` where a mismatch must be reported.
    """
    if a is None or b is None:
        return 0.0
    x = _as_vector(a, name="a")
    y = _as_vector(b, name="b")
    if x.size != y.size:
        return 0.0
    return _cosine(x, y)


def score_similarity(
    baseline: npt.ArrayLike,
    probe: npt.ArrayLike,
    *,
    threshold: float,
) -> SimilarityResult:
    """Score two same-length vectors; a match requires `score > threshold`."""
    x = _as_vector(baseline, name="baseline")
    y = _as_vector(probe, name="probe")
    if x.size != y.size:
        raise ConfigurationMismatchError(x.size, y.size)

    score = _cosine(x, y)
    return SimilarityResult(score=score, threshold=float(threshold), is_match=score > threshold)


def _cosine(x: FloatArray, y: FloatArray) -> float:
    dot = 0.0
    norm_x = 0.0
    norm_y = 0.0
    for xi, yi in zip(x.tolist(), y.tolist()):
        dot += xi * yi
        norm_x += xi * xi
        norm_y += yi * yi
    return float(dot / (np.sqrt(norm_x) * np.sqrt(norm_y) + EPSILON))


def _as_vector(values: npt.ArrayLike, *, name: str) -> FloatArray:
    x = np.asarray(values, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError(f"{name} must be 1D")
    if not np.all(np.isfinite(x)):
        raise ValueError(f"{name} must contain only finite values")
    return x
