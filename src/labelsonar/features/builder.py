"""Feature vector construction from normalized band matrices and raw envelopes."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from labelsonar.domain.models import FeatureFamily, FloatArray
from labelsonar.features.contracts import (
    DEFAULT_ENVELOPE_WINDOW_MS,
    EPSILON,
    FingerprintConfig,
)


def normalize_band_rows(matrix: npt.ArrayLike, *, epsilon: float = EPSILON) -> FloatArray:
    """Scale each row to sum to 1; all-zero rows stay zero."""
    m = _as_band_matrix(matrix)
    row_sums = np.sum(m, axis=1, keepdims=True)
    return m / (row_sums + epsilon)


def delta_ratios(normalized: npt.ArrayLike, *, epsilon: float = EPSILON) -> FloatArray:
    """Band-wise ratio of each segment to the previous one, flattened row-major."""
    m = _as_band_matrix(normalized)
    if m.shape[0] < 2:
        raise ValueError("delta ratios need at least 2 segments")
    ratios = (m[1:] + epsilon) / (m[:-1] + epsilon)
    return np.ascontiguousarray(ratios).reshape(-1)


def rms_envelope(
    samples: npt.ArrayLike,
    *,
    sampling_rate_hz: float,
    window_ms: float = DEFAULT_ENVELOPE_WINDOW_MS,
) -> FloatArray:
    """Short-time RMS over consecutive non-overlapping windows; a short tail window is kept."""
    if sampling_rate_hz <= 0:
        raise ValueError("sampling_rate_hz must be > 0")
    if window_ms <= 0:
        raise ValueError("window_ms must be > 0")

    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("samples must be 1D")

    window = max(1, int(round(sampling_rate_hz * window_ms / 1000.0)))
    envelope = np.empty((x.size + window - 1) // window, dtype=np.float64)
    for idx, start in enumerate(range(0, x.size, window)):
        chunk = x[start : start + window]
        envelope[idx] = np.sqrt(np.mean(np.square(chunk)))
    return envelope


def envelope_features(
    samples: npt.ArrayLike,
    *,
    sampling_rate_hz: float,
    window_ms: float = DEFAULT_ENVELOPE_WINDOW_MS,
    epsilon: float = EPSILON,
) -> FloatArray:
    """Mean, population std and time-index centroid of the RMS envelope."""
    envelope = rms_envelope(samples, sampling_rate_hz=sampling_rate_hz, window_ms=window_ms)
    if envelope.size == 0:
        return np.zeros(3, dtype=np.float64)

    mean = float(np.mean(envelope))
    std = float(np.std(envelope))
    positions = np.arange(envelope.size, dtype=np.float64)
    centroid = float(np.sum(positions * envelope) / (np.sum(envelope) + epsilon))
    return np.asarray([mean, std, centroid], dtype=np.float64)


def build_feature_vector(
    normalized: npt.ArrayLike,
    samples: npt.ArrayLike,
    *,
    sampling_rate_hz: float,
    config: FingerprintConfig,
) -> FloatArray:
    """Compose the configured feature family with the optional envelope block."""
    m = _as_band_matrix(normalized)
    if m.shape != (config.segment_count, config.band_count):
        raise ValueError(
            f"normalized matrix shape {m.shape} does not match config "
            f"({config.segment_count}, {config.band_count})"
        )

    if config.feature_family == FeatureFamily.DELTA_RATIO:
        primary = delta_ratios(m, epsilon=config.epsilon)
    else:
        primary = np.ascontiguousarray(m).reshape(-1).copy()

    if not config.use_envelope_features:
        return primary

    envelope = envelope_features(
        samples,
        sampling_rate_hz=sampling_rate_hz,
        window_ms=config.envelope_window_ms,
        epsilon=config.epsilon,
    )
    return np.concatenate([primary, envelope])


def _as_band_matrix(matrix: npt.ArrayLike) -> FloatArray:
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2:
        raise ValueError("band matrix must be 2D [segments, bands]")
    if m.shape[1] <= 0:
        raise ValueError("band matrix must have at least one band column")
    return m
