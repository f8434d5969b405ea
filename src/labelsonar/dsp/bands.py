"""Frequency band energy extraction from magnitude spectra."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import numpy.typing as npt

from labelsonar.domain.models import FloatArray


BandRange = tuple[float, float]


def band_bin_span(
    band: BandRange,
    *,
    sampling_rate_hz: float,
    fft_size: int,
    num_bins: int,
) -> tuple[int, int] | None:
    """Inclusive bin index span covered by one band, or `None` if it maps to no bin."""
    if sampling_rate_hz <= 0:
        raise ValueError("sampling_rate_hz must be > 0")
    if fft_size <= 0:
        raise ValueError("fft_size must be > 0")

    low, high = band
    bin_hz = sampling_rate_hz / fft_size
    start = max(0, math.floor(low / bin_hz))
    end = min(num_bins - 1, math.floor(high / bin_hz))
    if start > end:
        return None
    return start, end


def band_energies(
    magnitudes: npt.ArrayLike,
    *,
    sampling_rate_hz: float,
    fft_size: int,
    band_ranges: Sequence[BandRange],
) -> FloatArray:
    """Sum spectrum magnitudes inside each configured band; unmapped bands are 0."""
    mags = np.asarray(magnitudes, dtype=np.float64)
    if mags.ndim != 1:
        raise ValueError("magnitudes must be 1D")

    energies = np.zeros(len(band_ranges), dtype=np.float64)
    for idx, band in enumerate(band_ranges):
        span = band_bin_span(
            band,
            sampling_rate_hz=sampling_rate_hz,
            fft_size=fft_size,
            num_bins=mags.size,
        )
        if span is None:
            continue
        start, end = span
        energies[idx] = float(np.sum(mags[start : end + 1]))
    return energies


def unmapped_bands(
    *,
    sampling_rate_hz: float,
    fft_size: int,
    band_ranges: Sequence[BandRange],
) -> tuple[BandRange, ...]:
    """Bands that cover no spectrum bin at this sample rate (e.g. above Nyquist)."""
    num_bins = fft_size // 2
    return tuple(
        band
        for band in band_ranges
        if band_bin_span(band, sampling_rate_hz=sampling_rate_hz, fft_size=fft_size, num_bins=num_bins)
        is None
    )
