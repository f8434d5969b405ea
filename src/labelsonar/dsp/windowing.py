"""Fixed-count segmentation and Hann windowing of raw capture buffers."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from labelsonar.domain.models import FloatArray
from labelsonar.dsp.fft import is_power_of_two


def hann_window(size: int) -> FloatArray:
    """Symmetric Hann window `0.5 * (1 - cos(2*pi*i / (size - 1)))`."""
    if size < 2:
        raise ValueError("size must be >= 2")
    i = np.arange(size, dtype=np.float64)
    return 0.5 * (1.0 - np.cos((2.0 * np.pi * i) / (size - 1)))


def segment_length(total_samples: int, segment_count: int) -> int:
    if total_samples < 0:
        raise ValueError("total_samples must be >= 0")
    if segment_count <= 0:
        raise ValueError("segment_count must be > 0")
    return max(1, total_samples // segment_count)


def segment_bounds(total_samples: int, segment_count: int) -> tuple[tuple[int, int], ...]:
    """Half-open [start, end) ranges of each segment, clipped to the buffer.

    Buffers shorter than `segment_count` collapse to 1-sample segments; segments
    that start past the end are empty. Samples beyond `segment_count * length`
    are not covered by any segment.
    """
    seg_len = segment_length(total_samples, segment_count)
    bounds: list[tuple[int, int]] = []
    for s in range(segment_count):
        start = min(s * seg_len, total_samples)
        end = min((s + 1) * seg_len, total_samples)
        bounds.append((start, end))
    return tuple(bounds)


def windowed_frames(
    samples: npt.ArrayLike,
    *,
    segment_count: int,
    fft_size: int,
) -> FloatArray:
    """Slice samples into `segment_count` Hann-windowed frames of shape [segments, fft_size]."""
    if not is_power_of_two(fft_size):
        raise ValueError("fft_size must be a power of two >= 2")

    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("samples must be 1D")

    window = hann_window(fft_size)
    frames = np.zeros((segment_count, fft_size), dtype=np.float64)
    for row, (start, end) in enumerate(segment_bounds(x.size, segment_count)):
        segment = x[start:end][:fft_size]
        frames[row, : segment.size] = segment
    return frames * window
