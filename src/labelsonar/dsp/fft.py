"""Iterative radix-2 FFT and one-sided magnitude spectrum."""

from __future__ import annotations

import math

import numpy as np
import numpy.typing as npt

from labelsonar.domain.models import FloatArray


IntArray = npt.NDArray[np.int64]


def is_power_of_two(value: int) -> bool:
    return value >= 2 and (value & (value - 1)) == 0


def bit_reversal_permutation(size: int) -> IntArray:
    """Index order that puts an array of `size` samples into bit-reversed order."""
    if not is_power_of_two(size):
        raise ValueError("size must be a power of two >= 2")

    order = np.arange(size, dtype=np.int64)
    j = 0
    for i in range(1, size - 1):
        bit = size >> 1
        while j & bit:
            j ^= bit
            bit >>= 1
        j ^= bit
        if i < j:
            order[i], order[j] = order[j], order[i]
    return order


def stage_twiddles(length: int) -> tuple[FloatArray, FloatArray]:
    """Twiddle factors for one butterfly stage, advanced by complex multiplication.

    The rotation `exp(-2j*pi/length)` is evaluated once; each following factor is
    the previous one times that rotation, so every stage costs a single cos/sin pair.
    """
    if not is_power_of_two(length):
        raise ValueError("length must be a power of two >= 2")

    half = length >> 1
    theta = -2.0 * math.pi / length
    step_re = math.cos(theta)
    step_im = math.sin(theta)

    tw_re = np.empty(half, dtype=np.float64)
    tw_im = np.empty(half, dtype=np.float64)
    wr = 1.0
    wi = 0.0
    for k in range(half):
        tw_re[k] = wr
        tw_im[k] = wi
        wr, wi = wr * step_re - wi * step_im, wr * step_im + wi * step_re
    return tw_re, tw_im


def fft(frame: npt.ArrayLike) -> tuple[FloatArray, FloatArray]:
    """Unscaled forward transform of a real frame; returns (real, imaginary) parts."""
    x = _as_valid_frame(frame)
    size = x.size

    re = x[bit_reversal_permutation(size)].copy()
    im = np.zeros(size, dtype=np.float64)

    length = 2
    while length <= size:
        half = length >> 1
        tw_re, tw_im = stage_twiddles(length)
        blocks_re = re.reshape(-1, length)
        blocks_im = im.reshape(-1, length)

        top_re = blocks_re[:, :half].copy()
        top_im = blocks_im[:, :half].copy()
        bottom_re = blocks_re[:, half:]
        bottom_im = blocks_im[:, half:]

        xr = bottom_re * tw_re - bottom_im * tw_im
        xi = bottom_re * tw_im + bottom_im * tw_re

        blocks_re[:, half:] = top_re - xr
        blocks_im[:, half:] = top_im - xi
        blocks_re[:, :half] = top_re + xr
        blocks_im[:, :half] = top_im + xi
        length <<= 1

    return re, im


def magnitude_spectrum(frame: npt.ArrayLike) -> FloatArray:
    """Magnitudes of bins [0, N/2); the mirrored upper half is discarded."""
    re, im = fft(frame)
    half = re.size // 2
    return np.asarray(np.hypot(re[:half], im[:half]), dtype=np.float64)


def _as_valid_frame(frame: npt.ArrayLike) -> FloatArray:
    x = np.asarray(frame, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("frame must be 1D")
    if not is_power_of_two(x.size):
        raise ValueError("frame length must be a power of two >= 2")
    if not np.all(np.isfinite(x)):
        raise ValueError("frame must contain only finite values")
    return x
