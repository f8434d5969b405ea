"""Signal transforms: radix-2 FFT, segmentation/windowing and band energies."""

from labelsonar.dsp.bands import BandRange, band_bin_span, band_energies, unmapped_bands
from labelsonar.dsp.fft import (
    bit_reversal_permutation,
    fft,
    is_power_of_two,
    magnitude_spectrum,
    stage_twiddles,
)
from labelsonar.dsp.windowing import hann_window, segment_bounds, segment_length, windowed_frames

__all__ = [
    "BandRange",
    "band_bin_span",
    "band_energies",
    "bit_reversal_permutation",
    "fft",
    "hann_window",
    "is_power_of_two",
    "magnitude_spectrum",
    "segment_bounds",
    "segment_length",
    "stage_twiddles",
    "unmapped_bands",
    "windowed_frames",
]
