"""End-to-end fingerprint extraction from one capture buffer."""

from __future__ import annotations

import logging

import numpy as np

from labelsonar.domain.models import DegenerateInput, FloatArray, SampleBuffer
from labelsonar.dsp.bands import band_energies, unmapped_bands
from labelsonar.dsp.fft import magnitude_spectrum
from labelsonar.dsp.windowing import windowed_frames
from labelsonar.features.builder import build_feature_vector, normalize_band_rows
from labelsonar.features.contracts import Fingerprint, FingerprintConfig


logger = logging.getLogger(__name__)


def band_matrix(buffer: SampleBuffer, config: FingerprintConfig) -> FloatArray:
    """Raw band energies per segment, shape [segment_count, band_count]."""
    frames = windowed_frames(
        buffer.samples,
        segment_count=config.segment_count,
        fft_size=config.fft_size,
    )
    rows = np.zeros((config.segment_count, config.band_count), dtype=np.float64)
    for idx, frame in enumerate(frames):
        rows[idx] = band_energies(
            magnitude_spectrum(frame),
            sampling_rate_hz=buffer.sampling_rate_hz,
            fft_size=config.fft_size,
            band_ranges=config.band_ranges,
        )
    return rows


def extract_fingerprint(buffer: SampleBuffer, config: FingerprintConfig) -> Fingerprint:
    """Run segmentation, FFT, banding and feature building for one capture."""
    raw = band_matrix(buffer, config)
    normalized = normalize_band_rows(raw, epsilon=config.epsilon)
    features = build_feature_vector(
        normalized,
        buffer.samples,
        sampling_rate_hz=buffer.sampling_rate_hz,
        config=config,
    )
    degenerate = detect_degenerate_input(buffer, raw, config)

    logger.debug(
        "fingerprint extracted: samples=%d rate=%d matrix=%s features=%d",
        buffer.num_samples,
        buffer.sampling_rate_hz,
        normalized.shape,
        features.size,
    )
    if degenerate:
        logger.warning(
            "degenerate capture input (%s); similarity scores will not be meaningful",
            ", ".join(flag.value for flag in degenerate),
        )

    return Fingerprint(
        features=features,
        band_matrix=normalized,
        raw_band_matrix=raw,
        config=config,
        degenerate=degenerate,
    )


def detect_degenerate_input(
    buffer: SampleBuffer,
    raw_band_matrix: FloatArray,
    config: FingerprintConfig,
) -> tuple[DegenerateInput, ...]:
    """Flags for inputs that the epsilon guards absorb but that carry no signal."""
    flags: list[DegenerateInput] = []
    if buffer.num_samples == 0:
        flags.append(DegenerateInput.EMPTY_BUFFER)
    elif buffer.num_samples < config.segment_count:
        flags.append(DegenerateInput.SHORT_BUFFER)

    if buffer.num_samples > 0 and not np.any(buffer.samples):
        flags.append(DegenerateInput.SILENT_BUFFER)

    if np.any(np.sum(raw_band_matrix, axis=1) <= 0.0):
        flags.append(DegenerateInput.ZERO_ENERGY_SEGMENT)

    if unmapped_bands(
        sampling_rate_hz=buffer.sampling_rate_hz,
        fft_size=config.fft_size,
        band_ranges=config.band_ranges,
    ):
        flags.append(DegenerateInput.UNMAPPED_BAND)
    return tuple(flags)
