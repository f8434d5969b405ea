"""End-to-end tests for fingerprint extraction."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.signal import chirp

from labelsonar.domain import DegenerateInput, SampleBuffer
from labelsonar.features import envelope_config, extract_fingerprint, reference_config
from labelsonar.matching import ConfigurationMismatchError, cosine_similarity, score_similarity


SAMPLING_HZ = 48_000


def _linear_sweep(duration_s: float = 1.0, f0: float = 2_000.0, f1: float = 12_000.0) -> SampleBuffer:
    t = np.arange(int(SAMPLING_HZ * duration_s), dtype=np.float64) / SAMPLING_HZ
    return SampleBuffer.from_samples(chirp(t, f0=f0, t1=duration_s, f1=f1, method="linear"), SAMPLING_HZ)


def test_linear_sweep_fingerprint_matches_itself() -> None:
    config = reference_config()
    fingerprint = extract_fingerprint(_linear_sweep(), config)

    assert fingerprint.band_matrix.shape == (50, 5)
    assert np.allclose(np.sum(fingerprint.band_matrix, axis=1), 1.0, atol=1e-6)
    assert fingerprint.features.shape == (245,)
    assert fingerprint.degenerate == ()

    result = score_similarity(fingerprint.features, fingerprint.features, threshold=config.match_threshold)
    assert result.score == pytest.approx(1.0, abs=1e-9)
    assert result.is_match is True


def test_sweep_energy_moves_up_through_bands() -> None:
    fingerprint = extract_fingerprint(_linear_sweep(), reference_config())

    dominant = np.argmax(fingerprint.band_matrix, axis=1)

    assert dominant[0] == 0
    assert dominant[-1] == 4
    assert np.all(np.diff(dominant) >= 0)


def test_pipeline_is_deterministic() -> None:
    buffer = _linear_sweep()
    config = envelope_config()

    first = extract_fingerprint(buffer, config)
    second = extract_fingerprint(buffer, config)

    assert np.array_equal(first.features, second.features)
    assert np.array_equal(first.band_matrix, second.band_matrix)


def test_silence_produces_flat_ratios_and_zero_envelope() -> None:
    buffer = SampleBuffer.from_samples(np.zeros(SAMPLING_HZ // 2), SAMPLING_HZ)

    fingerprint = extract_fingerprint(buffer, envelope_config())

    assert fingerprint.features.shape == (248,)
    assert np.allclose(fingerprint.features[:245], 1.0)
    assert np.allclose(fingerprint.features[245:], 0.0)
    assert DegenerateInput.SILENT_BUFFER in fingerprint.degenerate
    assert DegenerateInput.ZERO_ENERGY_SEGMENT in fingerprint.degenerate
    assert fingerprint.is_degenerate


def test_short_buffer_keeps_output_shape() -> None:
    rng = np.random.default_rng(1)
    buffer = SampleBuffer.from_samples(rng.standard_normal(10), SAMPLING_HZ)

    fingerprint = extract_fingerprint(buffer, reference_config())

    assert fingerprint.band_matrix.shape == (50, 5)
    assert fingerprint.features.shape == (245,)
    assert np.all(np.isfinite(fingerprint.features))
    assert DegenerateInput.SHORT_BUFFER in fingerprint.degenerate


def test_empty_buffer_is_degenerate_not_an_error() -> None:
    buffer = SampleBuffer.from_samples([], SAMPLING_HZ)

    fingerprint = extract_fingerprint(buffer, reference_config())

    assert fingerprint.features.shape == (245,)
    assert DegenerateInput.EMPTY_BUFFER in fingerprint.degenerate


def test_low_sample_rate_flags_unmapped_bands() -> None:
    t = np.arange(16_000, dtype=np.float64) / 16_000
    buffer = SampleBuffer.from_samples(chirp(t, f0=2_000.0, t1=1.0, f1=7_000.0), 16_000)

    fingerprint = extract_fingerprint(buffer, reference_config())

    assert DegenerateInput.UNMAPPED_BAND in fingerprint.degenerate
    assert np.all(fingerprint.raw_band_matrix[:, 3:] == 0.0)


def test_degenerate_input_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    buffer = SampleBuffer.from_samples(np.zeros(1_000), SAMPLING_HZ)

    with caplog.at_level("WARNING", logger="labelsonar.features.pipeline"):
        extract_fingerprint(buffer, reference_config())

    assert any("silent_buffer" in record.getMessage() for record in caplog.records)


def test_different_configs_cannot_be_compared() -> None:
    buffer = _linear_sweep()
    baseline = extract_fingerprint(buffer, reference_config())
    probe = extract_fingerprint(buffer, envelope_config(segment_count=11))

    assert baseline.features.size == 245
    assert probe.features.size == 53
    assert cosine_similarity(baseline.features, probe.features) == 0.0
    with pytest.raises(ConfigurationMismatchError) as exc_info:
        score_similarity(baseline.features, probe.features, threshold=0.92)
    assert exc_info.value.baseline_length == 245
    assert exc_info.value.probe_length == 53
