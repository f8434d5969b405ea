"""Unit tests for the verification session state machine."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from scipy.signal import chirp

from labelsonar.domain import SampleBuffer
from labelsonar.features import envelope_config, raw_band_config, reference_config
from labelsonar.matching import BaselineStore
from labelsonar.session import (
    CaptureError,
    OutcomeKind,
    SessionBusyError,
    SessionState,
    FileCaptureSource,
    StaticCaptureSource,
    VerificationSession,
)


SAMPLING_HZ = 48_000


def _sweep(f0: float = 2_000.0, f1: float = 12_000.0) -> SampleBuffer:
    t = np.arange(SAMPLING_HZ, dtype=np.float64) / SAMPLING_HZ
    return SampleBuffer.from_samples(chirp(t, f0=f0, t1=1.0, f1=f1, method="linear"), SAMPLING_HZ)


class _SequenceSource:
    """Returns queued buffers in order and counts acquisitions."""

    def __init__(self, *buffers: SampleBuffer) -> None:
        self._buffers = list(buffers)
        self.calls = 0

    def acquire(self) -> SampleBuffer:
        self.calls += 1
        return self._buffers.pop(0)


class _FailingSource:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def acquire(self) -> SampleBuffer:
        raise self._exc


def _recording_session(config, source, **kwargs):
    transitions: list[tuple[SessionState, SessionState]] = []
    session = VerificationSession(
        config,
        source,
        on_transition=lambda old, new: transitions.append((old, new)),
        **kwargs,
    )
    return session, transitions


def test_compare_without_baseline_does_not_capture() -> None:
    source = _SequenceSource(_sweep())
    session = VerificationSession(reference_config(), source)

    outcome = session.compare()

    assert outcome.kind == OutcomeKind.NO_BASELINE
    assert outcome.fingerprint is None
    assert source.calls == 0
    assert session.state == SessionState.IDLE


def test_save_then_compare_same_capture_matches() -> None:
    session, transitions = _recording_session(reference_config(), StaticCaptureSource(_sweep()))

    saved = session.save_baseline()
    compared = session.compare()

    assert saved.kind == OutcomeKind.BASELINE_SAVED
    assert compared.kind == OutcomeKind.MATCH
    assert compared.is_match
    assert compared.similarity is not None
    assert compared.similarity.score == pytest.approx(1.0, abs=1e-9)
    assert compared.similarity.threshold == 0.92
    assert session.state == SessionState.MATCH
    assert transitions == [
        (SessionState.IDLE, SessionState.CAPTURING),
        (SessionState.CAPTURING, SessionState.PROCESSING),
        (SessionState.PROCESSING, SessionState.CAPTURED),
        (SessionState.CAPTURED, SessionState.BASELINE_SAVED),
        (SessionState.BASELINE_SAVED, SessionState.CAPTURING),
        (SessionState.CAPTURING, SessionState.PROCESSING),
        (SessionState.PROCESSING, SessionState.CAPTURED),
        (SessionState.CAPTURED, SessionState.MATCH),
    ]


def test_different_response_does_not_match() -> None:
    source = _SequenceSource(_sweep(), _sweep(f0=12_000.0, f1=2_000.0))
    session = VerificationSession(raw_band_config(), source)

    session.save_baseline()
    outcome = session.compare()

    assert outcome.kind == OutcomeKind.NO_MATCH
    assert outcome.similarity is not None
    assert outcome.similarity.score < 0.85
    assert session.state == SessionState.NO_MATCH


@pytest.mark.parametrize(
    "exc",
    [
        CaptureError("microphone unavailable"),
        OSError("device busy"),
        RuntimeError("driver crashed"),
    ],
)
def test_collaborator_failure_returns_to_idle(exc: Exception) -> None:
    session, transitions = _recording_session(reference_config(), _FailingSource(exc))

    outcome = session.save_baseline()

    assert outcome.kind == OutcomeKind.CAPTURE_FAILED
    assert outcome.fingerprint is None
    assert str(exc) in outcome.detail
    assert session.state == SessionState.IDLE
    assert session.baseline_store.has_baseline is False
    assert transitions[-2:] == [
        (SessionState.CAPTURING, SessionState.CAPTURE_FAILED),
        (SessionState.CAPTURE_FAILED, SessionState.IDLE),
    ]


@pytest.mark.parametrize(
    ("filename", "write"),
    [
        ("corrupt.npy", lambda path: path.write_bytes(b"not a numpy array")),
        ("nan.npy", lambda path: np.save(path, np.asarray([0.0, np.nan, 0.5]))),
    ],
)
def test_bad_recording_is_a_capture_failure(tmp_path: Path, filename: str, write) -> None:
    path = tmp_path / filename
    write(path)
    session = VerificationSession(
        reference_config(),
        FileCaptureSource(path, sampling_rate_hz=SAMPLING_HZ),
    )

    first = session.save_baseline()
    second = session.capture_only()

    assert first.kind == OutcomeKind.CAPTURE_FAILED
    assert second.kind == OutcomeKind.CAPTURE_FAILED
    assert session.state == SessionState.IDLE
    assert session.baseline_store.has_baseline is False


def test_missing_buffer_is_a_capture_failure() -> None:
    session = VerificationSession(reference_config(), StaticCaptureSource(None))

    outcome = session.capture_only()

    assert outcome.kind == OutcomeKind.CAPTURE_FAILED
    assert "no buffer" in outcome.detail
    assert session.last_fingerprint is None


def test_failed_compare_keeps_existing_baseline() -> None:
    store = BaselineStore()
    VerificationSession(reference_config(), StaticCaptureSource(_sweep()), baseline_store=store).save_baseline()
    session = VerificationSession(
        reference_config(),
        _FailingSource(CaptureError("playback failed")),
        baseline_store=store,
    )

    outcome = session.compare()

    assert outcome.kind == OutcomeKind.CAPTURE_FAILED
    assert store.has_baseline


def test_mismatched_configs_report_configuration_mismatch() -> None:
    store = BaselineStore()
    VerificationSession(reference_config(), StaticCaptureSource(_sweep()), baseline_store=store).save_baseline()
    session = VerificationSession(
        envelope_config(segment_count=11),
        StaticCaptureSource(_sweep()),
        baseline_store=store,
    )

    outcome = session.compare()

    assert outcome.kind == OutcomeKind.CONFIGURATION_MISMATCH
    assert outcome.similarity is None
    assert "baseline=245, probe=53" in outcome.detail
    assert session.state == SessionState.IDLE



def test_equal_length_configs_of_different_families_are_a_mismatch() -> None:
    store = BaselineStore()
    VerificationSession(reference_config(), StaticCaptureSource(_sweep()), baseline_store=store).save_baseline()
    probe_config = raw_band_config(segment_count=49)
    assert probe_config.feature_length == reference_config().feature_length
    session = VerificationSession(probe_config, StaticCaptureSource(_sweep()), baseline_store=store)

    outcome = session.compare()

    assert outcome.kind == OutcomeKind.CONFIGURATION_MISMATCH
    assert outcome.similarity is None
    assert "feature_family" in outcome.detail
    assert "segment_count" in outcome.detail
    assert session.state == SessionState.IDLE


def test_threshold_override_still_compares_against_baseline() -> None:
    store = BaselineStore()
    VerificationSession(reference_config(), StaticCaptureSource(_sweep()), baseline_store=store).save_baseline()
    session = VerificationSession(
        reference_config(match_threshold=0.5),
        StaticCaptureSource(_sweep()),
        baseline_store=store,
    )

    outcome = session.compare()

    assert outcome.kind == OutcomeKind.MATCH
    assert outcome.similarity is not None
    assert outcome.similarity.threshold == 0.5


def test_capture_only_leaves_baseline_untouched() -> None:
    session = VerificationSession(reference_config(), StaticCaptureSource(_sweep()))

    outcome = session.capture_only()

    assert outcome.kind == OutcomeKind.CAPTURED
    assert outcome.fingerprint is not None
    assert session.last_fingerprint is outcome.fingerprint
    assert session.baseline_store.has_baseline is False
    assert session.state == SessionState.CAPTURED


def test_save_baseline_overwrites_previous() -> None:
    first = _sweep()
    second = _sweep(f0=12_000.0, f1=2_000.0)
    session = VerificationSession(reference_config(), _SequenceSource(first, second))

    session.save_baseline()
    outcome = session.save_baseline()

    stored = session.baseline_store.read()
    assert outcome.fingerprint is not None
    assert stored is not None
    assert np.array_equal(stored, outcome.fingerprint.features)


def test_silent_probe_is_flagged_low_confidence() -> None:
    silence = SampleBuffer.from_samples(np.zeros(SAMPLING_HZ), SAMPLING_HZ)
    session = VerificationSession(reference_config(), _SequenceSource(_sweep(), silence))

    session.save_baseline()
    outcome = session.compare()

    assert outcome.kind in {OutcomeKind.MATCH, OutcomeKind.NO_MATCH}
    assert outcome.low_confidence is True


def test_close_clears_baseline() -> None:
    with VerificationSession(reference_config(), StaticCaptureSource(_sweep())) as session:
        session.save_baseline()
        store = session.baseline_store
        assert store.has_baseline

    assert store.has_baseline is False
    assert session.state == SessionState.IDLE


def test_reentrant_operation_is_rejected() -> None:
    session: VerificationSession | None = None

    def reenter(old: SessionState, new: SessionState) -> None:
        if new == SessionState.CAPTURING and session is not None:
            session.capture_only()

    session = VerificationSession(
        reference_config(),
        StaticCaptureSource(_sweep()),
        on_transition=reenter,
    )

    with pytest.raises(SessionBusyError, match="capturing"):
        session.capture_only()

    assert session.state == SessionState.IDLE


def test_unexpected_processing_error_resets_session(monkeypatch: pytest.MonkeyPatch) -> None:
    session = VerificationSession(reference_config(), StaticCaptureSource(_sweep()))

    def explode(*args, **kwargs):
        raise ZeroDivisionError("broken pipeline")

    monkeypatch.setattr("labelsonar.session.verifier.extract_fingerprint", explode)

    with pytest.raises(ZeroDivisionError):
        session.capture_only()
    assert session.state == SessionState.IDLE

    monkeypatch.undo()
    assert session.capture_only().kind == OutcomeKind.CAPTURED
