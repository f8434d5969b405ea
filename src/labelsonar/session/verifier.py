"""Verification session state machine driving capture, baseline save and compare."""

from __future__ import annotations

import logging
from typing import Callable

from labelsonar.domain.models import SampleBuffer
from labelsonar.features.contracts import Fingerprint, FingerprintConfig, incompatible_fields
from labelsonar.features.pipeline import extract_fingerprint
from labelsonar.matching.baseline import BaselineStore
from labelsonar.matching.similarity import ConfigurationMismatchError, score_similarity
from labelsonar.session.contracts import (
    BUSY_STATES,
    CaptureSource,
    OutcomeKind,
    SessionBusyError,
    SessionState,
    VerificationOutcome,
)


logger = logging.getLogger(__name__)

TransitionListener = Callable[[SessionState, SessionState], None]


class VerificationSession:
    """One operator session: capture fingerprints, keep a baseline, compare against it.

    Each session owns its baseline store unless one is passed in; a shared store
    must be serialized by the caller.
    """

    def __init__(
        self,
        config: FingerprintConfig,
        source: CaptureSource,
        *,
        baseline_store: BaselineStore | None = None,
        on_transition: TransitionListener | None = None,
    ) -> None:
        self._config = config
        self._source = source
        self._store = baseline_store if baseline_store is not None else BaselineStore()
        self._on_transition = on_transition
        self._state = SessionState.IDLE
        self._last_fingerprint: Fingerprint | None = None

    @property
    def config(self) -> FingerprintConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def baseline_store(self) -> BaselineStore:
        return self._store

    @property
    def last_fingerprint(self) -> Fingerprint | None:
        """Fingerprint of the most recent successful capture."""
        return self._last_fingerprint

    def capture_only(self) -> VerificationOutcome:
        """Capture and fingerprint without touching the baseline."""
        self._ensure_not_busy()
        fingerprint = self._capture()
        if isinstance(fingerprint, VerificationOutcome):
            return fingerprint
        return VerificationOutcome(kind=OutcomeKind.CAPTURED, fingerprint=fingerprint)

    def save_baseline(self) -> VerificationOutcome:
        """Capture and store the fingerprint as the new baseline."""
        self._ensure_not_busy()
        fingerprint = self._capture()
        if isinstance(fingerprint, VerificationOutcome):
            return fingerprint

        self._store.save(fingerprint.features, config=self._config)
        self._transition(SessionState.BASELINE_SAVED)
        logger.info("baseline saved: %d features", fingerprint.features.size)
        return VerificationOutcome(kind=OutcomeKind.BASELINE_SAVED, fingerprint=fingerprint)

    def compare(self) -> VerificationOutcome:
        """Capture a probe and score it against the stored baseline."""
        self._ensure_not_busy()
        baseline = self._store.read()
        if baseline is None:
            logger.info("compare requested without a stored baseline")
            return VerificationOutcome(kind=OutcomeKind.NO_BASELINE, detail="no baseline stored")

        fingerprint = self._capture()
        if isinstance(fingerprint, VerificationOutcome):
            return fingerprint

        try:
            similarity = score_similarity(
                baseline,
                fingerprint.features,
                threshold=self._config.match_threshold,
            )
        except ConfigurationMismatchError as exc:
            return self._reject_comparison(fingerprint, str(exc))

        baseline_config = self._store.config
        if baseline_config is not None:
            differing = incompatible_fields(baseline_config, self._config)
            if differing:
                return self._reject_comparison(
                    fingerprint,
                    f"baseline and probe configurations differ in: {', '.join(differing)}",
                )

        if similarity.is_match:
            kind, state = OutcomeKind.MATCH, SessionState.MATCH
        else:
            kind, state = OutcomeKind.NO_MATCH, SessionState.NO_MATCH
        self._transition(state)
        logger.info(
            "comparison %s: score=%.6f threshold=%.2f",
            kind.value,
            similarity.score,
            similarity.threshold,
        )
        return VerificationOutcome(kind=kind, fingerprint=fingerprint, similarity=similarity)

    def close(self) -> None:
        """Tear down the session; the baseline does not outlive it."""
        self._store.clear()
        self._last_fingerprint = None
        if self._state != SessionState.IDLE:
            self._transition(SessionState.IDLE)

    def __enter__(self) -> VerificationSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _capture(self) -> Fingerprint | VerificationOutcome:
        try:
            return self._acquire_and_extract()
        except Exception:
            if self._state in BUSY_STATES:
                logger.warning("capture aborted while %s; session reset to idle", self._state.value)
                self._state = SessionState.IDLE
            raise

    def _acquire_and_extract(self) -> Fingerprint | VerificationOutcome:
        self._transition(SessionState.CAPTURING)
        try:
            buffer = self._source.acquire()
        except Exception as exc:
            return self._fail(f"capture failed: {exc}")
        if buffer is None:
            return self._fail("capture delivered no buffer")
        if not isinstance(buffer, SampleBuffer):
            return self._fail(f"capture delivered {type(buffer).__name__}, expected SampleBuffer")

        self._transition(SessionState.PROCESSING)
        try:
            fingerprint = extract_fingerprint(buffer, self._config)
        except ValueError as exc:
            return self._fail(f"capture buffer rejected: {exc}")

        self._last_fingerprint = fingerprint
        self._transition(SessionState.CAPTURED)
        return fingerprint

    def _reject_comparison(self, fingerprint: Fingerprint, detail: str) -> VerificationOutcome:
        logger.warning("comparison rejected: %s", detail)
        self._transition(SessionState.IDLE)
        return VerificationOutcome(
            kind=OutcomeKind.CONFIGURATION_MISMATCH,
            fingerprint=fingerprint,
            detail=detail,
        )

    def _fail(self, detail: str) -> VerificationOutcome:
        logger.warning(detail)
        self._transition(SessionState.CAPTURE_FAILED)
        self._transition(SessionState.IDLE)
        return VerificationOutcome(kind=OutcomeKind.CAPTURE_FAILED, detail=detail)

    def _ensure_not_busy(self) -> None:
        if self._state in BUSY_STATES:
            raise SessionBusyError(f"session is busy ({self._state.value})")

    def _transition(self, target: SessionState) -> None:
        previous = self._state
        self._state = target
        if self._on_transition is not None:
            self._on_transition(previous, target)
