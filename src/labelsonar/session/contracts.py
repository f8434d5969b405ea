"""Session states, outcomes and the capture collaborator contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from labelsonar.domain.models import SampleBuffer
from labelsonar.features.contracts import Fingerprint
from labelsonar.matching.similarity import SimilarityResult


class CaptureError(RuntimeError):
    """Capture device unavailable, excitation playback failed, or no buffer delivered."""


class SessionBusyError(RuntimeError):
    """An operation was started while a capture was still in flight."""


class SessionState(StrEnum):
    """Verification session states as seen by a UI."""

    IDLE = "idle"
    CAPTURING = "capturing"
    PROCESSING = "processing"
    CAPTURE_FAILED = "capture_failed"
    CAPTURED = "captured"
    BASELINE_SAVED = "baseline_saved"
    MATCH = "match"
    NO_MATCH = "no_match"


BUSY_STATES = frozenset({SessionState.CAPTURING, SessionState.PROCESSING})


class OutcomeKind(StrEnum):
    """Result of one session operation."""

    CAPTURED = "captured"
    CAPTURE_FAILED = "capture_failed"
    BASELINE_SAVED = "baseline_saved"
    MATCH = "match"
    NO_MATCH = "no_match"
    NO_BASELINE = "no_baseline"
    CONFIGURATION_MISMATCH = "configuration_mismatch"


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    """Outcome returned to the caller; carries data, never display text."""

    kind: OutcomeKind
    fingerprint: Fingerprint | None = None
    similarity: SimilarityResult | None = None
    detail: str = ""

    @property
    def is_match(self) -> bool:
        return self.kind == OutcomeKind.MATCH

    @property
    def low_confidence(self) -> bool:
        """Whether the probe capture was flagged as degenerate input."""
        return self.fingerprint is not None and self.fingerprint.is_degenerate


class CaptureSource(Protocol):
    """Blocking acquire-once provider of one capture window.

    Implementations play the excitation and record the response. They raise
    `CaptureError` (or `OSError`) on failure, or return `None` when no buffer
    was delivered.
    """

    def acquire(self) -> SampleBuffer | None:
        ...
