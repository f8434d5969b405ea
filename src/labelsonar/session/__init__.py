"""Verification session state machine and capture collaborator seam."""

from labelsonar.session.contracts import (
    CaptureError,
    CaptureSource,
    OutcomeKind,
    SessionBusyError,
    SessionState,
    VerificationOutcome,
)
from labelsonar.session.sources import FileCaptureSource, StaticCaptureSource
from labelsonar.session.verifier import VerificationSession

__all__ = [
    "CaptureError",
    "CaptureSource",
    "FileCaptureSource",
    "OutcomeKind",
    "SessionBusyError",
    "SessionState",
    "StaticCaptureSource",
    "VerificationOutcome",
    "VerificationSession",
]
