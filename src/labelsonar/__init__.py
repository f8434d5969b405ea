"""Acoustic label fingerprinting and baseline verification."""

from labelsonar.domain import DegenerateInput, FeatureFamily, SampleBuffer
from labelsonar.features import Fingerprint, FingerprintConfig, extract_fingerprint
from labelsonar.matching import BaselineStore, ConfigurationMismatchError, cosine_similarity, score_similarity
from labelsonar.session import OutcomeKind, SessionState, VerificationOutcome, VerificationSession

__version__ = "0.1.0"

__all__ = [
    "BaselineStore",
    "ConfigurationMismatchError",
    "DegenerateInput",
    "FeatureFamily",
    "Fingerprint",
    "FingerprintConfig",
    "OutcomeKind",
    "SampleBuffer",
    "SessionState",
    "VerificationOutcome",
    "VerificationSession",
    "cosine_similarity",
    "extract_fingerprint",
    "score_similarity",
]
