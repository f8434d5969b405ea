"""Domain models for acoustic label captures and fingerprint diagnostics."""

from labelsonar.domain.models import DegenerateInput, FeatureFamily, FloatArray, SampleBuffer

__all__ = [
    "DegenerateInput",
    "FeatureFamily",
    "FloatArray",
    "SampleBuffer",
]
