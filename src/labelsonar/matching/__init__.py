"""Similarity scoring and baseline storage."""

from labelsonar.matching.baseline import BaselineStore
from labelsonar.matching.similarity import (
    ConfigurationMismatchError,
    SimilarityResult,
    cosine_similarity,
    score_similarity,
)

__all__ = [
    "BaselineStore",
    "ConfigurationMismatchError",
    "SimilarityResult",
    "cosine_similarity",
    "score_similarity",
]
