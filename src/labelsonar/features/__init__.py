"""Fingerprint configuration, feature building and extraction pipeline."""

from labelsonar.features.builder import (
    build_feature_vector,
    delta_ratios,
    envelope_features,
    normalize_band_rows,
    rms_envelope,
)
from labelsonar.features.contracts import (
    DELTA_RATIO_MATCH_THRESHOLD,
    EPSILON,
    RAW_BANDS_MATCH_THRESHOLD,
    REFERENCE_BAND_RANGES,
    Fingerprint,
    FingerprintConfig,
    config_from_mapping,
    config_to_jsonable,
    envelope_config,
    incompatible_fields,
    raw_band_config,
    reference_config,
)
from labelsonar.features.pipeline import band_matrix, detect_degenerate_input, extract_fingerprint

__all__ = [
    "DELTA_RATIO_MATCH_THRESHOLD",
    "EPSILON",
    "RAW_BANDS_MATCH_THRESHOLD",
    "REFERENCE_BAND_RANGES",
    "Fingerprint",
    "FingerprintConfig",
    "band_matrix",
    "build_feature_vector",
    "config_from_mapping",
    "config_to_jsonable",
    "delta_ratios",
    "detect_degenerate_input",
    "envelope_config",
    "envelope_features",
    "extract_fingerprint",
    "incompatible_fields",
    "normalize_band_rows",
    "raw_band_config",
    "reference_config",
    "rms_envelope",
]
