"""Fingerprint configuration and result contracts."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Mapping

import numpy as np

from labelsonar.domain.models import DegenerateInput, FeatureFamily, FloatArray
from labelsonar.dsp.bands import BandRange
from labelsonar.dsp.fft import is_power_of_two


REFERENCE_BAND_RANGES: tuple[BandRange, ...] = (
    (2000.0, 4000.0),
    (4000.0, 6000.0),
    (6000.0, 8000.0),
    (8000.0, 10000.0),
    (10000.0, 12000.0),
)
DEFAULT_FFT_SIZE = 512
DEFAULT_SEGMENT_COUNT = 50
DELTA_RATIO_MATCH_THRESHOLD = 0.92
RAW_BANDS_MATCH_THRESHOLD = 0.85
DEFAULT_ENVELOPE_WINDOW_MS = 5.0
EPSILON = 1e-12
ENVELOPE_FEATURE_COUNT = 3
# Fields that only steer the match decision, not the feature values.
DECISION_ONLY_FIELDS = frozenset({"match_threshold"})


@dataclass(frozen=True, slots=True)
class FingerprintConfig:
    """Immutable parameters shared by baseline and comparison captures."""

    fft_size: int = DEFAULT_FFT_SIZE
    segment_count: int = DEFAULT_SEGMENT_COUNT
    band_ranges: tuple[BandRange, ...] = REFERENCE_BAND_RANGES
    feature_family: FeatureFamily = FeatureFamily.DELTA_RATIO
    use_envelope_features: bool = False
    match_threshold: float = DELTA_RATIO_MATCH_THRESHOLD
    envelope_window_ms: float = DEFAULT_ENVELOPE_WINDOW_MS
    epsilon: float = EPSILON

    def __post_init__(self) -> None:
        if not is_power_of_two(self.fft_size):
            raise ValueError("fft_size must be a power of two >= 2")
        if self.segment_count <= 0:
            raise ValueError("segment_count must be > 0")
        if self.feature_family == FeatureFamily.DELTA_RATIO and self.segment_count < 2:
            raise ValueError("delta_ratio features need segment_count >= 2")
        if not self.band_ranges:
            raise ValueError("band_ranges must not be empty")

        previous_high: float | None = None
        for low, high in self.band_ranges:
            if low < 0:
                raise ValueError(f"band low edge must be >= 0: ({low}, {high})")
            if high <= low:
                raise ValueError(f"band high edge must be > low edge: ({low}, {high})")
            if previous_high is not None and low < previous_high:
                raise ValueError("band_ranges must be ascending and non-overlapping")
            previous_high = high

        if not -1.0 <= self.match_threshold <= 1.0:
            raise ValueError("match_threshold must be within [-1, 1]")
        if self.envelope_window_ms <= 0:
            raise ValueError("envelope_window_ms must be > 0")
        if self.epsilon <= 0:
            raise ValueError("epsilon must be > 0")

    @property
    def band_count(self) -> int:
        return len(self.band_ranges)

    @property
    def feature_length(self) -> int:
        """Length of every FeatureVector produced under this configuration."""
        if self.feature_family == FeatureFamily.DELTA_RATIO:
            length = (self.segment_count - 1) * self.band_count
        else:
            length = self.segment_count * self.band_count
        if self.use_envelope_features:
            length += ENVELOPE_FEATURE_COUNT
        return length


def reference_config(**overrides: Any) -> FingerprintConfig:
    """Delta-ratio features, 512-point FFT, 50 segments, 5 bands, threshold 0.92."""
    return replace(FingerprintConfig(), **overrides)


def envelope_config(**overrides: Any) -> FingerprintConfig:
    """Reference delta-ratio features plus the envelope-modulation block."""
    return replace(FingerprintConfig(use_envelope_features=True), **overrides)


def raw_band_config(**overrides: Any) -> FingerprintConfig:
    """Flattened normalized band matrix, paired with its own 0.85 threshold."""
    base = FingerprintConfig(
        feature_family=FeatureFamily.RAW_BANDS,
        match_threshold=RAW_BANDS_MATCH_THRESHOLD,
    )
    return replace(base, **overrides)


def config_from_mapping(payload: Mapping[str, Any]) -> FingerprintConfig:
    """Build a config from a JSON-like mapping; unknown keys are rejected."""
    known = set(FingerprintConfig.__dataclass_fields__)
    unknown = set(payload) - known
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(sorted(unknown))}")

    kwargs: dict[str, Any] = dict(payload)
    if "band_ranges" in kwargs:
        ranges = kwargs["band_ranges"]
        if not isinstance(ranges, (list, tuple)):
            raise ValueError("band_ranges must be a list of [low, high] pairs")
        parsed: list[BandRange] = []
        for pair in ranges:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                raise ValueError("band_ranges must be a list of [low, high] pairs")
            parsed.append(
                (
                    _require_number("band_ranges", pair[0]),
                    _require_number("band_ranges", pair[1]),
                )
            )
        kwargs["band_ranges"] = tuple(parsed)
    if "feature_family" in kwargs:
        family = kwargs["feature_family"]
        if not isinstance(family, str):
            raise ValueError(f"feature_family must be a string, got {type(family).__name__}")
        kwargs["feature_family"] = FeatureFamily(family)
    for key in ("fft_size", "segment_count"):
        if key in kwargs:
            kwargs[key] = _require_int(key, kwargs[key])
    for key in ("match_threshold", "envelope_window_ms", "epsilon"):
        if key in kwargs:
            kwargs[key] = _require_number(key, kwargs[key])
    if "use_envelope_features" in kwargs and not isinstance(kwargs["use_envelope_features"], bool):
        raise ValueError(
            f"use_envelope_features must be a boolean, got {type(kwargs['use_envelope_features']).__name__}"
        )
    return FingerprintConfig(**kwargs)


def config_to_jsonable(config: FingerprintConfig) -> dict[str, Any]:
    payload = asdict(config)
    payload["band_ranges"] = [[low, high] for low, high in config.band_ranges]
    payload["feature_family"] = config.feature_family.value
    return payload


def incompatible_fields(baseline: FingerprintConfig, probe: FingerprintConfig) -> tuple[str, ...]:
    """Names of feature-shaping fields on which two configurations disagree."""
    return tuple(
        f.name
        for f in fields(FingerprintConfig)
        if f.name not in DECISION_ONLY_FIELDS and getattr(baseline, f.name) != getattr(probe, f.name)
    )


def _require_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def _require_number(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    return float(value)


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Feature vector of one capture plus the intermediates kept for diagnostics."""

    features: FloatArray
    band_matrix: FloatArray
    raw_band_matrix: FloatArray
    config: FingerprintConfig
    degenerate: tuple[DegenerateInput, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.features.ndim != 1:
            raise ValueError("features must be 1D")
        if self.features.size != self.config.feature_length:
            raise ValueError(
                f"features length {self.features.size} does not match config feature_length "
                f"{self.config.feature_length}"
            )
        expected_shape = (self.config.segment_count, self.config.band_count)
        if self.band_matrix.shape != expected_shape:
            raise ValueError(f"band_matrix must have shape {expected_shape}")
        if self.raw_band_matrix.shape != expected_shape:
            raise ValueError(f"raw_band_matrix must have shape {expected_shape}")
        if not np.all(np.isfinite(self.features)):
            raise ValueError("features must contain finite numeric values")

    @property
    def is_degenerate(self) -> bool:
        """Whether similarity scores involving this capture are low-confidence."""
        return bool(self.degenerate)

    def preview(self, rows: int = 3) -> FloatArray:
        """First normalized segment rows, as shown to operators."""
        if rows <= 0:
            raise ValueError("rows must be > 0")
        return self.band_matrix[:rows].copy()
