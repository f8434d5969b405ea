"""CLI for fingerprinting recorded captures and comparing a probe against a baseline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from labelsonar.features import (
    Fingerprint,
    FingerprintConfig,
    config_from_mapping,
    config_to_jsonable,
    envelope_config,
    raw_band_config,
    reference_config,
)
from labelsonar.session import (
    FileCaptureSource,
    OutcomeKind,
    VerificationOutcome,
    VerificationSession,
)


logger = logging.getLogger(__name__)

PRESETS = {
    "reference": reference_config,
    "envelope": envelope_config,
    "raw-bands": raw_band_config,
}
PREVIEW_ROWS = 3


@dataclass(frozen=True, slots=True)
class VerifyCliResult:
    """Outcomes of one CLI run and where the report was written."""

    baseline: VerificationOutcome
    probe: VerificationOutcome | None
    report_path: Path | None

    @property
    def failed(self) -> bool:
        if self.baseline.kind != OutcomeKind.BASELINE_SAVED:
            return True
        return self.probe is not None and self.probe.kind in {
            OutcomeKind.CAPTURE_FAILED,
            OutcomeKind.CONFIGURATION_MISMATCH,
        }


def build_parser() -> argparse.ArgumentParser:
    """Create CLI parser for baseline/probe verification."""
    parser = argparse.ArgumentParser(
        prog="labelsonar-verify",
        description="Fingerprint a baseline recording and optionally compare a probe recording against it.",
    )
    parser.add_argument("--baseline", type=Path, required=True, help="Baseline recording (.wav/.flac/.ogg/.npy).")
    parser.add_argument("--probe", type=Path, default=None, help="Optional probe recording to compare.")
    parser.add_argument(
        "--sampling-rate-hz",
        type=int,
        default=None,
        help="Sample rate of .npy recordings; checked against audio file headers otherwise.",
    )
    parser.add_argument(
        "--preset",
        choices=tuple(PRESETS),
        default="reference",
        help="Feature family preset; each preset carries its own match threshold.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with FingerprintConfig fields; overrides the preset values it names.",
    )
    parser.add_argument("--output", type=Path, default=None, help="Optional JSON report path.")
    parser.add_argument(
        "--fail-on-no-match",
        action="store_true",
        help="Return exit code 1 when the probe does not match the baseline.",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
        help="Logging verbosity.",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> FingerprintConfig:
    """Preset config, overridden field-by-field by an optional JSON config file."""
    preset = PRESETS[args.preset]()
    if args.config is None:
        return preset

    payload = json.loads(args.config.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"expected JSON object: {args.config}")
    merged = config_to_jsonable(preset)
    merged.update(payload)
    return config_from_mapping(merged)


def run_verify_from_args(args: argparse.Namespace) -> VerifyCliResult:
    """Save the baseline recording's fingerprint, then compare the probe if given."""
    config = resolve_config(args)
    logger.info("fingerprint config: %s", config_to_jsonable(config))

    with VerificationSession(
        config,
        FileCaptureSource(args.baseline, sampling_rate_hz=args.sampling_rate_hz),
    ) as session:
        baseline_outcome = session.save_baseline()
        probe_outcome: VerificationOutcome | None = None
        if args.probe is not None and baseline_outcome.kind == OutcomeKind.BASELINE_SAVED:
            probe_session = VerificationSession(
                config,
                FileCaptureSource(args.probe, sampling_rate_hz=args.sampling_rate_hz),
                baseline_store=session.baseline_store,
            )
            probe_outcome = probe_session.compare()

    report_path = None
    if args.output is not None:
        report_path = args.output
        report_path.parent.mkdir(parents=True, exist_ok=True)
        _write_json(report_path, build_report(config, baseline_outcome, probe_outcome))

    return VerifyCliResult(baseline=baseline_outcome, probe=probe_outcome, report_path=report_path)


def build_report(
    config: FingerprintConfig,
    baseline: VerificationOutcome,
    probe: VerificationOutcome | None,
) -> dict[str, Any]:
    return {
        "config": config_to_jsonable(config),
        "baseline": _outcome_to_jsonable(baseline),
        "probe": _outcome_to_jsonable(probe) if probe is not None else None,
    }


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        result = run_verify_from_args(args)
    except Exception as exc:
        print(f"[ERROR] verification failed: {exc}", file=sys.stderr)
        return 2

    print(f"baseline: {result.baseline.kind.value}")
    if result.baseline.fingerprint is not None:
        print(f"features: {result.baseline.fingerprint.features.size}")
    if result.probe is not None:
        print(f"probe: {result.probe.kind.value}")
        if result.probe.similarity is not None:
            print(f"similarity: {result.probe.similarity.score:.6f}")
            print(f"threshold: {result.probe.similarity.threshold}")
        if result.probe.low_confidence:
            print("low_confidence: True")
    if result.report_path is not None:
        print(f"report: {result.report_path}")

    if result.failed:
        detail = result.probe.detail if result.probe is not None and result.probe.detail else result.baseline.detail
        print(f"[ERROR] {detail}", file=sys.stderr)
        return 2
    if args.fail_on_no_match and result.probe is not None and result.probe.kind == OutcomeKind.NO_MATCH:
        print("[ERROR] probe does not match baseline and --fail-on-no-match is set.", file=sys.stderr)
        return 1
    return 0


def _outcome_to_jsonable(outcome: VerificationOutcome) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "kind": outcome.kind.value,
        "detail": outcome.detail,
        "similarity": None,
        "fingerprint": None,
    }
    if outcome.similarity is not None:
        payload["similarity"] = {
            "score": outcome.similarity.score,
            "threshold": outcome.similarity.threshold,
            "is_match": outcome.similarity.is_match,
        }
    if outcome.fingerprint is not None:
        payload["fingerprint"] = _fingerprint_to_jsonable(outcome.fingerprint)
    return payload


def _fingerprint_to_jsonable(fingerprint: Fingerprint) -> dict[str, Any]:
    return {
        "feature_length": int(fingerprint.features.size),
        "features": fingerprint.features.tolist(),
        "segment_preview": fingerprint.preview(PREVIEW_ROWS).tolist(),
        "degenerate": [flag.value for flag in fingerprint.degenerate],
    }


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


if __name__ == "__main__":
    raise SystemExit(main())
