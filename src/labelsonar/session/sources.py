"""Reference capture sources for recorded or pre-built buffers."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import soundfile as sf

from labelsonar.domain.models import SampleBuffer
from labelsonar.session.contracts import CaptureError


logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".wav", ".flac", ".ogg", ".npy")


class StaticCaptureSource:
    """Hands out a prepared buffer; useful for replays and tests."""

    def __init__(self, buffer: SampleBuffer | None) -> None:
        self._buffer = buffer

    def acquire(self) -> SampleBuffer | None:
        return self._buffer


class FileCaptureSource:
    """Reads one recording from disk per acquisition.

    Audio files are read with soundfile and downmixed to mono by mean. `.npy`
    files hold raw 1D samples and need an explicit `sampling_rate_hz`.
    """

    def __init__(self, path: Path, *, sampling_rate_hz: int | None = None) -> None:
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(
                f"unsupported recording format {path.suffix!r}; expected one of {', '.join(SUPPORTED_SUFFIXES)}"
            )
        if path.suffix.lower() == ".npy" and sampling_rate_hz is None:
            raise ValueError("sampling_rate_hz is required for .npy recordings")
        if sampling_rate_hz is not None and sampling_rate_hz <= 0:
            raise ValueError("sampling_rate_hz must be > 0")
        self._path = path
        self._sampling_rate_hz = sampling_rate_hz

    @property
    def path(self) -> Path:
        return self._path

    def acquire(self) -> SampleBuffer:
        if not self._path.is_file():
            raise CaptureError(f"recording not found: {self._path}")

        if self._path.suffix.lower() == ".npy":
            try:
                samples = np.load(self._path, allow_pickle=False)
            except (OSError, ValueError) as exc:
                raise CaptureError(f"unreadable recording {self._path}: {exc}") from exc
            rate = int(self._sampling_rate_hz or 0)
        else:
            try:
                samples, rate = sf.read(self._path, dtype="float64", always_2d=False)
            except RuntimeError as exc:
                raise CaptureError(f"unreadable recording {self._path}: {exc}") from exc
            if self._sampling_rate_hz is not None and int(rate) != self._sampling_rate_hz:
                raise CaptureError(
                    f"recording {self._path} is {rate} Hz, expected {self._sampling_rate_hz} Hz"
                )

        try:
            samples = np.asarray(samples, dtype=np.float64)
            if samples.ndim > 1:
                samples = np.mean(samples, axis=1)
            buffer = SampleBuffer.from_samples(samples, int(rate))
        except (TypeError, ValueError) as exc:
            raise CaptureError(f"invalid recording {self._path}: {exc}") from exc

        logger.debug(
            "loaded recording %s: %d samples (%.3f s) at %d Hz",
            self._path,
            buffer.num_samples,
            buffer.duration_s,
            buffer.sampling_rate_hz,
        )
        return buffer
