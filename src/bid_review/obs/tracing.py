"""Timing and log helpers shared by the review pipeline."""

from __future__ import annotations

import logging
import time

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure root logging once for the process."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT)


class Timer:
    """Measures one reasoning-service step and logs its latency on exit.

    Nothing is logged without a `label`. A step left by an exception is
    logged as failed; the exception still propagates.
    """

    def __init__(self, label: str | None = None, log: logging.Logger | None = None) -> None:
        self.label = label
        self._log = log or logger
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
        if self.label:
            outcome = "failed" if exc_type is not None else "finished"
            self._log.debug(f"{self.label} {outcome} in {self.elapsed_ms:.0f} ms")


def preview(text: str, limit: int = 500) -> str:
    return text[:limit]
