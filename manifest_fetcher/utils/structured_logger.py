"""
Structured logging for fetch runs.
Writes one JSON object per event so runs can be analysed after the fact.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO

from rich.markup import escape

# Keys that must never reach a log file
_REDACTED_KEYS = frozenset({"access_token", "token", "sid"})


class StructuredLogger:
    """
    Logger that mirrors events to the console logger and, optionally, to a
    JSON Lines file.

    Usage:
        logger = StructuredLogger("manifest_fetcher", log_dir=Path("logs"))
        logger.info("control_clicked", target="KitA", elapsed_s=7.4)
    """

    def __init__(self, name: str, log_dir: Path | None = None):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = console only)
        """
        self.name = name
        self.log_dir = log_dir
        self._logger = logging.getLogger(name)
        self._json_file: TextIO | None = None
        self.json_log_path: Path | None = None

        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"manifest_fetch_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(_redact(kwargs))

    def _write_json(self, level: str, event: str, context: dict[str, Any]) -> None:
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }
        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, TypeError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _emit(self, level: int, event: str, context: dict[str, Any]) -> None:
        context = _redact(context)
        details = escape(" ".join(f"{k}={v}" for k, v in context.items()))
        self._logger.log(level, f"[dim]\\[{event}] {details}[/dim]")
        self._write_json(logging.getLevelName(level), event, context)

    def debug(self, event: str, **context) -> None:
        self._emit(logging.DEBUG, event, context)

    def info(self, event: str, **context) -> None:
        self._emit(logging.INFO, event, context)

    def error(self, event: str, **context) -> None:
        self._emit(logging.ERROR, event, context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class FetchEventLogger:
    """Specialized logger for the lifecycle events of one fetch."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def fetch_started(self, target: str, instance_url: str, username: str | None):
        self.logger.set_session_context(target=target)
        self.logger.info(
            "fetch_started",
            target=target,
            instance_url=instance_url,
            username=username,
        )

    def step_completed(self, step: str, elapsed_s: float, **details):
        self.logger.debug(
            "step_completed", step=step, elapsed_s=round(elapsed_s, 2), **details
        )

    def fetch_completed(self, manifest_path: str, size_bytes: int, duration_s: float):
        self.logger.info(
            "fetch_completed",
            manifest_path=manifest_path,
            size_bytes=size_bytes,
            duration_s=round(duration_s, 2),
        )

    def fetch_failed(
        self, step: str, error: Exception, duration_s: float, screenshot: str | None
    ):
        self.logger.error(
            "fetch_failed",
            step=step,
            error_type=type(error).__name__,
            error=str(error),
            duration_s=round(duration_s, 2),
            screenshot=screenshot,
        )


def _redact(context: dict[str, Any]) -> dict[str, Any]:
    return {
        k: ("[hidden]" if k in _REDACTED_KEYS else v) for k, v in context.items()
    }


def create_structured_logger(
    log_dir: Path | None = None,
) -> tuple[StructuredLogger, FetchEventLogger]:
    """
    Create the structured loggers for a run.

    Returns:
        Tuple of (base_logger, fetch_logger)
    """
    base = StructuredLogger("manifest_fetcher.events", log_dir=log_dir)
    return base, FetchEventLogger(base)
