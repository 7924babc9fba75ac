"""Shared structlog configuration for the API process and library callers."""

from __future__ import annotations

import logging
import sys
from typing import IO

import structlog

from superarchitect.config import settings

SERVICE_NAME = "superarchitect"

_SDK_LOGGERS = ("google_genai", "httpx", "httpcore")

_LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class _TeeWriter:
    """Write to both stdout and a log file (JSON lines).

    If the file cannot be opened or a write fails, logging continues to
    stdout only.
    """

    def __init__(self, file_path: str) -> None:
        self._file: IO[str] | None = None
        try:
            self._file = open(file_path, "a")  # noqa: SIM115
        except OSError as exc:
            # structlog is not configured yet at this point
            print(
                f"WARNING: Could not open log file {file_path!r}: {exc}. "
                "Falling back to stdout-only logging.",
                file=sys.stderr,
            )

    @property
    def file_enabled(self) -> bool:
        return self._file is not None

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is not None:
            try:
                self._file.write(data)
                self._file.flush()
            except (OSError, ValueError):
                self._disable("write")

    def flush(self) -> None:
        sys.stdout.flush()
        if self._file is not None:
            try:
                self._file.flush()
            except (OSError, ValueError):
                self._disable("flush")

    def _disable(self, operation: str) -> None:
        self._file = None
        print(
            f"WARNING: Log file {operation} failed. File logging disabled.",
            file=sys.stderr,
        )


def resolve_level(name: str) -> int:
    return _LOG_LEVEL_MAP.get(name.upper(), logging.INFO)


def _add_service(_logger: object, _method: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def _quiet_sdk_loggers(level: int) -> None:
    # SDK request logs go through stdlib logging
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_run_context(run_id: str, project: str) -> None:
    """Tag every log line emitted by the current pipeline task.

    Call from inside the run's own task; the binding is scoped to that
    task's copied context.
    """
    structlog.contextvars.bind_contextvars(run_id=run_id, project=project)


def configure_logging() -> None:
    """Configure structlog with console renderer in dev, JSON elsewhere.

    Every line carries ``service`` and ``environment``; pipeline tasks add
    ``run_id`` and ``project`` through ``bind_run_context``. When LOG_FILE is
    set, logs are written to both stdout and the file.
    """
    level = resolve_level(settings.log_level)
    _quiet_sdk_loggers(level)
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.environment == "development"
        else structlog.processors.JSONRenderer()
    )

    logger_factory: structlog.types.WrappedLogger
    if settings.log_file:
        # PrintLoggerFactory only uses write() and flush() from the file object
        logger_factory = structlog.PrintLoggerFactory(file=_TeeWriter(settings.log_file))  # type: ignore[arg-type]
    else:
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )
