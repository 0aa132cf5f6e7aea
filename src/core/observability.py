"""
Structured logging with per-run correlation.

Every analysis run gets a run id; log lines emitted while the run is in
progress carry it automatically, so the extraction tallies of one upload
can be told apart from another's.

Usage:
    from core.observability import get_logger, with_run_context

    logger = get_logger(__name__)

    with with_run_context(run_id="a1b2c3", stage="extract"):
        logger.debug("Rows extracted", extra_fields={"kept": 120})
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class RunContext:
    """Correlation fields attached to every log line of a run."""

    run_id: str | None = None
    stage: str | None = None
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "RunContext":
        data = self.to_dict()
        data.update({k: v for k, v in kwargs.items() if v is not None})
        return RunContext(**data)


_run_context: ContextVar[RunContext] = ContextVar("run_context", default=RunContext())


def get_run_context() -> RunContext:
    return _run_context.get()


@contextmanager
def with_run_context(**kwargs):
    """Set correlation fields for the duration of the block."""
    new_ctx = get_run_context().merge(**kwargs)
    token = _run_context.set(new_ctx)
    try:
        yield new_ctx
    finally:
        _run_context.reset(token)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, including run context and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(get_run_context().to_dict())
        log_data.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """
    2024-06-01 12:00:00 [INFO ] dealership.pipeline [a1b2c3/extract]: Analysis finished kept=120
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_run_context()
        correlation = "/".join(p for p in (ctx.run_id, ctx.stage) if p) or "-"
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        msg = f"{timestamp} [{record.levelname:5}] {record.name} [{correlation}]: {record.getMessage()}"

        extra = getattr(record, "extra_fields", None)
        if extra:
            msg += " " + " ".join(f"{k}={v}" for k, v in extra.items())
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        return msg


class CorrelatedLogger:
    """Thin wrapper so call sites can pass `extra_fields=` per log call."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra_fields = kwargs.pop("extra_fields", None) or {}
        exc_info = kwargs.pop("exc_info", None)
        self._logger.log(
            level, msg, *args, exc_info=exc_info, extra={"extra_fields": extra_fields}
        )

    def debug(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.DEBUG):
            self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.INFO):
            self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.WARNING):
            self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.ERROR):
            self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.error(msg, *args, **kwargs)

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)


_loggers: dict[str, CorrelatedLogger] = {}
_configured = False


def configure_logging(level: int | str = logging.INFO, json_format: bool = False):
    """
    Install one stdout handler on the root logger.

    Safe to call repeatedly; only the first call has an effect.
    Streamlit re-executes the script on every interaction, hence the guard.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    for name in ["core", "dealership"]:
        logging.getLogger(name).setLevel(level)

    # openpyxl warns about every unsupported style/extension in vendor exports
    logging.getLogger("openpyxl").setLevel(logging.ERROR)

    _configured = True


def get_logger(name: str) -> CorrelatedLogger:
    """Correlated logger for `name` (typically __name__)."""
    if name not in _loggers:
        _loggers[name] = CorrelatedLogger(logging.getLogger(name))
    return _loggers[name]
