"""structlog over stdlib logging, written as JSON lines under the keyfetch home.

Layout of ``$KEYFETCH_HOME/logs`` (repository root when unset)::

    keyfetch.log        every INFO+ event
    error.log           ERROR+ events only
    jobs/<job>.log      events of one job, also copied to keyfetch.log

Logging is reconfigured when ``KEYFETCH_HOME`` points somewhere new, so a
process switching homes never keeps writing into the previous one.
"""

from __future__ import annotations

import logging
import logging.config
import os
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable

import structlog

ROOT_LOGGER = "keyfetch"
JOB_LOGGER_PREFIX = f"{ROOT_LOGGER}.job."

_state_lock = Lock()
_configured_for: Path | None = None
_job_handlers: Dict[str, logging.FileHandler] = {}


@dataclass(frozen=True, slots=True)
class LogLayout:
    root: Path

    @classmethod
    def current(cls) -> "LogLayout":
        env_root = os.environ.get("KEYFETCH_HOME")
        if env_root:
            return cls(Path(env_root).expanduser().resolve() / "logs")
        return cls(Path(__file__).resolve().parents[1] / "logs")

    @property
    def main_log(self) -> Path:
        return self.root / "keyfetch.log"

    @property
    def error_log(self) -> Path:
        return self.root / "error.log"

    @property
    def jobs_dir(self) -> Path:
        return self.root / "jobs"

    def job_log(self, job_name: str) -> Path:
        return self.jobs_dir / f"{job_name}.log"


def _dict_config(layout: LogLayout, level: str) -> dict:
    def file_handler(path: Path, handler_level: str) -> dict:
        return {
            "class": "logging.FileHandler",
            "level": handler_level,
            "filename": str(path),
            "encoding": "utf-8",
            "formatter": "json",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "main_file": file_handler(layout.main_log, "INFO"),
            "error_file": file_handler(layout.error_log, "ERROR"),
        },
        "loggers": {
            ROOT_LOGGER: {
                "handlers": ["console", "main_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure handlers for the current home once and return the app logger."""

    global _configured_for
    layout = LogLayout.current()
    with _state_lock:
        if _configured_for != layout.root:
            layout.jobs_dir.mkdir(parents=True, exist_ok=True)
            _close_job_handlers()
            logging.config.dictConfig(_dict_config(layout, "DEBUG" if verbose else "INFO"))
            if _configured_for is None:
                _configure_structlog()
            _configured_for = layout.root
    return structlog.get_logger(ROOT_LOGGER)


def job_logger(job_name: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to ``job_name`` that also writes ``jobs/<job>.log``."""

    configure_logging(verbose)
    logger_name = f"{JOB_LOGGER_PREFIX}{job_name}"
    with _state_lock:
        if job_name not in _job_handlers:
            handler = logging.FileHandler(LogLayout.current().job_log(job_name), encoding="utf-8")
            handler.setLevel(logging.INFO)
            main_handlers = logging.getLogger(ROOT_LOGGER).handlers
            if main_handlers:
                handler.setFormatter(main_handlers[0].formatter)
            logging.getLogger(logger_name).addHandler(handler)
            _job_handlers[job_name] = handler
    return structlog.get_logger(logger_name).bind(job=job_name)


def close_job_logs() -> None:
    """Detach and close every per-job file handler."""

    with _state_lock:
        _close_job_handlers()


def _close_job_handlers() -> None:
    for job_name, handler in _job_handlers.items():
        logging.getLogger(f"{JOB_LOGGER_PREFIX}{job_name}").removeHandler(handler)
        handler.close()
    _job_handlers.clear()


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_job_logs() -> Iterable[Path]:
    jobs_dir = LogLayout.current().jobs_dir
    if not jobs_dir.exists():
        return []
    return sorted(jobs_dir.glob("*.log"))


def main_log_path() -> Path:
    return LogLayout.current().main_log


def job_log_path(job_name: str) -> Path:
    return LogLayout.current().job_log(job_name)


__all__ = [
    "LogLayout",
    "available_job_logs",
    "close_job_logs",
    "configure_logging",
    "job_log_path",
    "job_logger",
    "main_log_path",
    "tail_log",
]
