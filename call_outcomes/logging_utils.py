"""Logging setup shared by the CLI and long-running batch jobs.

Batch runs are often piped into `head` or run under a supervisor that closes
stdout early, so console output goes through SafeStreamHandler. When a log
directory is configured, a rotating analysis log is written alongside.
"""
import logging
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ANALYSIS_LOG_NAME = "analysis.log"
ANALYSIS_LOG_MAX_BYTES = 10 * 1024 * 1024
ANALYSIS_LOG_BACKUPS = 5


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that drops records once its stream is gone.

    A closed pipe raises BrokenPipeError, a closed file raises ValueError.
    Either way the record is lost for this handler only; file handlers still
    receive it.
    """

    def emit(self, record):
        try:
            super().emit(record)
        except BrokenPipeError:
            pass  # reader went away
        except ValueError:
            pass  # stream already closed


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Configure the root logger for console and, optionally, file output.

    Safe to call repeatedly: handlers are only added once.

    Args:
        level: Level name or number for the root logger and its handlers
        log_dir: Directory for the rotating analysis log; no file log if None

    Returns:
        The root logger
    """
    level = _resolve_level(level)
    root = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if not any(isinstance(h, SafeStreamHandler) for h in root.handlers):
        console = SafeStreamHandler()
        console.setFormatter(formatter)
        console.setLevel(level)
        root.addHandler(console)

    if log_dir is not None:
        log_path = Path(log_dir) / ANALYSIS_LOG_NAME
        already_attached = any(
            isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_path.resolve()
            for h in root.handlers
        )
        if not already_attached:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=ANALYSIS_LOG_MAX_BYTES,
                backupCount=ANALYSIS_LOG_BACKUPS,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(level)
            root.addHandler(file_handler)

    # Some client libraries raise the root level on import
    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)

    # aiohttp/httpx request chatter is noise at INFO
    for noisy in ("httpx", "openai", "aiohttp.access"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return root


@contextmanager
def log_duration(logger: logging.Logger, operation: str, **fields):
    """Log how long the wrapped block took, in milliseconds."""
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        extra = " ".join(f"{key}={value}" for key, value in fields.items())
        suffix = f" ({extra})" if extra else ""
        logger.info(f"{operation} completed in {elapsed_ms}ms{suffix}")


def mask_secret(value: Optional[str], visible: int = 6) -> str:
    """Show only the first few characters of a credential."""
    if not value:
        return "<unset>"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}..."
