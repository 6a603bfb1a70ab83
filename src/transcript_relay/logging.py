"""Logging configuration for transcript-relay.

Provides centralized logging setup with file output to
~/.claude-transcript-hook/logs/ and a small timing helper used to record
how long each phase of a hook run or upload request takes.
"""

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from transcript_relay.config import DEFAULT_LOG_DIR


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Configure logging for a transcript-relay component.

    Creates a logger with both file and optional console handlers.
    Log files are written to <log_dir>/<name>.log.

    File logging is best-effort: if the log directory or file cannot be
    opened the logger is left with whatever handlers could be attached.
    The hook runs inside another tool and must never fail because its
    log is unwritable.

    Args:
        name: Logger name (used for log filename)
        log_dir: Directory for log files (defaults to ~/.claude-transcript-hook/logs/)
        level: Logging level (defaults to INFO)
        console: Whether to also log to stderr (defaults to True)

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    logger = logging.getLogger(f"transcript_relay.{name}")
    logger.setLevel(level)

    # Avoid adding duplicate handlers if already configured
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
    except OSError:
        file_handler = None

    if file_handler is not None:
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a transcript-relay component.

    This function returns an existing logger or creates a basic one.
    For full configuration with file output, use setup_logging().

    Args:
        name: Logger name (will be prefixed with 'transcript_relay.')

    Returns:
        Logger instance
    """
    return logging.getLogger(f"transcript_relay.{name}")


@contextmanager
def phase_timer(logger: logging.Logger, label: str, request_id: str = "") -> Iterator[None]:
    """Log the wall-clock duration of the enclosed block.

    The duration is logged even when the block raises.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        prefix = f"[{request_id}] " if request_id else ""
        logger.info("%sTIMING %s: %.1fms", prefix, label, elapsed_ms)
