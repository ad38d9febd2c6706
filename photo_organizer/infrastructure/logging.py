"""Logging initialization utilities using loguru."""

from __future__ import annotations

from pathlib import Path
import sys

from loguru import logger

_LEVELS = {-1: "ERROR", 0: "WARNING", 1: "INFO"}

CONSOLE_FORMAT = "<level>{level: <8}</level> {message}"


def level_for(verbosity: int) -> str:
    """Map `-q`/`-v` counts to a level: quiet=ERROR, default=WARNING, -v=INFO, -vv=DEBUG."""
    if verbosity >= 2:
        return "DEBUG"
    return _LEVELS.get(max(verbosity, -1), "WARNING")


def init_logging(verbosity: int = 0, log_dir: str | Path | None = None) -> None:
    """Initialize console logging and, if `log_dir` is given, rotating file logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level_for(verbosity),
        format=CONSOLE_FORMAT,
        backtrace=False,
        diagnose=False,
    )

    if log_dir is None:
        return
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(log_path / "organizer_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level="DEBUG",
    )
