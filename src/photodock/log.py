"""Logging initialization using loguru."""

import sys
from pathlib import Path

from loguru import logger

from photodock.config import LOG_LEVEL

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def init_logging(log_dir: str | Path | None = None, level: str = LOG_LEVEL) -> None:
    """Replace the default sink with stderr output and an optional rotating file."""
    logger.remove()
    logger.add(sys.stderr, colorize=True, format=CONSOLE_FORMAT, level=level)

    if log_dir is None:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(log_path / "photodock_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        format=FILE_FORMAT,
        level=level,
    )
