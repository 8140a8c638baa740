"""Logging configuration for the personalization services.

All modules log through ``loguru.logger``; this module only decides where
records go.
"""

import sys
from pathlib import Path

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(log_level: str = "INFO", log_dir: Path | str | None = None) -> None:
    """Install console and, optionally, rotating file sinks.

    Args:
        log_level: Minimum level for the console and application log
        log_dir: Directory for ``app.log``, ``errors.log`` and ``realtime.log``.
                 No file sinks are installed when None.
    """
    logger.remove()

    logger.add(
        sys.stdout,
        level=log_level,
        format=CONSOLE_FORMAT,
        colorize=True,
    )

    if log_dir is None:
        return

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_dir / "app.log",
        level=log_level,
        format=FILE_FORMAT,
        rotation="100 MB",
        retention="7 days",
        compression="zip",
    )

    logger.add(
        log_dir / "errors.log",
        level="ERROR",
        format=FILE_FORMAT,
        rotation="50 MB",
        retention="30 days",
        compression="zip",
    )

    # Per-score traffic from the session pipeline
    logger.add(
        log_dir / "realtime.log",
        level="DEBUG",
        format=FILE_FORMAT,
        rotation="200 MB",
        retention="3 days",
        compression="zip",
        filter=lambda record: "personalization.realtime" in record["name"],
    )
