"""
Loguru configuration.

Console output for interactive runs plus the append-only log file that is
the only record of what happened to each archive.
"""

import sys

from loguru import logger

from app.utils.config import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default handler with console and file sinks."""
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=settings.log_level)

    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    # enqueue: a single writer thread, so lines from workers never interleave
    logger.add(
        settings.log_file,
        format=FILE_FORMAT,
        level=settings.log_level,
        mode="a",
        encoding="utf-8",
        enqueue=True,
    )
