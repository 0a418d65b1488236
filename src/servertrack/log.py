from __future__ import annotations

import inspect
import logging
from pathlib import Path
from sys import stdout

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> [<level>{level}</level>] | "
    "<fg #FFC1C1>{name}</fg #FFC1C1> | {message}"
)


class InterceptHandler(logging.Handler):
    """Route stdlib logging (apscheduler, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame:
            filename = frame.f_code.co_filename
            is_logging = filename == logging.__file__
            is_frozen = "importlib" in filename and "_bootstrap" in filename
            if depth > 0 and not (is_logging or is_frozen):
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    logger.remove()
    logger.add(stdout, colorize=True, format=LOG_FORMAT, level=level)
    if log_dir is not None:
        logger.add(
            log_dir / "{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="14 days",
            colorize=False,
            format=LOG_FORMAT,
            level=level,
            encoding="utf8",
        )
    logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)
    logging.getLogger("httpx").setLevel("WARNING")
    logging.getLogger("apscheduler").setLevel("WARNING")
