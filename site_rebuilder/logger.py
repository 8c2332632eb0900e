# File: site_rebuilder/logger.py
"""Logging setup for SiteRebuilder.

Every module logs through the one named logger exported here::

    from site_rebuilder.logger import logger
    logger.info("Crawl start: %s", url)

Records go to stderr, so JSON printed by the CLI on stdout stays parseable;
``--log-file`` adds a size-rotated copy.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Union

LOGGER_NAME: Final[str] = "SiteRebuilder"
LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
LOG_FILE_BACKUPS: Final[int] = 3

LevelT = Union[int, str]


def _handlers(log_file: Union[str, Path, None], fmt: str) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                str(log_file),
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )
    formatter = logging.Formatter(fmt)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure(
    *,
    level: LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = LOG_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Apply *level* and attach console (plus optional file) handlers.

    With ``replace_handlers=False`` the new handlers are added next to the
    existing ones; old handlers are closed otherwise.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level.upper() if isinstance(level, str) else level)
    if replace_handlers:
        for old in list(lg.handlers):
            lg.removeHandler(old)
            old.close()
    for handler in _handlers(log_file, log_format):
        lg.addHandler(handler)
    lg.propagate = False
    return lg


def init_logging(
    level: LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = LOG_FORMAT,
) -> logging.Logger:
    """CLI entry point: fresh handlers at *level*."""
    return configure(level=level, log_file=log_file, log_format=log_format)


logger: logging.Logger = init_logging()

__all__ = ["LOGGER_NAME", "logger", "configure", "init_logging"]
