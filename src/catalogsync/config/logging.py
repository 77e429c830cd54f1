"""Logging setup for the command line."""

from __future__ import annotations

import logging
import os
from typing import Final

from .errors import InvalidConfigurationError

LOG_LEVEL_ENV: Final[str] = "CATALOGSYNC_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# httpx logs every request line at INFO
HTTP_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore")


def resolve_log_level(*, verbose: bool = False) -> int:
    """``DEBUG`` when verbose, else ``CATALOGSYNC_LOG_LEVEL`` or ``INFO``."""

    if verbose:
        return logging.DEBUG
    name = os.getenv(LOG_LEVEL_ENV)
    if name is None or not name.strip():
        return logging.INFO
    level = logging.getLevelNamesMapping().get(name.strip().upper())
    if level is None:
        raise InvalidConfigurationError(LOG_LEVEL_ENV, name, "a logging level name")
    return level


def configure_logging(*, verbose: bool = False, force: bool = False) -> int:
    """Configure the root logger and return the level in effect.

    The HTTP stack stays at WARNING unless debug output was asked for.
    """

    level = resolve_log_level(verbose=verbose)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    http_level = level if level <= logging.DEBUG else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
    return level
