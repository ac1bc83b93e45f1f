"""
Thunder - Logging
==================
All Thunder loggers hang off one ``thunder`` parent logger.  The parent
owns the only handler (stdout) and its level; module loggers carry no
handlers of their own and propagate to it.

Level resolution:
  • ``settings.LOG_LEVEL`` when set
  • otherwise ``settings.ENV``: ``"dev"`` → DEBUG, ``"prod"`` → WARNING

Names outside the package (``__main__`` when a script is run directly)
are re-parented under ``thunder`` so they share the same output.

Usage:
    from thunder.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("[TAG] Something happened")
"""

import logging
import sys

from thunder.config.settings import settings

ROOT_LOGGER_NAME = "thunder"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ENV_LEVELS = {"dev": logging.DEBUG, "prod": logging.WARNING}


def resolve_level(log_level: str | None, env: str) -> int:
    """Return the numeric level for an explicit name, else the one implied by *env*."""
    if log_level:
        return logging.getLevelName(log_level.upper())
    return _ENV_LEVELS.get(env, logging.INFO)


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
        root.setLevel(resolve_level(settings.LOG_LEVEL, settings.ENV))
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return the logger for *name* inside the ``thunder`` tree."""
    root = _root_logger()
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return root.getChild(name)
