"""Logging setup for Gitlet.

Engine modules log through ``logging.getLogger(__name__)``; this module wires
the ``gitlet`` logger to a rich handler on stderr so diagnostic records never
mix with command output on stdout.
"""

import logging
import os
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from gitlet.constants import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV

_handler: Optional[RichHandler] = None


def resolve_level(verbose: bool = False) -> int:
    """Pick the log level from the --verbose flag or the environment."""
    if verbose:
        return logging.DEBUG
    name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: Union[int, str] = logging.WARNING) -> logging.Logger:
    """Attach a RichHandler to the package logger.

    Safe to call more than once; the handler is installed a single time and
    only its level changes afterwards.

    Args:
        level: Logging level (int or level name)

    Returns:
        The configured ``gitlet`` logger
    """
    global _handler

    logger = logging.getLogger("gitlet")
    if _handler is None:
        _handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
        )
        _handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(_handler)

    logger.setLevel(level)
    _handler.setLevel(level)
    return logger
