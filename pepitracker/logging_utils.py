"""Mini README: Application-wide logging helpers for the funds tracker.

Structure:
    * get_logger - factory returning module loggers with baseline configuration.
    * configure_root_logger - installs the root handler and adjusts the level.

Usage:
    Modules import ``get_logger`` and keep a module-level ``LOGGER``. Approval
    transitions, book changes and denied operations are logged with the record
    identifiers involved so an operator can follow a request end to end. The
    root handler is installed exactly once, preventing duplicate handlers when
    the web server reloads modules in development. Passing a level, by number
    or by name such as ``"debug"``, applies it even after the handler exists.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_INITIALISED = False


def configure_root_logger(level: Union[int, str, None] = None) -> None:
    """Configure the root logger with a readable, timestamped formatter."""

    global _LOGGER_INITIALISED
    root_logger = logging.getLogger()
    if not _LOGGER_INITIALISED:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.setLevel(logging.INFO)
        root_logger.addHandler(handler)
        _LOGGER_INITIALISED = True

    if level is not None:
        root_logger.setLevel(level.upper() if isinstance(level, str) else level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-specific logger ensuring baseline configuration."""

    configure_root_logger()
    return logging.getLogger(name)
