"""Logging helpers for cmdpipe.

Every module logs through ``logging.getLogger(__name__)`` so records land
under the ``cmdpipe`` namespace. :func:`init_logging` attaches a single
Rich handler to that namespace for CLI use; library users are free to
configure logging themselves and never call it.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "cmdpipe"

#: Accepted level names for ``--log-level`` / ``CMDPIPE_LOG_LEVEL``.
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``cmdpipe`` namespace.

    Args:
        name: Dotted logger name, with or without the ``cmdpipe.`` prefix.

    Returns:
        The namespaced logger (the root ``cmdpipe`` logger for ``None``).

    Examples:
        >>> get_logger("pipeline").name
        'cmdpipe.pipeline'
        >>> get_logger("cmdpipe.cli").name
        'cmdpipe.cli'
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def init_logging(level: str | int = "WARNING", *, console: Console | None = None) -> logging.Logger:
    """Configure the ``cmdpipe`` logger with a Rich handler.

    Calling it again replaces the previously installed handler, so the CLI
    can be invoked repeatedly in one process (tests) without duplicate output.

    Args:
        level: Level name or number.
        console: Rich console to write to (defaults to stderr).

    Returns:
        The configured ``cmdpipe`` logger.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    if isinstance(level, str):
        level_name = level.upper()
        if level_name not in LEVELS:
            raise ValueError(f"Invalid log level {level!r} (expected one of {', '.join(LEVELS)})")
        level = logging.getLevelName(level_name)

    logger = get_logger()
    for handler in list(logger.handlers):
        if getattr(handler, "_cmdpipe_handler", False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        show_time=False,
        markup=False,
    )
    handler._cmdpipe_handler = True  # type: ignore[attr-defined]
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


__all__ = [
    "LEVELS",
    "ROOT_LOGGER_NAME",
    "get_logger",
    "init_logging",
]
