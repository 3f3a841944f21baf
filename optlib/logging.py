"""Logging utilities for optlib.

Solvers log one debug line per iteration, termination at info level and
recoverable fallbacks (regularization, restarts, skipped updates) at warning
level. Nothing is printed unless the level is lowered.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

_DEFAULT_LEVEL = logging.WARNING
_DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_loggers: dict[str, logging.Logger] = {}


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get or create a logger below the ``optlib`` namespace.

    Loggers are cached so repeated calls never stack handlers.

    Args:
        name: Logger name, typically ``__name__``. ``None`` returns the
            package logger.

    Returns:
        Configured logger instance.

    Example:
        >>> from optlib.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("iteration 3: f=1.2e-3")
    """
    if name is None:
        name = "optlib"
    logger_name = name if name == "optlib" or name.startswith("optlib.") else f"optlib.{name}"

    if logger_name in _loggers:
        return _loggers[logger_name]

    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(_DEFAULT_LEVEL)
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_DEFAULT_LEVEL)
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    _loggers[logger_name] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the level of every optlib logger, including ones created later.

    Args:
        level: ``logging.DEBUG`` etc., or the level name as a string.
    """
    level = _coerce_level(level)
    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

    global _DEFAULT_LEVEL
    _DEFAULT_LEVEL = level


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[object] = None,
) -> None:
    """Replace the handlers of all optlib loggers.

    Args:
        level: Logging level (default: WARNING).
        format_string: Custom format string. Defaults to
            ``[%(levelname)s] %(name)s: %(message)s``.
        stream: Output stream (default: ``sys.stderr``).

    Example:
        >>> import logging
        >>> from optlib.logging import configure_logging
        >>> configure_logging(level=logging.DEBUG)
    """
    level = _coerce_level(level)
    if stream is None:
        stream = sys.stderr
    formatter = logging.Formatter(format_string or _DEFAULT_FORMAT)

    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler(stream)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    global _DEFAULT_LEVEL
    _DEFAULT_LEVEL = level


__all__ = ["configure_logging", "get_logger", "set_log_level"]
