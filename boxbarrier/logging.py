"""Package loggers.

Every module logs through ``get_logger(__name__)``. The loggers live under
the ``boxbarrier`` namespace, write to stderr at WARNING by default and do
not propagate, so a host application sees boundary repairs and aborted
barrier loops without configuring anything. ``show_trace`` output is
emitted at INFO and therefore needs :func:`set_log_level` or
:func:`configure_logging` to become visible.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

_PACKAGE = "boxbarrier"
_DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_level = logging.WARNING
_registry: dict[str, logging.Logger] = {}


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def _qualify(name: Optional[str]) -> str:
    if not name or name == _PACKAGE:
        return _PACKAGE
    if name.startswith(_PACKAGE + "."):
        return name
    return f"{_PACKAGE}.{name}"


def _attach_stream(logger: logging.Logger, stream: IO, level: int, fmt: str) -> None:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the cached package logger for ``name``.

    Names outside the package are prefixed with ``boxbarrier.``; ``None``
    gives the package logger itself.

    Example:
        >>> from boxbarrier.logging import get_logger
        >>> get_logger("constrained.fminbox").name
        'boxbarrier.constrained.fminbox'
    """
    qualified = _qualify(name)
    logger = _registry.get(qualified)
    if logger is not None:
        return logger

    logger = logging.getLogger(qualified)
    if not logger.handlers:
        logger.setLevel(_level)
        _attach_stream(logger, sys.stderr, _level, _DEFAULT_FORMAT)
        logger.propagate = False
    _registry[qualified] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Change the level of every package logger and of loggers created later.

    ``level`` is a :mod:`logging` constant or its name (``"INFO"``, ...).
    """
    global _level
    _level = _coerce_level(level)
    for logger in _registry.values():
        logger.setLevel(_level)
        for handler in logger.handlers:
            handler.setLevel(_level)


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[IO] = None,
) -> None:
    """Route every package logger to a single stream.

    Existing handlers are dropped and replaced by one stream handler using
    ``format_string`` (default ``"[LEVEL] name: message"``) on ``stream``
    (default stderr).
    """
    global _level
    _level = _coerce_level(level)
    target = sys.stderr if stream is None else stream
    fmt = format_string or _DEFAULT_FORMAT
    for logger in _registry.values():
        logger.setLevel(_level)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        _attach_stream(logger, target, _level, fmt)


__all__ = ["configure_logging", "get_logger", "set_log_level"]
