"""
Logging for the generation pipeline.

Every module gets a child of the ``ai_diagram_engine`` logger through
``get_logger``; handlers and levels are only ever set on that package logger.
Request payloads and API keys are never logged, only their shape.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

PACKAGE_LOGGER = "ai_diagram_engine"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Above CRITICAL: children inherit it, so nothing from the package is emitted
_SILENT = logging.CRITICAL + 10

_package_logger = logging.getLogger(PACKAGE_LOGGER)
_level_before_disable: int | None = None


def _to_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> logging.Logger:
    """
    Route diagram engine logs to stderr (or ``stream``) and optionally a file.

    Calling it again replaces the previous handlers, so the CLI can switch
    levels after reading its config file.

    Example:
        setup_logging("DEBUG")
        setup_logging("INFO", file="diagram-engine.log")
    """
    global _level_before_disable
    _level_before_disable = None

    resolved = _to_level(level)
    formatter = logging.Formatter(format or DEFAULT_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if file:
        handlers.append(logging.FileHandler(file))

    for handler in list(_package_logger.handlers):
        _package_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        _package_logger.addHandler(handler)
    _package_logger.setLevel(resolved)
    return _package_logger


def get_logger(name: str) -> logging.Logger:
    """Child logger for a submodule, e.g. ``get_logger("adapters.openai")``."""
    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def set_level(level: str | int) -> None:
    """Change the package level; a later ``enable()`` restores this level."""
    global _level_before_disable
    if _level_before_disable is not None:
        _level_before_disable = _to_level(level)
        return
    _package_logger.setLevel(_to_level(level))


def disable() -> None:
    """Silence every diagram engine logger until ``enable()``."""
    global _level_before_disable
    if _level_before_disable is None:
        _level_before_disable = _package_logger.level
    _package_logger.setLevel(_SILENT)


def enable() -> None:
    """Undo ``disable()``."""
    global _level_before_disable
    if _level_before_disable is None:
        return
    _package_logger.setLevel(_level_before_disable)
    _level_before_disable = None
