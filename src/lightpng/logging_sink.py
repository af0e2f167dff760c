"""Pluggable log sinks for the optimisation pipeline.

Each :class:`~lightpng.optimizer.Optimizer` holds its own sink rather than
reaching for a process-wide logger, so concurrent optimisers can report to
different places.  Message templates use printf-style placeholders, which
lets :class:`LoggingSink` hand them to :mod:`logging` unformatted.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "LogSink",
    "LoggingSink",
    "NullSink",
    "format_bytes",
    "setup_logging",
]


@runtime_checkable
class LogSink(Protocol):
    """Four leveled methods, each taking a template plus positional args."""

    def debug(self, template: str, *args: Any) -> None: ...

    def info(self, template: str, *args: Any) -> None: ...

    def warn(self, template: str, *args: Any) -> None: ...

    def error(self, template: str, *args: Any) -> None: ...


class LoggingSink:
    """Forward sink calls to a standard library :class:`logging.Logger`."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("lightpng")

    def debug(self, template: str, *args: Any) -> None:
        self.logger.debug(template, *args)

    def info(self, template: str, *args: Any) -> None:
        self.logger.info(template, *args)

    def warn(self, template: str, *args: Any) -> None:
        self.logger.warning(template, *args)

    def error(self, template: str, *args: Any) -> None:
        self.logger.error(template, *args)


class NullSink:
    """Discard everything."""

    def debug(self, template: str, *args: Any) -> None:
        pass

    def info(self, template: str, *args: Any) -> None:
        pass

    def warn(self, template: str, *args: Any) -> None:
        pass

    def error(self, template: str, *args: Any) -> None:
        pass


_SIZE_UNITS = ["B", "kB", "MB", "GB", "TB", "PB"]


def format_bytes(size: int) -> str:
    """Render *size* with SI units, e.g. ``1536 -> "1.5 kB"``."""
    value = float(size)
    exponent = 0
    while abs(value) >= 1000 and exponent < len(_SIZE_UNITS) - 1:
        value /= 1000
        exponent += 1
    if exponent == 0:
        return f"{size} B"
    fmt = "{:.0f} {}" if value >= 10 else "{:.1f} {}"
    return fmt.format(value, _SIZE_UNITS[exponent])


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """Configure root logging for command-line use and return the package logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return logging.getLogger("lightpng")
