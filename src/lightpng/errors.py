"""Error taxonomy for LightPNG.

Failures fall into two families:

* :class:`DataError` - the bytes we were given are the problem (malformed
  container, missing ``IEND``, mismatched image bounds, unsupported pixel
  layout, quantizer refusing the image).  Callers usually collect such files
  for analysis.
* :class:`SystemFaultError` - the environment is the problem (file not found,
  permission denied, stat failure).  Callers treat these as operational faults.

Errors are always chained with ``raise ... from ...`` so the root cause stays
inspectable; :func:`as_data_error` walks the chain to find it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager


class LightPngError(Exception):
    """Base exception class for all LightPNG errors."""

    def __init__(
        self, message: str, cause: BaseException | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class DataError(LightPngError):
    """Raised when image data or container structure is invalid or unsupported."""

    pass


class SystemFaultError(LightPngError):
    """Raised when file-system or other operating-system operations fail."""

    pass


# libimagequant / pngquant status codes
LIQ_OK = 0
QUALITY_TOO_LOW = 99
VALUE_OUT_OF_RANGE = 100
OUT_OF_MEMORY = 101
ABORTED = 102
INTERNAL_ERROR = 103
BUFFER_TOO_SMALL = 104
INVALID_POINTER = 105
UNSUPPORTED = 106

_STATUS_NAMES: dict[int, str] = {
    LIQ_OK: "LIQ_OK",
    QUALITY_TOO_LOW: "QualityTooLow",
    VALUE_OUT_OF_RANGE: "ValueOutOfRange",
    OUT_OF_MEMORY: "OutOfMemory",
    ABORTED: "Aborted",
    INTERNAL_ERROR: "InternalError",
    BUFFER_TOO_SMALL: "BufferTooSmall",
    INVALID_POINTER: "InvalidPointer",
    UNSUPPORTED: "Unsupported",
}


def translate_status(code: int) -> str:
    """Return the symbolic name of a quantizer status *code* ("Unknown" if unmapped)."""
    return _STATUS_NAMES.get(code, "Unknown")


class QuantizeError(DataError):
    """Raised when the quantization engine reports a non-OK status."""

    def __init__(self, code: int, engine: str = "quantizer", cause: BaseException | None = None):
        self.code = code
        self.status = translate_status(code)
        super().__init__(
            f"{engine}: failed to quantize with {self.status} (code {code})",
            cause=cause,
            context={"engine": engine, "code": code},
        )


def _iter_chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    pending: list[BaseException] = [error]
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for linked in (
            current.__cause__,
            current.__context__,
            getattr(current, "cause", None),
        ):
            if isinstance(linked, BaseException):
                pending.append(linked)


def as_data_error(error: BaseException | None) -> DataError | None:
    """Return the first :class:`DataError` found in *error*'s chain, else ``None``.

    The chain is every exception reachable through ``__cause__``,
    ``__context__`` and our own ``cause`` attribute, so wrapping layers never
    hide the classification from the caller.
    """
    if error is None:
        return None
    for candidate in _iter_chain(error):
        if isinstance(candidate, DataError):
            return candidate
    return None


def is_data_error(error: BaseException | None) -> bool:
    """Return ``True`` if *error* is, or wraps, a :class:`DataError`."""
    return as_data_error(error) is not None


@contextmanager
def error_context(
    operation: str,
    error_type: type[LightPngError] = DataError,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Iterator[None]:
    """Translate foreign exceptions raised inside the block into *error_type*.

    Usage:
        with error_context("read PNG file", SystemFaultError, context={"path": src}):
            data = Path(src).read_bytes()

    LightPNG errors pass through unchanged.
    """
    try:
        yield
    except LightPngError:
        raise
    except Exception as e:
        if logger is None:
            logger = logging.getLogger(__name__)
        error_ctx = dict(context or {})
        error_ctx.update(
            {
                "operation": operation,
                "original_error_type": type(e).__name__,
            }
        )
        logger.debug("Failed to %s: %s", operation, e)
        raise error_type(f"failed to {operation}: {e}", cause=e, context=error_ctx) from e
