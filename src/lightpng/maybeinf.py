"""JSON helpers for scores that may be positive infinity.

A perfect PSNR match is mathematically infinite, and strict JSON cannot
represent that.  Infinity is therefore written as ``null`` and ``null`` is read
back as positive infinity::

    perfect match: {"psnr": null}
    normal value:  {"psnr": 42.58}
"""

from __future__ import annotations

import math
from typing import Any

__all__ = ["dump_maybe_inf", "load_maybe_inf"]


def dump_maybe_inf(value: float) -> float | None:
    """Return the JSON-ready form of *value* (``None`` for +inf).

    Raises:
        ValueError: for NaN or negative infinity, which have no encoding.
    """
    value = float(value)
    if math.isnan(value):
        raise ValueError("NaN cannot be encoded as a score")
    if math.isinf(value):
        if value < 0:
            raise ValueError("negative infinity cannot be encoded as a score")
        return None
    return value


def load_maybe_inf(raw: Any) -> float:
    """Inverse of :func:`dump_maybe_inf`."""
    if raw is None:
        return math.inf
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"score must be a number or null, got {raw!r}")
    value = float(raw)
    if math.isnan(value) or value == -math.inf:
        raise ValueError(f"score must be finite or +inf, got {raw!r}")
    return value
