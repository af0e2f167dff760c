"""File size comparison helpers."""


def sizes_within_tolerance(actual: int, expected: int, tolerance: float) -> bool:
    """Return ``True`` if *actual* is within *tolerance* (0.01 = 1%) of *expected*.

    An *expected* size of zero only matches an *actual* size of zero.
    """
    if expected == 0:
        return actual == 0
    return abs(actual - expected) / expected <= tolerance


def sizes_within_1_percent(actual: int, expected: int) -> bool:
    """:func:`sizes_within_tolerance` with a 1% tolerance."""
    return sizes_within_tolerance(actual, expected, 0.01)
