"""Tests for lightpng.size module."""

import pytest

from lightpng.size import sizes_within_1_percent, sizes_within_tolerance


@pytest.mark.fast
@pytest.mark.parametrize(
    "actual, expected, result",
    [
        (1000, 1000, True),
        (1010, 1000, True),
        (990, 1000, True),
        (1011, 1000, False),
        (989, 1000, False),
        (0, 0, True),
        (1, 0, False),
    ],
)
def test_within_1_percent(actual, expected, result):
    assert sizes_within_1_percent(actual, expected) is result


@pytest.mark.fast
def test_custom_tolerance():
    assert sizes_within_tolerance(1100, 1000, 0.1)
    assert not sizes_within_tolerance(1101, 1000, 0.1)
