"""Shared utilities for CLI commands."""

import math
import sys

import click

from ..errors import is_data_error


def handle_generic_error(command_name: str, error: Exception) -> None:
    """Report *error* with its data/system classification and exit 1."""
    kind = "data error" if is_data_error(error) else "system error"
    click.echo(f"❌ {command_name} failed ({kind}): {error}", err=True)
    sys.exit(1)


def format_psnr(value: float) -> str:
    """Render a PSNR value, showing perfect matches as infinity."""
    if math.isinf(value):
        return "∞"
    return f"{value:.2f} dB"
