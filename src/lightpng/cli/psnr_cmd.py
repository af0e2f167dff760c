"""Quality score between two PNG files."""

from pathlib import Path

import click

from ..errors import LightPngError, SystemFaultError, error_context
from ..psnr import psnr_from_bytes
from .utils import format_psnr, handle_generic_error


@click.command()
@click.argument("first", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("second", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def psnr(first: Path, second: Path) -> None:
    """Print the PSNR between FIRST and SECOND (alpha ignored)."""
    try:
        with error_context("read PNG files", SystemFaultError):
            data1 = first.read_bytes()
            data2 = second.read_bytes()
        click.echo(format_psnr(psnr_from_bytes(data1, data2)))
    except LightPngError as e:
        handle_generic_error("psnr", e)
