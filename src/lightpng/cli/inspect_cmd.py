"""Show the optimisation record embedded in a PNG file."""

import json
from pathlib import Path

import click

from ..comment import read_comment
from ..config import DEFAULT_QUALITY_CONFIG
from ..errors import LightPngError, SystemFaultError, error_context
from .utils import format_psnr, handle_generic_error


@click.command()
@click.argument("png_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Print the raw comment payload only",
)
def inspect(png_file: Path, output_json: bool) -> None:
    """Show the LightFile comment of PNG_FILE, if any."""
    try:
        with error_context("read PNG file", SystemFaultError, context={"path": str(png_file)}):
            data = png_file.read_bytes()
        comment, raw = read_comment(data, DEFAULT_QUALITY_CONFIG.COMMENT_KEYWORD)
    except LightPngError as e:
        handle_generic_error("inspect", e)
        return

    if output_json:
        click.echo(json.dumps(comment.to_dict()) if comment else raw)
        return

    if comment is None:
        if raw:
            click.echo(f"⚠️  Unreadable {DEFAULT_QUALITY_CONFIG.COMMENT_KEYWORD} comment: {raw}")
        else:
            click.echo("ℹ️  No optimisation record found")
        return

    click.echo(f"🏷️  Optimised by: {comment.by}")
    click.echo(f"   • Before: {comment.before} bytes")
    click.echo(f"   • After: {comment.after} bytes")
    click.echo(f"   • PNGQuant: {'yes' if comment.pngquant else 'no'}")
    click.echo(f"   • PSNR: {format_psnr(comment.psnr)}")
