"""Optimise a single PNG file."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..config import EngineConfig
from ..errors import LightPngError
from ..logging_sink import LoggingSink, format_bytes, setup_logging
from ..optimizer import OptimizationResult, Optimizer
from ..quantize import create_quantizer
from .utils import format_psnr, handle_generic_error


def _status_line(result: OptimizationResult) -> str:
    if result.already_optimized:
        return f"⏭️  Already optimized by {result.already_optimized_by}"
    if result.cant_optimize:
        return "➖ Cannot optimize: output would not be smaller"
    if result.inspection_failed:
        return "⚠️  Quality inspection failed, nothing written"
    return "✅ Optimized"


def display_result(result: OptimizationResult) -> None:
    """Print a summary table for *result*."""
    console = Console()
    console.print(_status_line(result))

    if result.already_optimized:
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Step", style="cyan", no_wrap=True)
    table.add_column("Outcome", justify="center")
    table.add_column("Size", justify="right")
    table.add_column("Details", style="dim")

    table.add_row("original", "", format_bytes(result.before_size), "")
    table.add_row(
        "strip",
        result.strip.status.value,
        format_bytes(result.size_after_strip),
        str(result.strip.error or ""),
    )
    table.add_row(
        "pngquant",
        result.quantize.status.value,
        format_bytes(result.size_after_quantize),
        str(result.quantize.error)
        if result.quantize.error
        else (format_psnr(result.quantize.psnr) if result.quantize.psnr else ""),
    )
    if result.after_size:
        table.add_row("final", "", format_bytes(result.after_size), format_psnr(result.final_psnr))

    console.print(table)


@click.command()
@click.argument("src", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("dest", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--quality",
    "-q",
    type=str,
    default="",
    help="Quality level: high, low, force (anything else uses the default threshold)",
)
@click.option(
    "--quantizer",
    type=click.Choice(["pillow", "pngquant"]),
    default=None,
    help="Quantization engine (default: pillow, or LIGHTPNG_QUANTIZER)",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the optimisation result as JSON",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity (default: WARNING)",
)
def optimize(
    src: Path,
    dest: Path,
    quality: str,
    quantizer: str | None,
    output_json: bool,
    log_level: str,
) -> None:
    """Optimise SRC into DEST, embedding a LightFile record.

    DEST is only written when the result is smaller than SRC and passes the
    final quality inspection.
    """
    logger = setup_logging(log_level)
    engine_config = EngineConfig()
    if quantizer:
        # Command-line choice beats LIGHTPNG_QUANTIZER
        engine_config.QUANTIZER = quantizer
    optimizer = Optimizer(
        quality,
        LoggingSink(logger),
        quantizer=create_quantizer(engine_config),
        engine_config=engine_config,
    )

    try:
        result = optimizer.run(src, dest)
    except LightPngError as e:
        handle_generic_error("optimize", e)
        return

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        display_result(result)
