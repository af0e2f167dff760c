"""Report external tools and engine support."""

import click
from PIL import features
from rich.console import Console
from rich.table import Table

from ..system_tools import get_available_tools


@click.command()
def tools() -> None:
    """Show which quantization engines are available."""
    console = Console()

    table = Table(title="🔧 Quantization engines", show_header=True, header_style="bold magenta")
    table.add_column("Engine", style="cyan", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Details", style="dim")

    liq = features.check_feature("libimagequant")
    table.add_row(
        "pillow",
        "[green]✅ Available[/green]",
        "libimagequant" if liq else "fast octree (Pillow built without libimagequant)",
    )

    for key, info in get_available_tools().items():
        status = "[green]✅ Available[/green]" if info.available else "[red]❌ Missing[/red]"
        details = f"{info.name} {info.version or ''}".strip() if info.available else ""
        table.add_row(key, status, details)

    console.print(table)
