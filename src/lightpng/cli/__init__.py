"""CLI module for LightPNG commands.

This module re-exports all command functions so the console script entry
point and the tests share one command tree.
"""

import click

from .inspect_cmd import inspect
from .optimize_cmd import optimize
from .psnr_cmd import psnr
from .tools_cmd import tools


@click.group()
@click.version_option(version="0.1.0", prog_name="lightpng")
def main() -> None:
    """LightPNG - quality-gated PNG optimisation."""
    pass


main.add_command(optimize)
main.add_command(inspect)
main.add_command(psnr)
main.add_command(tools)

__all__ = [
    "inspect",
    "main",
    "optimize",
    "psnr",
    "tools",
]
