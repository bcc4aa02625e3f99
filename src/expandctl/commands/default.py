"""Command: static greeting."""

from __future__ import annotations

import click

from expandctl.commands._base import ExpandctlCommand


@click.command(cls=ExpandctlCommand, examples="  expandctl default")
def default() -> None:
    """Print a greeting."""
    click.echo("Hello, world!")
