"""Subcommand modules for expandctl.

Provides register_commands() which uses deferred imports to keep
``expandctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from expandctl.commands.debug import debug, debug_strict
    from expandctl.commands.default import default

    cli.add_command(debug)
    cli.add_command(debug_strict)
    cli.add_command(default)
