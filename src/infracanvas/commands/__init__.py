"""Subcommand modules for infracanvas.

register_commands() imports lazily so ``infracanvas --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root group."""
    # --- Groups ---
    from infracanvas.commands.credentials import credentials
    from infracanvas.commands.tf import tf

    cli.add_command(tf)
    cli.add_command(credentials)

    # --- Standalone commands ---
    from infracanvas.commands.generate import generate
    from infracanvas.commands.plan_summary import plan_summary
    from infracanvas.commands.rules import rules, services

    cli.add_command(generate)
    cli.add_command(plan_summary)
    cli.add_command(rules)
    cli.add_command(services)
