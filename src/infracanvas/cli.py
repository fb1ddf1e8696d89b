"""Root ``infracanvas`` group: output flags, settings overrides, subcommands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from infracanvas import __version__
from infracanvas.commands import register_commands
from infracanvas.commands._base import CanvasGroup
from infracanvas.commands._context import AppContext
from infracanvas.config.settings import CanvasSettings


def _overrides(terraform: str | None, sandbox_root: Path | None) -> dict[str, Any]:
    """Nested settings sections for the flags that were actually given."""
    sections: dict[str, Any] = {}
    if terraform:
        sections["executor"] = {"binary": terraform}
    if sandbox_root is not None:
        sections["sandbox"] = {"root": sandbox_root}
    return sections


@click.group(
    cls=CanvasGroup,
    invoke_without_command=True,
    examples="""\
  infracanvas generate canvas.json -o infra/main.tf
  infracanvas --terraform /opt/terraform/bin/terraform tf init --workdir infra
  infracanvas --sandbox-root /srv/canvas tf plan --tf-file main.tf
  infracanvas --json services aws""",
)
@click.version_option(version=__version__, prog_name="infracanvas")
@click.option("--json", "json_output", is_flag=True, help="Print the ServiceResult as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output (HCL, counts or OK lines).")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and telemetry spans.")
@click.option("--log-json", is_flag=True, help="Log to stderr as JSON lines.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Use this infracanvas.toml instead of searching upward.",
)
@click.option("--terraform", default=None, metavar="PATH", help="terraform executable to run.")
@click.option(
    "--sandbox-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory every terraform working directory must live under.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    terraform: str | None,
    sandbox_root: Path | None,
) -> None:
    """infracanvas: canvas graphs to Terraform, run in a sandbox."""
    settings = CanvasSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        **_overrides(terraform, sandbox_root),
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
