"""Command: canvas graph JSON to Terraform HCL."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import click

from infracanvas.commands._base import CanvasCommand

if TYPE_CHECKING:
    from infracanvas.commands._context import AppContext


@click.command(
    cls=CanvasCommand,
    examples="""\
  infracanvas generate canvas.json
  infracanvas generate canvas.json --provider gcp
  infracanvas generate canvas.json -o infra/main.tf
  cat canvas.json | infracanvas generate -
  infracanvas --json generate canvas.json""",
)
@click.argument("graph_file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--provider",
    "-p",
    default=None,
    help="Target provider (aws, gcp, azure, supabase). Defaults to the graph's or config's.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the HCL to this file instead of stdout.",
)
@click.pass_obj
def generate(app: AppContext, graph_file: TextIO, provider: str | None, output: Path | None) -> None:
    """Generate Terraform from a canvas graph ({"nodes": [...], "edges": [...]})."""
    from infracanvas.services.generate import GenerateService, load_graph
    from infracanvas.services.result import ErrorCode, ServiceResult

    svc = GenerateService(app.settings)
    try:
        payload = load_graph(graph_file.read())
    except ValueError as exc:
        app.emit(ServiceResult.failure("generate", ErrorCode.INVALID_INPUT, str(exc)))
        return
    app.emit(
        svc.generate(
            payload.get("nodes", []),
            payload.get("edges", []),
            provider or payload.get("provider"),
            output=output,
        )
    )
