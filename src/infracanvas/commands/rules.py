"""Commands: connection rules and registered services."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from infracanvas.commands._base import CanvasCommand

if TYPE_CHECKING:
    from infracanvas.commands._context import AppContext


@click.command(
    cls=CanvasCommand,
    examples="""\
  infracanvas rules aws lambda
  infracanvas -v rules aws ec2
  infracanvas --json rules gcp compute""",
)
@click.argument("provider")
@click.argument("service_type")
@click.pass_obj
def rules(app: AppContext, provider: str, service_type: str) -> None:
    """List the services SERVICE_TYPE may connect to on PROVIDER."""
    from infracanvas.services.catalog import CatalogService

    app.emit(CatalogService(app.settings).rules(provider, service_type))


@click.command(
    cls=CanvasCommand,
    examples="""\
  infracanvas services aws
  infracanvas -q services azure""",
)
@click.argument("provider")
@click.pass_obj
def services(app: AppContext, provider: str) -> None:
    """List the service types with a dedicated expansion on PROVIDER."""
    from infracanvas.services.catalog import CatalogService

    app.emit(CatalogService(app.settings).services(provider))
