"""Command group: provider credential checks."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from infracanvas.commands._base import CanvasGroup

if TYPE_CHECKING:
    from infracanvas.commands._context import AppContext


@click.group(
    cls=CanvasGroup,
    examples="""\
  infracanvas credentials check aws creds.json
  infracanvas --json credentials check azure azure.json""",
)
def credentials() -> None:
    """Inspect provider credentials without using them."""


@credentials.command(
    examples="""\
  infracanvas credentials check aws creds.json
  infracanvas credentials check supabase bundle.json""",
)
@click.argument("provider")
@click.argument("credentials_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def check(app: AppContext, provider: str, credentials_file: Path) -> None:
    """Check the format of PROVIDER credentials in CREDENTIALS_FILE (JSON).

    The file may hold the provider's fields directly or a bundle keyed by
    provider name.
    """
    from infracanvas.services.credentials import CredentialService

    app.emit(CredentialService(app.settings).check_file(provider, credentials_file))
