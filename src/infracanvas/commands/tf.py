"""Command group: run terraform inside the sandbox."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

import click

from infracanvas.commands._base import CanvasGroup

if TYPE_CHECKING:
    from infracanvas.commands._context import AppContext
    from infracanvas.services.result import ServiceResult


def _target_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options every terraform subcommand shares."""
    options = [
        click.option(
            "--workdir",
            "-w",
            type=click.Path(file_okay=False, path_type=Path),
            default=None,
            help="Existing working directory (must be inside the sandbox root).",
        ),
        click.option(
            "--tf-file",
            type=click.File("r", encoding="utf-8"),
            default=None,
            help="Terraform code to run in a throwaway sandbox workspace.",
        ),
        click.option("--provider", "-p", default=None, help="Provider the credentials belong to."),
        click.option(
            "--credentials",
            "credentials_file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="JSON credentials file (flat or keyed by provider).",
        ),
        click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds."),
        click.option("--stream", is_flag=True, help="Echo terraform output to stderr as it arrives."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run(
    app: AppContext,
    operation: str,
    *,
    workdir: Path | None,
    tf_file: TextIO | None,
    provider: str | None,
    credentials_file: Path | None,
    timeout: float | None,
    stream: bool,
    **extra: Any,
) -> None:
    from infracanvas.services.credentials import load_credentials
    from infracanvas.services.result import ErrorCode, ServiceResult
    from infracanvas.services.terraform import TerraformService

    op = f"terraform_{operation}"
    credentials = None
    if credentials_file is not None:
        try:
            credentials = load_credentials(credentials_file)
        except (OSError, ValueError) as exc:
            app.emit(ServiceResult.failure(op, ErrorCode.INVALID_INPUT, str(exc)))
            return
        if not isinstance(credentials, dict):
            app.emit(ServiceResult.failure(op, ErrorCode.INVALID_CREDENTIALS, "Credentials must be a JSON object"))
            return

    echo = _echo_stderr if stream else None
    svc = TerraformService(app.settings, on_stdout=echo, on_stderr=echo)
    call = getattr(svc, operation)
    result: ServiceResult = asyncio.run(
        call(
            workdir=workdir,
            artifact_text=tf_file.read() if tf_file is not None else None,
            provider=provider or app.settings.generate.provider,
            credentials=credentials,
            timeout=timeout,
            **extra,
        )
    )
    app.emit(result)


def _echo_stderr(chunk: str) -> None:
    click.echo(chunk, err=True, nl=False)


@click.group(
    cls=CanvasGroup,
    examples="""\
  infracanvas tf init --workdir /tmp/terraform-sandbox/stack
  infracanvas tf validate --tf-file main.tf
  infracanvas tf plan --tf-file main.tf --credentials creds.json
  infracanvas --json tf plan -w /tmp/terraform-sandbox/stack --plan-file tfplan
  infracanvas tf apply -w /tmp/terraform-sandbox/stack --plan-file tfplan""",
)
def tf() -> None:
    """Run terraform init, validate, plan or apply in the sandbox."""


@tf.command(
    examples="""\
  infracanvas tf init --workdir /tmp/terraform-sandbox/stack
  infracanvas tf init --tf-file main.tf --stream""",
)
@_target_options
@click.pass_obj
def init(app: AppContext, **options: Any) -> None:
    """terraform init (no backend, no upgrades)."""
    _run(app, "init", **options)


@tf.command(
    examples="""\
  infracanvas tf validate --tf-file main.tf
  infracanvas tf validate -w /tmp/terraform-sandbox/stack""",
)
@_target_options
@click.pass_obj
def validate(app: AppContext, **options: Any) -> None:
    """terraform validate."""
    _run(app, "validate", **options)


@tf.command(
    examples="""\
  infracanvas tf plan --tf-file main.tf --credentials creds.json
  infracanvas tf plan -w /tmp/terraform-sandbox/stack --plan-file tfplan
  infracanvas -q tf plan --tf-file main.tf""",
)
@_target_options
@click.option("--plan-file", default=None, help="Save the plan under this name and return it base64 encoded.")
@click.pass_obj
def plan(app: AppContext, plan_file: str | None, **options: Any) -> None:
    """terraform plan, with a change summary."""
    _run(app, "plan", plan_file=plan_file, **options)


@tf.command(
    examples="""\
  infracanvas tf apply -w /tmp/terraform-sandbox/stack --plan-file tfplan
  infracanvas tf apply --tf-file main.tf --plan-file-data "$(jq -r .data.plan_file.data plan.json)"
  infracanvas tf apply -w /tmp/terraform-sandbox/stack --auto-approve""",
)
@_target_options
@click.option("--plan-file", default=None, help="Saved plan to apply.")
@click.option("--plan-file-data", default=None, help="Base64 plan contents, written into the workspace first.")
@click.option("--auto-approve", is_flag=True, help="Apply without a saved plan.")
@click.pass_obj
def apply(
    app: AppContext,
    plan_file: str | None,
    plan_file_data: str | None,
    auto_approve: bool,
    **options: Any,
) -> None:
    """terraform apply from a saved plan or with auto-approve."""
    _run(
        app,
        "apply",
        plan_file=plan_file,
        plan_file_data=plan_file_data,
        auto_approve=auto_approve,
        **options,
    )
