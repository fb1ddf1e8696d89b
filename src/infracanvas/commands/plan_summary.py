"""Command: summarize captured ``terraform plan`` output."""

from __future__ import annotations

from typing import TYPE_CHECKING, TextIO

import click

from infracanvas.commands._base import CanvasCommand

if TYPE_CHECKING:
    from infracanvas.commands._context import AppContext


@click.command(
    "plan-summary",
    cls=CanvasCommand,
    examples="""\
  terraform plan -no-color > plan.txt && infracanvas plan-summary plan.txt
  terraform plan -no-color | infracanvas plan-summary
  infracanvas -q plan-summary plan.txt""",
)
@click.argument("plan_output", type=click.File("r", encoding="utf-8"), default="-")
@click.pass_obj
def plan_summary(app: AppContext, plan_output: TextIO) -> None:
    """Count resources to add, change and destroy in plan output."""
    from infracanvas.services.terraform import summarize_plan

    app.emit(summarize_plan(plan_output.read()))
