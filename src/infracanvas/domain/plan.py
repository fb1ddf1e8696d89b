"""Plan-output interpreter."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, computed_field

PLAN_LINE = re.compile(r"Plan: (\d+) to add, (\d+) to change, (\d+) to destroy")
NO_CHANGES = "No changes."


class PlanSummary(BaseModel):
    """Resource change counts extracted from ``terraform plan`` stdout."""

    model_config = ConfigDict(frozen=True)

    to_add: int = 0
    to_change: int = 0
    to_destroy: int = 0
    raw_output: str = ""
    no_changes: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_changes(self) -> int:
        return self.to_add + self.to_change + self.to_destroy


def interpret_plan(stdout: str) -> PlanSummary:
    """Scan plan output line by line; the last ``Plan:`` line wins.

    ``No changes.`` only sets the flag, and only when no ``Plan:`` line was
    seen anywhere in the output. Output without any summary line yields zero
    counts rather than an error.
    """
    counts: tuple[int, int, int] | None = None
    saw_no_changes = False
    for line in stdout.splitlines():
        match = PLAN_LINE.search(line)
        if match:
            counts = (int(match.group(1)), int(match.group(2)), int(match.group(3)))
        elif NO_CHANGES in line:
            saw_no_changes = True
    to_add, to_change, to_destroy = counts or (0, 0, 0)
    return PlanSummary(
        to_add=to_add,
        to_change=to_change,
        to_destroy=to_destroy,
        raw_output=stdout,
        no_changes=saw_no_changes and counts is None,
    )
