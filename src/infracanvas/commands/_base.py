"""Click classes that carry an ``--examples`` flag.

Terraform invocations pick up enough flags (``--workdir`` vs ``--tf-file``,
plan files, credentials) that worked examples live behind their own flag,
keeping ``--help`` to the option list. The flag is eager, so
``infracanvas credentials check --examples`` works without the required
arguments.
"""

from __future__ import annotations

from typing import Any

import click


def examples_option(examples: str) -> click.Option:
    """An eager flag that prints *examples* under a heading and exits 0."""

    def _print(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples.rstrip("\n"))
        ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        is_eager=True,
        expose_value=False,
        callback=_print,
        help="Show worked examples and exit.",
    )


class _WithExamples:
    examples: str | None = None

    def _attach_examples(self, examples: str | None) -> None:
        self.examples = examples
        if examples:
            self.params.append(examples_option(examples))  # type: ignore[attr-defined]


class CanvasCommand(_WithExamples, click.Command):
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._attach_examples(examples)


class CanvasGroup(_WithExamples, click.Group):
    """Group for ``tf`` and ``credentials``; subcommands default to :class:`CanvasCommand`."""

    command_class = CanvasCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._attach_examples(examples)
