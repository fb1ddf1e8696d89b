"""AppContext: shared Click context for all commands.

Created once by the root group and handed to subcommands via
``@click.pass_obj``. Owns logging setup and result emission (stdout or
stderr routing plus exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from infracanvas.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from infracanvas.config.settings import CanvasSettings
    from infracanvas.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: CanvasSettings) -> None:
        self.settings = settings

        from infracanvas.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from infracanvas.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr unless in JSON mode.
        * Failure: stderr, exit code 1.
        """
        settings = self.output_settings
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
