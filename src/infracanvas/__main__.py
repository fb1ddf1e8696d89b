from infracanvas.cli import cli

cli()
