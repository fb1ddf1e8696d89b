"""Rich Console factory and theme.

Consoles render into a StringIO buffer so renderers keep a plain
``-> str`` contract. Outside a terminal (tests, pipes) Rich emits no
color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CANVAS_THEME = Theme(
    {
        "ic.ok": "bold green",
        "ic.error": "bold red",
        "ic.warning": "bold yellow",
        "ic.op": "bold cyan",
        "ic.key": "dim",
        "ic.address": "bold blue",
        "ic.path": "dim",
        "ic.add": "green",
        "ic.change": "yellow",
        "ic.destroy": "red",
    }
)

_CHANGE_STYLES: dict[str, str] = {
    "to_add": "ic.add",
    "to_change": "ic.change",
    "to_destroy": "ic.destroy",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=CANVAS_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_change(kind: str) -> str:
    """Rich style for a plan change column (``to_add`` etc.)."""
    return _CHANGE_STYLES.get(kind, "")
