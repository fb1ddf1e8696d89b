"""Tests for the Rich console factory."""

from __future__ import annotations

from infracanvas.output.console import create_console, get_output, style_for_change


def test_console_renders_to_buffer() -> None:
    console = create_console()
    console.print("[ic.ok]OK[/ic.ok] done")
    assert get_output(console) == "OK done\n"


def test_width() -> None:
    assert create_console(width=80).width == 80


def test_change_styles() -> None:
    assert style_for_change("to_add") == "ic.add"
    assert style_for_change("to_destroy") == "ic.destroy"
    assert style_for_change("other") == ""
