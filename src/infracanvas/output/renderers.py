"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a StringIO-backed Console; :func:`render_result`
dispatches on ``result.op`` and falls back to a key-value renderer.
Terraform output is printed through ``Text`` so bracketed log lines are
never read as Rich markup.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from infracanvas.output.console import create_console, get_output, style_for_change

if TYPE_CHECKING:
    from rich.console import Console

    from infracanvas.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    data = result.data
    if result.op == "generate":
        return str(data.get("path") or data.get("text", "")).rstrip("\n")
    if result.op == "plan_summary":
        return _change_counts(data)
    if result.op == "terraform_plan" and "plan" in data:
        return _change_counts(data["plan"])
    items = data.get("items")
    if isinstance(items, list):
        keys = ("target_type", "service_type")
        return "\n".join(str(next((i[k] for k in keys if k in i), "")) for i in items)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _change_counts(summary: dict[str, Any]) -> str:
    return f"+{summary.get('to_add', 0)} ~{summary.get('to_change', 0)} -{summary.get('to_destroy', 0)}"


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="ic.ok")
    op = Text(f"  {result.op}", style="ic.op")
    console.print(Text.assemble(label, op))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="ic.key")
    if key in ("address", "command"):
        v = Text(str(value), style="ic.address")
    elif key in ("path", "working_directory"):
        v = Text(str(value), style="ic.path")
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, telemetry as a span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 10_000:
        style = "bold red"
    elif duration > 1000:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>10.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{ak}={av}" for ak, av in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _render_stream(console: Console, label: str, text: str) -> None:
    if not text.strip():
        return
    console.print()
    console.print(Text(f"  {label}:", style="dim"))
    console.print(Text(text.rstrip("\n")), soft_wrap=True)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="ic.error")
    op = Text(f"  {result.op}", style="ic.op")
    console.print(Text.assemble(label, op, ": ", msg))

    if not err or not err.detail:
        return
    for problem in err.detail.get("problems", []):
        console.print(Text(f"  - {problem}"))
    # terraform's own stderr is the most useful part of a failed run
    stderr = err.detail.get("stderr")
    if stderr:
        _render_stream(console, "stderr", stderr)
    if verbose:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            if k in ("stdout", "stderr", "problems"):
                continue
            console.print(Text(f"    {k}: {v}"))
        _render_stream(console, "stdout", err.detail.get("stdout", ""))


# ── Generation ────────────────────────────────────────────────────────


def _render_generate(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Without an output path the HCL itself is the result."""
    d = result.data
    if "path" not in d and not verbose:
        console.print(Text(d.get("text", "").rstrip("\n")), soft_wrap=True)
        return

    _status_line(console, result)
    for key in ("provider", "path", "resource_count", "dependency_count"):
        if key in d:
            _field(console, key, d[key])
    _field(console, "variables", len(d.get("variables", {})))
    _field(console, "outputs", len(d.get("outputs", {})))

    resources = d.get("resources", [])
    if resources:
        console.print()
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Address", style="ic.address", no_wrap=True)
        table.add_column("Node")
        table.add_column("Depends On", style="dim")
        for res in resources:
            table.add_row(
                str(res.get("address", "")),
                str(res.get("node_id") or ""),
                ", ".join(res.get("dependencies", [])),
            )
        console.print(table)

    if verbose:
        _render_meta(console, result)


# ── Terraform ─────────────────────────────────────────────────────────


def _plan_table(summary: dict[str, Any]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for kind in ("to_add", "to_change", "to_destroy"):
        table.add_column(kind.replace("_", " ").title(), style=style_for_change(kind), justify="right")
    table.add_column("Total", justify="right")
    table.add_row(
        str(summary.get("to_add", 0)),
        str(summary.get("to_change", 0)),
        str(summary.get("to_destroy", 0)),
        str(summary.get("total_changes", 0)),
    )
    return table


def _render_terraform(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render init/validate/plan/apply runs."""
    d = result.data
    _status_line(console, result)
    for key in ("command", "exit_code", "duration_ms", "working_directory"):
        if d.get(key) is not None:
            _field(console, key, d[key])

    plan = d.get("plan")
    if plan is not None:
        console.print()
        if plan.get("no_changes"):
            console.print(Text("  No changes. Infrastructure matches the configuration.", style="ic.ok"))
        else:
            console.print(_plan_table(plan))
    plan_file = d.get("plan_file")
    if plan_file:
        _field(console, "plan_file", f"{plan_file['name']} ({plan_file['size']} bytes)")

    if verbose or result.op != "terraform_plan":
        _render_stream(console, "stdout", d.get("stdout", ""))
    if verbose:
        _render_stream(console, "stderr", d.get("stderr", ""))
        _render_meta(console, result)


def _render_plan_summary(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    if result.data.get("no_changes"):
        console.print(Text("  No changes.", style="ic.ok"))
        return
    console.print(_plan_table(result.data))


# ── Catalog ───────────────────────────────────────────────────────────


def _render_rules(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    items = d.get("items", [])
    table = Table(
        title=f"{d.get('provider')} {d.get('service_type')} →",
        show_header=True,
        show_lines=False,
        pad_edge=False,
        expand=False,
    )
    table.add_column("Target", style="ic.address", no_wrap=True)
    table.add_column("Relationship")
    table.add_column("Required")
    if verbose:
        table.add_column("Description", style="dim")
    for item in items:
        row = [
            str(item.get("target_type", "")),
            str(item.get("relationship", "")),
            "yes" if item.get("required") else "",
        ]
        if verbose:
            row.append(str(item.get("description", "")))
        table.add_row(*row)
    console.print(table)
    console.print(f"\n{d.get('count', len(items))} targets")


def _render_services(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Service", style="ic.address", no_wrap=True)
    table.add_column("Terraform Type")
    table.add_column("Category", style="dim")
    for item in items:
        table.add_row(item["service_type"], item["terraform_type"], item["category"])
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} services")


def _render_credentials(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "provider", result.data.get("provider"))
    _field(console, "valid", result.data.get("valid"))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "generate": _render_generate,
    "terraform_init": _render_terraform,
    "terraform_validate": _render_terraform,
    "terraform_plan": _render_terraform,
    "terraform_apply": _render_terraform,
    "plan_summary": _render_plan_summary,
    "rules": _render_rules,
    "services": _render_services,
    "check_credentials": _render_credentials,
}
