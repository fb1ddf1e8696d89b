"""HCL serializer.

Renders, in fixed order: provider preamble, variables, resources, outputs.
Insertion order is preserved everywhere; nothing is re-sorted.

Value rules:
    - ``None`` arguments are omitted.
    - Multi-line strings render as ``<<EOT`` heredocs with exact newlines.
    - Single-line strings are quoted unless they start with a raw
      expression prefix (``var.``, ``aws_``, ``jsonencode(`` ...).
    - Dicts render as nested blocks, except allow-listed keys (``tags``,
      ``labels``, ``variables``) which render as ``key = { ... }`` maps.
    - Lists render as ``[a, b]``, recursing per element.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from infracanvas.domain.models import TerraformResource
from infracanvas.domain.types import Provider

RAW_PREFIXES: tuple[str, ...] = (
    "var.",
    "local.",
    "data.",
    "aws_",
    "google_",
    "azurerm_",
    "supabase_",
    "archive_",
    "jsonencode(",
)

INLINE_MAP_KEYS = frozenset({"tags", "labels", "variables"})

INDENT = "  "

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
_BLOCK_HEADER = re.compile(r'^(resource|data)\s+"[^"]+"\s+"[^"]+"\s*\{')
_HEREDOC_OPEN = re.compile(r"<<-?([A-Za-z_][A-Za-z0-9_]*)\s*$")

_PREAMBLES: dict[str, str] = {
    Provider.AWS: """\
terraform {
  required_providers {
    aws = {
      source  = "hashicorp/aws"
      version = "~> 5.0"
    }
    archive = {
      source  = "hashicorp/archive"
      version = "~> 2.4"
    }
  }
}

provider "aws" {
  region = var.region
}
""",
    Provider.GCP: """\
terraform {
  required_providers {
    google = {
      source  = "hashicorp/google"
      version = "~> 5.0"
    }
  }
}

provider "google" {
  project = var.project_id
  region  = var.region
}
""",
    Provider.AZURE: """\
terraform {
  required_providers {
    azurerm = {
      source  = "hashicorp/azurerm"
      version = "~> 3.0"
    }
  }
}

provider "azurerm" {
  features {}
}
""",
    Provider.SUPABASE: """\
terraform {
  required_providers {
    supabase = {
      source  = "supabase/supabase"
      version = "~> 1.0"
    }
  }
}

provider "supabase" {
  access_token = var.supabase_access_token
}
""",
}


def provider_preamble(provider: str) -> str:
    """The ``terraform``/``provider`` blocks for *provider*.

    Depends on the provider name only. Unknown providers get a bare
    ``provider "<name>" {}`` block.
    """
    preamble = _PREAMBLES.get(provider)
    if preamble is not None:
        return preamble
    return f'provider "{provider}" {{}}\n'


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def is_raw_expression(value: str) -> bool:
    return value.startswith(RAW_PREFIXES)


def quote(value: str) -> str:
    """Quote a single-line string, escaping backslashes and double quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def heredoc(value: str) -> str:
    """Render *value* as a heredoc; the marker avoids colliding with content."""
    lines = value.split("\n")
    marker = "EOT"
    suffix = 0
    while marker in lines:
        suffix += 1
        marker = f"EOT{suffix}"
    return f"<<{marker}\n{value}\n{marker}"


def render_key(key: str) -> str:
    return key if _IDENTIFIER.match(key) else quote(key)


def render_value(value: Any, indent: int = 0) -> str:
    """Render *value* as an HCL expression at nesting depth *indent*."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return repr(value)
    if isinstance(value, str):
        if "\n" in value:
            return heredoc(value)
        if is_raw_expression(value):
            return value
        return quote(value)
    if isinstance(value, Mapping):
        return _render_map(value, indent)
    if isinstance(value, Sequence):
        return "[" + ", ".join(render_value(item, indent) for item in value) + "]"
    return quote(str(value))


def _render_map(value: Mapping[str, Any], indent: int) -> str:
    if not value:
        return "{}"
    pad = INDENT * (indent + 1)
    lines = ["{"]
    for key, item in value.items():
        lines.append(f"{pad}{render_key(str(key))} = {render_value(item, indent + 1)}")
    lines.append(f"{INDENT * indent}}}")
    return "\n".join(lines)


def render_body(config: Mapping[str, Any], indent: int = 1) -> list[str]:
    """Argument and nested-block lines for a block body."""
    pad = INDENT * indent
    lines: list[str] = []
    for key, value in config.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and key not in INLINE_MAP_KEYS:
            if not value:
                lines.append(f"{pad}{key} {{}}")
                continue
            lines.append(f"{pad}{key} {{")
            lines.extend(render_body(value, indent + 1))
            lines.append(f"{pad}}}")
            continue
        lines.append(f"{pad}{render_key(key)} = {render_value(value, indent)}")
    return lines


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


def render_resource(resource: TerraformResource) -> str:
    keyword = "data" if resource.mode == "data" else "resource"
    lines = [f'{keyword} "{resource.type}" "{resource.name}" {{']
    lines.extend(render_body(resource.config))
    if resource.dependencies:
        lines.append("")
        lines.append(f"{INDENT}depends_on = [{', '.join(resource.dependencies)}]")
    lines.append("}")
    return "\n".join(lines)


def render_variable(name: str, spec: Mapping[str, Any]) -> str:
    lines = [f'variable "{name}" {{']
    for key, value in spec.items():
        if value is None:
            continue
        # type constraints are expressions, never strings
        rendered = str(value) if key == "type" else render_value(value, 1)
        lines.append(f"{INDENT}{key} = {rendered}")
    lines.append("}")
    return "\n".join(lines)


def render_output(name: str, spec: Mapping[str, Any]) -> str:
    lines = [f'output "{name}" {{']
    lines.extend(render_body(spec))
    lines.append("}")
    return "\n".join(lines)


def render_artifact(
    preamble: str,
    variables: Mapping[str, Mapping[str, Any]],
    resources: Sequence[TerraformResource],
    outputs: Mapping[str, Mapping[str, Any]],
) -> str:
    """Serialize a full artifact in preamble → variables → resources → outputs order."""
    sections: list[str] = [preamble.rstrip("\n")]
    if variables:
        sections.append("# Variables")
        sections.extend(render_variable(name, spec) for name, spec in variables.items())
    if resources:
        sections.append("# Resources")
        sections.extend(render_resource(resource) for resource in resources)
    if outputs:
        sections.append("# Outputs")
        sections.extend(render_output(name, spec) for name, spec in outputs.items())
    return "\n\n".join(sections) + "\n"


def count_resource_blocks(text: str) -> int:
    """Count top-level ``resource``/``data`` blocks, ignoring heredoc bodies."""
    count = 0
    marker: str | None = None
    for line in text.splitlines():
        if marker is not None:
            if line.strip() == marker:
                marker = None
            continue
        if _BLOCK_HEADER.match(line):
            count += 1
        opened = _HEREDOC_OPEN.search(line)
        if opened:
            marker = opened.group(1)
    return count
