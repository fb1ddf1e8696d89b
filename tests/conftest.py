"""Shared pytest fixtures and test helpers for infracanvas tests."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from infracanvas.config.logging import PACKAGE_LOGGER
from infracanvas.config.settings import CanvasSettings
from infracanvas.services.telemetry import disable_telemetry

posix_only = pytest.mark.skipif(os.name != "posix", reason="fake terraform is a POSIX shell script")

FIXED_CLOCK_SECONDS = 1_700_000_000.0


def fixed_clock() -> float:
    return FIXED_CLOCK_SECONDS


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _telemetry_off() -> Iterator[None]:
    """``--verbose`` CLI tests enable telemetry on the shared context."""
    yield
    disable_telemetry()


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """CLI invocations reconfigure the root logger onto a short-lived stream."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    package_level = logging.getLogger(PACKAGE_LOGGER).level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(package_level)
    structlog.reset_defaults()


@pytest.fixture
def sandbox_root(tmp_path: Path) -> Path:
    root = tmp_path / "sandbox"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path: Path, sandbox_root: Path, monkeypatch: pytest.MonkeyPatch) -> CanvasSettings:
    """Settings confined to *tmp_path*, with no plugin cache."""
    monkeypatch.delenv("INFRACANVAS_CONFIG", raising=False)
    return CanvasSettings.from_cli(
        project_root=tmp_path,
        sandbox={"root": sandbox_root, "use_plugin_cache": False},
        executor={"timeout_seconds": 30, "kill_grace_seconds": 0.5},
    )


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI tests from an empty directory with no config override."""
    monkeypatch.delenv("INFRACANVAS_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


FAKE_TERRAFORM = """\
#!/bin/sh
# Stand-in for the terraform CLI: enough behaviour for service tests.
cmd="$1"
shift
if [ -n "$FAKE_TF_FAIL" ] && [ "$cmd" = "$FAKE_TF_FAIL" ]; then
  echo "${FAKE_TF_STDERR:-Error: $cmd failed on purpose}" >&2
  exit 1
fi
if [ -n "$FAKE_TF_SLEEP" ]; then exec sleep "$FAKE_TF_SLEEP"; fi
case "$cmd" in
  init)
    echo "Terraform has been successfully initialized! args: $*"
    ;;
  validate)
    echo "Success! The configuration is valid."
    echo "cache: ${TF_PLUGIN_CACHE_DIR:-none}"
    ;;
  plan)
    out=""
    while [ $# -gt 0 ]; do
      if [ "$1" = "-out" ]; then out="$2"; shift; fi
      shift
    done
    if [ -n "$out" ]; then printf 'PLANDATA' > "$out"; fi
    echo "aws key: ${AWS_ACCESS_KEY_ID:-none}"
    echo "Plan: 2 to add, 1 to change, 0 to destroy."
    ;;
  apply)
    echo "apply args: $*"
    if [ -f tfplan ]; then echo "plan contents: $(cat tfplan)"; fi
    echo "Apply complete! Resources: 2 added, 1 changed, 0 destroyed."
    ;;
  *)
    echo "unknown command $cmd" >&2
    exit 2
    ;;
esac
"""


@pytest.fixture
def fake_terraform(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An executable shell script that mimics terraform's subcommands."""
    for var in ("FAKE_TF_FAIL", "FAKE_TF_SLEEP", "FAKE_TF_STDERR", "AWS_ACCESS_KEY_ID"):
        monkeypatch.delenv(var, raising=False)
    script = tmp_path / "bin" / "terraform"
    script.parent.mkdir()
    script.write_text(FAKE_TERRAFORM)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def terraform_settings(tmp_path: Path, sandbox_root: Path, fake_terraform: Path) -> CanvasSettings:
    """Settings whose executor runs the fake terraform script."""
    return CanvasSettings.from_cli(
        project_root=tmp_path,
        sandbox={"root": sandbox_root, "use_plugin_cache": False},
        executor={"binary": str(fake_terraform), "timeout_seconds": 30, "kill_grace_seconds": 0.5},
    )


@pytest.fixture
def terraform_env(sandbox_root: Path, fake_terraform: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point CLI-built settings at the fake terraform and the test sandbox."""
    monkeypatch.setenv("INFRACANVAS_EXECUTOR__BINARY", str(fake_terraform))
    monkeypatch.setenv("INFRACANVAS_SANDBOX__ROOT", str(sandbox_root))
    monkeypatch.setenv("INFRACANVAS_SANDBOX__USE_PLUGIN_CACHE", "false")
    return sandbox_root


# ---------------------------------------------------------------------------
# Canvas payloads
# ---------------------------------------------------------------------------


def node(node_id: str, service_type: str, name: str = "", **config: Any) -> dict[str, Any]:
    return {"id": node_id, "service_type": service_type, "name": name, "config": config}


def edge(source: str, target: str, relationship: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"source": source, "target": target}
    if relationship:
        payload["relationship"] = relationship
    return payload


@pytest.fixture
def gateway_table_canvas() -> dict[str, Any]:
    """API gateway in front of a DynamoDB table, in the canvas editor shape."""
    return {
        "provider": "aws",
        "nodes": [
            {"id": "n1", "data": {"id": "api-gateway", "name": "Orders API", "config": {}}},
            {"id": "n2", "data": {"id": "dynamodb-table", "name": "Orders Table", "config": {}}},
        ],
        "edges": [{"id": "e1", "source": "n1", "target": "n2"}],
    }
