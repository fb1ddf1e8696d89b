"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``infracanvas.toml`` only holds
overrides. An empty file (or none at all) is a valid configuration.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

from infracanvas.infrastructure.executor import (
    DEFAULT_MAX_OUTPUT_BYTES,
    DEFAULT_TIMEOUT_SECONDS,
    KILL_GRACE_SECONDS,
)
from infracanvas.infrastructure.sandbox import default_sandbox_root


def _plugin_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "terraform-plugin-cache"


class SandboxConfig(BaseModel):
    """[sandbox] section."""

    model_config = {"frozen": True}

    root: Path = Field(default_factory=default_sandbox_root)
    plugin_cache_dir: Path = Field(default_factory=_plugin_cache_dir)
    use_plugin_cache: bool = True


class ExecutorConfig(BaseModel):
    """[executor] section."""

    model_config = {"frozen": True}

    binary: str = "terraform"
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)
    kill_grace_seconds: float = Field(default=KILL_GRACE_SECONDS, ge=0)


class GenerateConfig(BaseModel):
    """[generate] section."""

    model_config = {"frozen": True}

    provider: str = "aws"
    artifact_name: str = "main.tf"
