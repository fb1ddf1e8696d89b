"""Config file discovery.

Walk-up finder locates ``infracanvas.toml``, the way git finds ``.git/``.
``INFRACANVAS_CONFIG`` overrides the walk-up; ``--config`` overrides both.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "infracanvas.toml"
CONFIG_ENV_VAR = "INFRACANVAS_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``infracanvas.toml``.

    When ``INFRACANVAS_CONFIG`` is set it wins outright: the named file, or
    None if it does not exist.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
