"""Sandbox path guard and ephemeral workspaces.

INVARIANT: every working directory handed to the executor resolves to a
descendant of the sandbox root. Violations raise before any side effect.
"""

from __future__ import annotations

import shutil
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

WORKSPACE_PREFIX = "terraform-"


def default_sandbox_root() -> Path:
    """``<tmp>/terraform-sandbox``."""
    return Path(tempfile.gettempdir()) / "terraform-sandbox"


class SandboxViolation(Exception):
    """A path resolves outside the sandbox root."""

    def __init__(self, path: str | Path, root: Path) -> None:
        self.path = str(path)
        self.root = root
        super().__init__(f"Working directory must be within sandbox: {root}")


class PathGuard:
    """Confines filesystem work to a single root directory.

    Relative paths resolve against the process working directory, the same
    way the subprocess would see them.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def __repr__(self) -> str:
        return f"PathGuard(root={str(self.root)!r})"

    def contains(self, path: str | Path) -> bool:
        """True when *path* resolves to the root or one of its descendants."""
        resolved = Path(path).expanduser().resolve()
        return resolved == self.root or resolved.is_relative_to(self.root)

    def validate(self, path: str | Path) -> Path:
        """Return the resolved path, or raise :class:`SandboxViolation`."""
        if not self.contains(path):
            log.warning("sandbox.violation", path=str(path), root=str(self.root))
            raise SandboxViolation(path, self.root)
        return Path(path).expanduser().resolve()

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    @contextmanager
    def workspace(self) -> Iterator[Path]:
        """Create ``<root>/terraform-<uuid>`` and remove it on every exit path."""
        self.ensure_root()
        path = self.root / f"{WORKSPACE_PREFIX}{uuid.uuid4()}"
        # freshly created under our own root: sanity check only
        if path.parent != self.root:
            raise SandboxViolation(path, self.root)
        path.mkdir()
        log.debug("sandbox.workspace.created", path=str(path))
        try:
            yield path
        finally:
            try:
                shutil.rmtree(path)
            except OSError as exc:
                log.warning("sandbox.workspace.cleanup_failed", path=str(path), error=str(exc))
            else:
                log.debug("sandbox.workspace.removed", path=str(path))
