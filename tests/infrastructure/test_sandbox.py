"""Tests for the sandbox path guard and ephemeral workspaces."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from infracanvas.infrastructure.sandbox import WORKSPACE_PREFIX, PathGuard, SandboxViolation


class TestPathGuard:
    def test_descendant_allowed(self, sandbox_root: Path) -> None:
        guard = PathGuard(sandbox_root)
        target = sandbox_root / "stack" / "dev"
        assert guard.validate(target) == target.resolve()

    def test_root_itself_allowed(self, sandbox_root: Path) -> None:
        assert PathGuard(sandbox_root).contains(sandbox_root)

    def test_traversal_rejected(self, sandbox_root: Path) -> None:
        guard = PathGuard(sandbox_root)
        with pytest.raises(SandboxViolation) as exc_info:
            guard.validate(sandbox_root / "stack" / ".." / ".." / "elsewhere")
        assert exc_info.value.root == sandbox_root.resolve()
        assert "must be within sandbox" in str(exc_info.value)

    def test_absolute_outside_rejected(self, sandbox_root: Path, tmp_path: Path) -> None:
        assert not PathGuard(sandbox_root).contains(tmp_path / "other")

    def test_sibling_with_shared_prefix_rejected(self, sandbox_root: Path) -> None:
        sibling = sandbox_root.parent / f"{sandbox_root.name}-evil"
        assert not PathGuard(sandbox_root).contains(sibling)

    def test_relative_path_resolves_against_cwd(self, sandbox_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(sandbox_root)
        guard = PathGuard(sandbox_root)
        assert guard.validate("stack") == sandbox_root.resolve() / "stack"
        assert not guard.contains("../escape")

    @pytest.mark.skipif(os.name != "posix", reason="symlinks")
    def test_symlink_escape_rejected(self, sandbox_root: Path, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        (sandbox_root / "link").symlink_to(outside)
        assert not PathGuard(sandbox_root).contains(sandbox_root / "link")


class TestWorkspace:
    def test_created_under_root_and_removed(self, sandbox_root: Path) -> None:
        guard = PathGuard(sandbox_root)
        with guard.workspace() as workspace:
            assert workspace.is_dir()
            assert workspace.parent == sandbox_root.resolve()
            assert workspace.name.startswith(WORKSPACE_PREFIX)
            (workspace / "main.tf").write_text("# empty\n")
        assert not workspace.exists()

    def test_removed_on_exception(self, sandbox_root: Path) -> None:
        guard = PathGuard(sandbox_root)
        with pytest.raises(RuntimeError), guard.workspace() as workspace:
            raise RuntimeError("boom")
        assert not workspace.exists()

    def test_root_created_on_demand(self, tmp_path: Path) -> None:
        guard = PathGuard(tmp_path / "fresh" / "root")
        with guard.workspace() as workspace:
            assert workspace.is_dir()
        assert (tmp_path / "fresh" / "root").is_dir()
