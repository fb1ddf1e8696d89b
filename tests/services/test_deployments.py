"""Tests for deployment records and the in-memory store."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from infracanvas.services.deployments import DeploymentRecord, InMemoryDeploymentStore


def _record(**kwargs: object) -> DeploymentRecord:
    fields: dict[str, object] = {"op": "terraform_init", "command": "terraform init", "success": True, "exit_code": 0}
    fields.update(kwargs)
    return DeploymentRecord(**fields)  # type: ignore[arg-type]


class TestDeploymentRecord:
    def test_ids_are_unique(self) -> None:
        assert _record().id != _record().id

    def test_frozen(self) -> None:
        record = _record()
        with pytest.raises(ValidationError):
            record.success = False  # type: ignore[misc]

    def test_timestamp_is_aware(self) -> None:
        assert _record().created_at.tzinfo is not None


class TestInMemoryStore:
    def test_insertion_order(self) -> None:
        store = InMemoryDeploymentStore()
        first, second = _record(), _record(op="terraform_plan")
        store.record(first)
        store.record(second)
        assert store.records() == [first, second]
        assert len(store) == 2

    def test_get(self) -> None:
        store = InMemoryDeploymentStore()
        record = _record()
        store.record(record)
        assert store.get(record.id) == record
        assert store.get("missing") is None
