"""Deployment records and the store interface.

The terraform service records each execution into an injected store.
Nothing in the domain or infrastructure layers touches this state.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field


class DeploymentRecord(BaseModel):
    """One terraform execution as seen by the orchestration layer."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    op: str
    command: str
    working_directory: str | None = None
    success: bool
    exit_code: int
    timed_out: bool = False
    duration_ms: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    plan: dict[str, Any] | None = None


class DeploymentStore(Protocol):
    """Anything that can keep deployment records."""

    def record(self, record: DeploymentRecord) -> None: ...

    def get(self, record_id: str) -> DeploymentRecord | None: ...

    def records(self) -> list[DeploymentRecord]: ...


class InMemoryDeploymentStore:
    """Process-local store; records are kept in insertion order."""

    def __init__(self) -> None:
        self._records: dict[str, DeploymentRecord] = {}

    def record(self, record: DeploymentRecord) -> None:
        self._records[record.id] = record

    def get(self, record_id: str) -> DeploymentRecord | None:
        return self._records.get(record_id)

    def records(self) -> list[DeploymentRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
