"""ServiceResult and ServiceError: the contract every service returns.

INVARIANT: service methods return a ServiceResult for every expected
failure (bad input, sandbox violations, terraform errors). Exceptions
escaping a service are bugs.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    SANDBOX_VIOLATION = "SANDBOX_VIOLATION"
    TOOL_NOT_INSTALLED = "TOOL_NOT_INSTALLED"
    PROCESS_TIMEOUT = "PROCESS_TIMEOUT"
    PROCESS_FAILURE = "PROCESS_FAILURE"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name (``"generate"``, ``"terraform_plan"``, ...).
        data: Operation-specific payload. Failed terraform runs still carry
            their captured output here.
        warnings: Non-fatal issues (skipped edges, truncated output, ...).
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry spans under ``--verbose``).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: ErrorCode,
        message: str,
        *,
        detail: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError(code=code, message=message, detail=detail or {}),
        )
