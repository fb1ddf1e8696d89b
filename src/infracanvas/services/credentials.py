"""CredentialService: superficial format checks for provider credentials."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from infracanvas.domain.credentials import CREDENTIAL_MODELS, credentials_for, validate_credentials
from infracanvas.services.base import BaseService
from infracanvas.services.result import ErrorCode, ServiceResult

OP = "check_credentials"


class CredentialService(BaseService):
    """Checks credential shape only; nothing is stored or sent anywhere."""

    def check(self, provider: str, raw: Any) -> ServiceResult:
        if not isinstance(raw, dict):
            return ServiceResult.failure(OP, ErrorCode.INVALID_INPUT, "Credentials must be a JSON object")
        if provider not in CREDENTIAL_MODELS:
            return ServiceResult.failure(
                OP, ErrorCode.INVALID_INPUT, f"Unsupported provider: {provider}"
            )
        try:
            problems = validate_credentials(provider, credentials_for(provider, raw))
        except ValidationError as exc:
            problems = [f"malformed credentials ({exc.error_count()} errors)"]
        if problems:
            return ServiceResult.failure(
                OP,
                ErrorCode.INVALID_CREDENTIALS,
                f"{len(problems)} problem(s) with {provider} credentials",
                detail={"problems": problems},
                data={"provider": provider, "valid": False, "problems": problems},
            )
        return ServiceResult(ok=True, op=OP, data={"provider": provider, "valid": True, "problems": []})

    def check_file(self, provider: str, path: Path) -> ServiceResult:
        try:
            raw = load_credentials(path)
        except (OSError, ValueError) as exc:
            return ServiceResult.failure(OP, ErrorCode.INVALID_INPUT, str(exc))
        return self.check(provider, raw)


def load_credentials(path: Path) -> Any:
    """Read a JSON credentials file. Raises ValueError on malformed JSON."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Invalid credentials JSON in {path}: {exc}"
        raise ValueError(msg) from exc
