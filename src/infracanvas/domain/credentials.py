"""Provider credential format checks and the environment overlay.

Only superficial checks happen here (prefix, minimum length, UUID shape).
Credentials are never stored; real validation is the provider's job.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from infracanvas.domain.types import Provider

AWS_REGION = re.compile(r"^[a-z]{2}-[a-z]+-\d+$")
UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
MIN_SECRET_LENGTH = 20


def _field(*names: str) -> Any:
    return Field(default="", validation_alias=AliasChoices(*names))


class ProviderCredentials(BaseModel):
    """Base for per-provider credential shapes (snake or camel case keys)."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True, extra="ignore"
    )

    def problems(self) -> list[str]:
        raise NotImplementedError

    def env(self) -> dict[str, str]:
        raise NotImplementedError


class AwsCredentials(ProviderCredentials):
    access_key_id: str = _field("access_key_id", "accessKeyId")
    secret_access_key: str = _field("secret_access_key", "secretAccessKey")
    region: str = _field("region")

    def problems(self) -> list[str]:
        errors: list[str] = []
        if not self.access_key_id:
            errors.append("Access Key ID is required")
        elif not self.access_key_id.startswith("AKIA"):
            errors.append("Access Key ID should start with AKIA")
        if not self.secret_access_key:
            errors.append("Secret Access Key is required")
        elif len(self.secret_access_key) < MIN_SECRET_LENGTH:
            errors.append(f"Secret Access Key should be at least {MIN_SECRET_LENGTH} characters")
        if not self.region:
            errors.append("Region is required")
        elif not AWS_REGION.match(self.region):
            errors.append("Region format should be like us-east-1")
        return errors

    def env(self) -> dict[str, str]:
        return {
            "AWS_ACCESS_KEY_ID": self.access_key_id,
            "AWS_SECRET_ACCESS_KEY": self.secret_access_key,
            "AWS_DEFAULT_REGION": self.region,
        }


class GcpCredentials(ProviderCredentials):
    service_account_key: str = _field("service_account_key", "serviceAccountKey")
    project_id: str = _field("project_id", "projectId")

    def problems(self) -> list[str]:
        errors: list[str] = []
        if not self.service_account_key:
            errors.append("Service Account Key is required")
        if not self.project_id:
            errors.append("Project ID is required")
        return errors

    def env(self) -> dict[str, str]:
        return {
            "GOOGLE_CREDENTIALS": _service_account_json(self.service_account_key),
            "GOOGLE_PROJECT": self.project_id,
        }


class AzureCredentials(ProviderCredentials):
    client_id: str = _field("client_id", "clientId")
    client_secret: str = _field("client_secret", "clientSecret")
    tenant_id: str = _field("tenant_id", "tenantId")
    subscription_id: str = _field("subscription_id", "subscriptionId")

    def problems(self) -> list[str]:
        errors: list[str] = []
        for label, value, uuid_shaped in (
            ("Client ID", self.client_id, True),
            ("Client Secret", self.client_secret, False),
            ("Tenant ID", self.tenant_id, True),
            ("Subscription ID", self.subscription_id, True),
        ):
            if not value:
                errors.append(f"{label} is required")
            elif uuid_shaped and not UUID.match(value):
                errors.append(f"{label} should be a valid UUID")
        return errors

    def env(self) -> dict[str, str]:
        return {
            "ARM_CLIENT_ID": self.client_id,
            "ARM_CLIENT_SECRET": self.client_secret,
            "ARM_TENANT_ID": self.tenant_id,
            "ARM_SUBSCRIPTION_ID": self.subscription_id,
        }


class SupabaseCredentials(ProviderCredentials):
    access_token: str = _field("access_token", "accessToken")

    def problems(self) -> list[str]:
        if not self.access_token:
            return ["Access Token is required"]
        if len(self.access_token) < MIN_SECRET_LENGTH:
            return ["Access Token appears to be invalid (too short)"]
        return []

    def env(self) -> dict[str, str]:
        return {"SUPABASE_ACCESS_TOKEN": self.access_token}


CREDENTIAL_MODELS: dict[str, type[ProviderCredentials]] = {
    Provider.AWS: AwsCredentials,
    Provider.GCP: GcpCredentials,
    Provider.AZURE: AzureCredentials,
    Provider.SUPABASE: SupabaseCredentials,
}


def credentials_for(provider: str, raw: Mapping[str, Any]) -> Mapping[str, Any]:
    """Pick *provider*'s section from a ``{"aws": {...}, ...}`` bundle.

    A mapping without a provider key is treated as already flat.
    """
    section = raw.get(provider)
    if isinstance(section, Mapping):
        return section
    return raw


def validate_credentials(provider: str, raw: Mapping[str, Any]) -> list[str]:
    """Return human-readable problems; an empty list means the format looks right."""
    model = CREDENTIAL_MODELS.get(provider)
    if model is None:
        return [f"Unsupported provider: {provider}"]
    return model.model_validate(dict(raw)).problems()


def credential_env(provider: str, raw: Mapping[str, Any]) -> dict[str, str]:
    """Environment variables the provider plugin reads (empty values dropped)."""
    model = CREDENTIAL_MODELS.get(provider)
    if model is None:
        return {}
    env = model.model_validate(dict(raw)).env()
    return {key: value for key, value in env.items() if value}


def _service_account_json(key: str) -> str:
    """Accept either raw JSON or base64-encoded JSON."""
    if not key or key.lstrip().startswith("{"):
        return key
    try:
        decoded = base64.b64decode(key, validate=True).decode("utf-8")
        json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return key
    return decoded
