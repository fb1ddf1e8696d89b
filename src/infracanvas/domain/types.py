"""Provider and resource-category enums."""

from __future__ import annotations

from enum import StrEnum


class Provider(StrEnum):
    """Target providers the generator knows how to expand."""

    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    SUPABASE = "supabase"


class Category(StrEnum):
    """Resource categories used to derive variables and outputs."""

    COMPUTE = "compute"
    GATEWAY = "gateway"
    BUCKET = "bucket"
    TABLE = "table"
    RELATIONAL_DB = "relational_db"
    LOAD_BALANCER = "load_balancer"
    FUNCTION = "function"
    QUEUE = "queue"
    TOPIC = "topic"
    NETWORK = "network"
    MANAGED_DB = "managed_db"
    OTHER = "other"


DEFAULT_REGIONS: dict[str, str] = {
    Provider.AWS: "us-east-1",
    Provider.GCP: "us-central1",
    Provider.AZURE: "East US",
    Provider.SUPABASE: "us-east-1",
}


def default_region(provider: str) -> str:
    """Return the default region for *provider* (``us-east-1`` if unknown)."""
    return DEFAULT_REGIONS.get(provider, "us-east-1")
