"""Service catalog: the ``(provider, service_type)`` expansion table.

Importing this package registers every provider module.
"""

from infracanvas.domain.catalog import aws, azure, gcp, supabase  # noqa: F401
from infracanvas.domain.catalog.registry import (
    ExpansionContext,
    ServiceSpec,
    lookup,
    passthrough,
    passthrough_type,
    register,
    registered_pairs,
    services_for,
    shared,
    shared_resources,
)

__all__ = [
    "ExpansionContext",
    "ServiceSpec",
    "lookup",
    "passthrough",
    "passthrough_type",
    "register",
    "registered_pairs",
    "services_for",
    "shared",
    "shared_resources",
]
