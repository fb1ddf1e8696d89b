"""Expansion strategy table keyed by ``(provider, service_type)``.

Each provider module registers its services with :func:`register`. An
expansion function receives an :class:`ExpansionContext` and returns the
base resource first, followed by any satellite resources.

INVARIANT: expansions never raise for missing config. They fill in
generated defaults instead.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeAlias

import networkx as nx

from infracanvas.domain.models import BlockNode, Edge, TerraformResource
from infracanvas.domain.naming import qualified_name, sanitize_name
from infracanvas.domain.types import Category

ENVIRONMENT_TAG = "terraform-generated"


@dataclass
class ExpansionContext:
    """Everything an expansion needs to know about one node.

    Attributes:
        node: The block being expanded.
        name: Sanitized resource name of the base resource.
        terraform_type: Resource type of the base resource.
        provider: Effective provider for this node.
        timestamp: Millisecond stamp used for generated unique names.
        graph: Canvas graph (node attr ``block``, edge attr ``edge``).
        addresses: Node id → ``(type, name)`` of every base resource.
    """

    node: BlockNode
    name: str
    terraform_type: str
    provider: str
    timestamp: int
    graph: nx.DiGraph = field(default_factory=nx.DiGraph)
    addresses: Mapping[str, tuple[str, str]] = field(default_factory=dict)

    @property
    def config(self) -> dict[str, Any]:
        return self.node.config

    @property
    def label(self) -> str:
        """Human display name (falls back to the sanitized name)."""
        return self.node.name or self.name

    @property
    def address(self) -> str:
        return qualified_name(self.terraform_type, self.name)

    def unique(self, kind: str) -> str:
        """Generated cloud-side name: ``<name>-<kind>-<timestamp>``."""
        return f"{self.name.replace('_', '-')}-{kind}-{self.timestamp}"

    def tags(self, name: str | None = None, **extra: str) -> dict[str, str]:
        return {
            "Name": name or self.config.get("name") or self.label,
            "Environment": ENVIRONMENT_TAG,
            **extra,
        }

    def base(self, config: dict[str, Any]) -> TerraformResource:
        return TerraformResource(
            type=self.terraform_type,
            name=self.name,
            config=config,
            node_id=self.node.id,
        )

    def satellite(
        self,
        resource_type: str,
        name: str,
        config: dict[str, Any],
        *dependencies: str,
        mode: str = "resource",
    ) -> TerraformResource:
        return TerraformResource(
            type=resource_type,
            name=name,
            config=config,
            dependencies=list(dependencies),
            node_id=self.node.id,
            mode=mode,
        )

    def outgoing(self) -> list[tuple[Edge, BlockNode]]:
        """Edges leaving this node, paired with their target blocks."""
        if self.node.id not in self.graph:
            return []
        pairs: list[tuple[Edge, BlockNode]] = []
        for _, target, data in self.graph.out_edges(self.node.id, data=True):
            block = self.graph.nodes[target].get("block")
            if block is not None:
                pairs.append((data["edge"], block))
        return pairs

    def reference(self, node_id: str, attribute: str | None = None) -> str | None:
        """Expression referencing another node's base resource, or None."""
        entry = self.addresses.get(node_id)
        if entry is None:
            return None
        ref = qualified_name(*entry)
        return f"{ref}.{attribute}" if attribute else ref


Expansion: TypeAlias = Callable[[ExpansionContext], list[TerraformResource]]
SharedFactory: TypeAlias = Callable[[], list[TerraformResource]]


@dataclass(frozen=True)
class ServiceSpec:
    """Registered knowledge about one ``(provider, service_type)`` pair."""

    provider: str
    service_type: str
    terraform_type: str
    category: Category
    expand: Expansion
    attributes: Mapping[str, str] = field(default_factory=dict)


_REGISTRY: dict[tuple[str, str], ServiceSpec] = {}
_SHARED: dict[str, SharedFactory] = {}


def register(
    provider: str,
    service_type: str,
    terraform_type: str,
    category: Category,
    *,
    aliases: tuple[str, ...] = (),
    attributes: Mapping[str, str] | None = None,
) -> Callable[[Expansion], Expansion]:
    """Decorator: register an expansion for *service_type* (and *aliases*)."""

    def decorator(func: Expansion) -> Expansion:
        for key in (service_type, *aliases):
            _REGISTRY[(provider, key)] = ServiceSpec(
                provider=provider,
                service_type=service_type,
                terraform_type=terraform_type,
                category=category,
                expand=func,
                attributes=MappingProxyType(dict(attributes or {})),
            )
        return func

    return decorator


def shared(provider: str) -> Callable[[SharedFactory], SharedFactory]:
    """Decorator: resources emitted once per artifact when *provider* is used."""

    def decorator(func: SharedFactory) -> SharedFactory:
        _SHARED[provider] = func
        return func

    return decorator


def shared_resources(provider: str) -> list[TerraformResource]:
    factory = _SHARED.get(provider)
    return factory() if factory is not None else []


def lookup(provider: str, service_type: str) -> ServiceSpec | None:
    """Return the spec for ``(provider, service_type)`` or None.

    Hyphenated canvas spellings (``dynamodb-table``) match their
    underscored registrations.
    """
    spec = _REGISTRY.get((provider, service_type))
    if spec is None and "-" in service_type:
        spec = _REGISTRY.get((provider, service_type.replace("-", "_")))
    return spec


def services_for(provider: str) -> list[ServiceSpec]:
    """Distinct registered services for *provider* (aliases collapsed)."""
    seen: dict[str, ServiceSpec] = {}
    for (prov, _), spec in _REGISTRY.items():
        if prov == provider:
            seen.setdefault(spec.service_type, spec)
    return list(seen.values())


def registered_pairs() -> list[tuple[str, str]]:
    return sorted(_REGISTRY)


def passthrough_type(node: BlockNode, provider: str) -> str:
    """Resource type for a node with no registered expansion."""
    explicit = node.terraform_type or node.config.get("terraform_type")
    if explicit:
        return str(explicit)
    return f"{sanitize_name(provider) or 'custom'}_{sanitize_name(node.service_type) or 'resource'}"


def passthrough(ctx: ExpansionContext) -> list[TerraformResource]:
    """Unknown service: emit the raw config with no expansion."""
    config = {k: v for k, v in ctx.config.items() if k != "terraform_type"}
    return [ctx.base(config)]


# ---------------------------------------------------------------------------
# Config coercion helpers shared by provider modules
# ---------------------------------------------------------------------------

_TRUE_STRINGS = frozenset({"true", "yes", "on", "enabled", "1"})


def flag(config: Mapping[str, Any], *keys: str) -> bool:
    """First present key interpreted as a boolean (``"Enabled"`` is true)."""
    for key in keys:
        if key in config and config[key] is not None:
            value = config[key]
            if isinstance(value, str):
                return value.strip().lower() in _TRUE_STRINGS
            return bool(value)
    return False


def as_int(config: Mapping[str, Any], key: str, default: int) -> int:
    """Lenient integer read: unparsable or non-positive values use *default*."""
    value = config.get(key)
    if isinstance(value, bool) or value is None:
        return default
    try:
        parsed = int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return default
    return parsed if parsed > 0 else default


def first(config: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key that is present and truthy."""
    for key in keys:
        value = config.get(key)
        if value not in (None, "", [], {}):
            return value
    return None
