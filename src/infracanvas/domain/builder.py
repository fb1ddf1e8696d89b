"""Resource graph builder: canvas nodes/edges → ordered Terraform resources.

Resources live in an arena keyed by qualified name; edges are resolved
through that arena rather than by list position. Output order follows
node order with each node's satellites right after its base resource.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TypeAlias

import networkx as nx

from infracanvas.domain.catalog import (
    ExpansionContext,
    lookup,
    passthrough,
    passthrough_type,
    shared_resources,
)
from infracanvas.domain.models import BlockNode, Edge, TerraformResource
from infracanvas.domain.naming import resource_name

logger = logging.getLogger(__name__)

Clock: TypeAlias = Callable[[], float]


@dataclass
class ResourceGraph:
    """Result of one build: resources in emission order plus diagnostics."""

    resources: list[TerraformResource] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    graph: nx.DiGraph = field(default_factory=nx.DiGraph)
    addresses: dict[str, tuple[str, str]] = field(default_factory=dict)

    @property
    def arena(self) -> dict[str, TerraformResource]:
        """Qualified name → resource (first declaration wins on collision)."""
        arena: dict[str, TerraformResource] = {}
        for resource in self.resources:
            arena.setdefault(resource.qualified_name, resource)
        return arena

    def base_resource(self, node_id: str) -> TerraformResource | None:
        for resource in self.resources:
            if resource.node_id == node_id:
                return resource
        return None


def node_address(node: BlockNode, provider: str) -> tuple[str, str]:
    """``(terraform_type, name)`` of the base resource a node expands to.

    Always resolved against the target *provider*; a node's own ``provider``
    field does not change what it expands to.
    """
    spec = lookup(provider, node.service_type)
    resource_type = spec.terraform_type if spec is not None else passthrough_type(node, provider)
    return resource_type, resource_name(node.name, node.service_type, node.id)


def canvas_graph(nodes: Sequence[BlockNode], edges: Sequence[Edge]) -> tuple[nx.DiGraph, list[str]]:
    """Build the node/edge DiGraph; unknown endpoints and self-loops are skipped."""
    graph = nx.DiGraph()
    warnings: list[str] = []
    for node in nodes:
        if node.id in graph:
            warnings.append(f"Duplicate node id '{node.id}'; keeping the first occurrence")
            continue
        graph.add_node(node.id, block=node)

    for edge in edges:
        missing = [nid for nid in (edge.source_id, edge.target_id) if nid not in graph]
        if missing:
            warnings.append(
                f"Skipped edge {edge.source_id} → {edge.target_id}: unknown node id "
                + ", ".join(f"'{nid}'" for nid in missing)
            )
            continue
        if edge.source_id == edge.target_id:
            warnings.append(f"Skipped self-referencing edge on '{edge.source_id}'")
            continue
        graph.add_edge(edge.source_id, edge.target_id, edge=edge)
    return graph, warnings


def build_resources(
    nodes: Sequence[BlockNode],
    edges: Sequence[Edge],
    provider: str,
    *,
    clock: Clock | None = None,
) -> ResourceGraph:
    """Expand every node and wire edge dependencies.

    Never raises for recoverable input gaps: unknown service types become
    pass-through resources, unknown edge endpoints are skipped, and every
    such event is recorded in ``ResourceGraph.warnings``.
    """
    timestamp = int((clock or time.time)() * 1000)
    graph, warnings = canvas_graph(nodes, edges)
    result = ResourceGraph(graph=graph, warnings=warnings)

    blocks: list[BlockNode] = [data["block"] for _, data in graph.nodes(data=True)]
    seen: dict[str, str] = {}
    for node in blocks:
        address = node_address(node, provider)
        result.addresses[node.id] = address
        qualified = ".".join(address)
        if qualified in seen:
            result.warnings.append(
                f"Name collision: nodes '{seen[qualified]}' and '{node.id}' both map to {qualified}"
            )
        else:
            seen[qualified] = node.id

    expanded_any = False
    expanded: list[TerraformResource] = []
    for node in blocks:
        if node.provider and node.provider != provider:
            result.warnings.append(
                f"Node '{node.id}' is marked {node.provider}; generated as {provider} to match the target provider"
            )
        resource_type, name = result.addresses[node.id]
        ctx = ExpansionContext(
            node=node,
            name=name,
            terraform_type=resource_type,
            provider=provider,
            timestamp=timestamp,
            graph=graph,
            addresses=result.addresses,
        )
        spec = lookup(provider, node.service_type)
        if spec is None:
            result.warnings.append(
                f"No expansion for ({provider}, {node.service_type}); emitted pass-through {resource_type}"
            )
            expanded.extend(passthrough(ctx))
            continue
        expanded_any = True
        expanded.extend(spec.expand(ctx))

    shared = shared_resources(provider) if expanded_any else []
    result.resources = shared + expanded

    arena = result.arena
    for source_id, target_id in graph.edges():
        source = arena.get(".".join(result.addresses[source_id]))
        target = result.base_resource(target_id)
        if source is None or target is None:
            continue
        target.depend_on(source.qualified_name)

    if not nx.is_directed_acyclic_graph(graph):
        cycle = " → ".join(u for u, _ in nx.find_cycle(graph))
        result.warnings.append(f"Dependency cycle between nodes: {cycle}")

    logger.debug(
        "Built %d resources from %d nodes and %d edges",
        len(result.resources),
        graph.number_of_nodes(),
        graph.number_of_edges(),
    )
    return result
