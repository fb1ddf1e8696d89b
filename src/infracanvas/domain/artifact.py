"""Generation facade: canvas graph in, ``GeneratedArtifact`` out."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from infracanvas.domain.builder import Clock, build_resources
from infracanvas.domain.connections import review_connections
from infracanvas.domain.hcl import provider_preamble, render_artifact
from infracanvas.domain.models import GeneratedArtifact, parse_graph
from infracanvas.domain.synthesis import synthesize_outputs, synthesize_variables


def generate(
    nodes: Sequence[Any],
    edges: Sequence[Any],
    provider: str = "aws",
    *,
    clock: Clock | None = None,
) -> GeneratedArtifact:
    """Build, synthesize and serialize a canvas graph.

    *nodes* and *edges* may be model instances or raw canvas dicts.
    Malformed entries are skipped and reported in ``warnings``; this
    function never raises for input gaps.
    """
    blocks, connections, warnings = parse_graph(list(nodes), list(edges))
    graph = build_resources(blocks, connections, provider, clock=clock)
    warnings.extend(graph.warnings)
    warnings.extend(review_connections(blocks, connections, provider))

    variables = synthesize_variables(blocks, graph.resources, provider)
    outputs = synthesize_outputs(blocks, provider)
    preamble = provider_preamble(provider)
    text = render_artifact(preamble, variables, graph.resources, outputs)
    return GeneratedArtifact(
        provider=provider,
        provider_preamble=preamble,
        resources=graph.resources,
        variables=variables,
        outputs=outputs,
        text=text,
        warnings=warnings,
    )
