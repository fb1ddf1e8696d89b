"""GenerateService: canvas graph to Terraform artifact."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from infracanvas.domain.artifact import generate
from infracanvas.domain.types import Provider
from infracanvas.services.base import BaseService
from infracanvas.services.result import ErrorCode, ServiceResult
from infracanvas.services.telemetry import trace_span, traced

OP = "generate"


class GenerateService(BaseService):
    """Build, synthesize and serialize a canvas graph."""

    @traced
    def generate(
        self,
        nodes: Any,
        edges: Any,
        provider: str | None = None,
        *,
        output: Path | None = None,
        clock: Callable[[], float] | None = None,
    ) -> ServiceResult:
        """Generate HCL for *nodes*/*edges*, optionally writing it to *output*.

        Returns ``INVALID_INPUT`` only when the payload is not a pair of
        lists or the output file cannot be written; every other input gap
        becomes a warning.
        """
        if not isinstance(nodes, list) or not isinstance(edges, list):
            return ServiceResult.failure(OP, ErrorCode.INVALID_INPUT, "nodes and edges must be lists")

        provider = provider or self._settings.generate.provider
        warnings: list[str] = []
        if provider not in {p.value for p in Provider}:
            warnings.append(f"Unknown provider '{provider}'; every node is emitted as pass-through")

        with trace_span("build") as span:
            artifact = generate(nodes, edges, provider, clock=clock)
            if span:
                span.annotate("resources", len(artifact.resources))
        warnings.extend(artifact.warnings)

        data = artifact.to_dict()
        if output is not None:
            try:
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_text(artifact.text, encoding="utf-8")
            except OSError as exc:
                return ServiceResult.failure(
                    OP,
                    ErrorCode.INVALID_INPUT,
                    f"Cannot write {output}: {exc}",
                    data=data,
                    warnings=warnings,
                )
            data["path"] = str(output)
        return ServiceResult(ok=True, op=OP, data=data, warnings=warnings)

    def generate_from_file(
        self,
        path: Path,
        provider: str | None = None,
        *,
        output: Path | None = None,
    ) -> ServiceResult:
        """Load ``{"nodes": [...], "edges": [...], "provider": ...}`` and generate."""
        try:
            payload = load_graph(path.read_text(encoding="utf-8"))
        except OSError as exc:
            return ServiceResult.failure(OP, ErrorCode.INVALID_INPUT, f"Cannot read {path}: {exc}")
        except ValueError as exc:
            return ServiceResult.failure(OP, ErrorCode.INVALID_INPUT, str(exc))
        return self.generate(
            payload.get("nodes", []),
            payload.get("edges", []),
            provider or payload.get("provider"),
            output=output,
        )


def load_graph(text: str) -> dict[str, Any]:
    """Parse a graph document. Raises ValueError on malformed JSON."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Invalid graph JSON: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(payload, dict):
        msg = "Graph document must be a JSON object with 'nodes' and 'edges'"
        raise ValueError(msg)
    return payload
