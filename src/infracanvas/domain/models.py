"""Canvas input models and generated resource types.

``BlockNode`` and ``Edge`` are immutable inputs to a generation run.
They accept both the flat block/connection shape and the canvas editor
shape (``{"id": ..., "data": {"id": <service>, "name": ..., "config": ...}}``).

``TerraformResource`` and ``GeneratedArtifact`` are created fresh per run
and discarded once the caller consumes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from infracanvas.domain.naming import qualified_name


class BlockNode(BaseModel):
    """One infrastructure block placed on the canvas."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    id: str
    service_type: str = Field(
        validation_alias=AliasChoices("service_type", "serviceType", "type"),
    )
    provider: str | None = None
    name: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
    terraform_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("terraform_type", "terraformType"),
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_canvas_data(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        merged = {k: v for k, v in value.items() if k != "data"}
        data = value.get("data")
        if isinstance(data, dict):
            service = data.get("serviceType") or data.get("service_type") or data.get("id")
            if service is not None:
                merged.setdefault("service_type", service)
            for key in ("name", "provider", "config", "terraformType"):
                if key in data:
                    merged.setdefault(key, data[key])
        if merged.get("name") is None:
            merged["name"] = ""
        if merged.get("config") is None:
            merged["config"] = {}
        return merged


class Edge(BaseModel):
    """A directed connection: the target depends on the source."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    source_id: str = Field(validation_alias=AliasChoices("source_id", "sourceId", "source", "from"))
    target_id: str = Field(validation_alias=AliasChoices("target_id", "targetId", "target", "to"))
    relationship: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_canvas_data(cls, value: Any) -> Any:
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            merged = {k: v for k, v in value.items() if k != "data"}
            if "relationship" in value["data"]:
                merged.setdefault("relationship", value["data"]["relationship"])
            return merged
        return value


@dataclass
class TerraformResource:
    """A single ``resource "<type>" "<name>" { ... }`` declaration.

    ``mode="data"`` declares a data source instead; its qualified name
    carries the ``data.`` prefix.
    """

    type: str
    name: str
    config: dict[str, Any] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    node_id: str | None = None
    mode: str = "resource"

    @property
    def qualified_name(self) -> str:
        if self.mode == "data":
            return f"data.{qualified_name(self.type, self.name)}"
        return qualified_name(self.type, self.name)

    def depend_on(self, reference: str) -> None:
        """Add *reference* to ``depends_on`` (no duplicates, no self-reference)."""
        if reference == self.qualified_name or reference in self.dependencies:
            return
        self.dependencies.append(reference)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "type": self.type,
            "name": self.name,
            "address": self.qualified_name,
            "config": self.config,
            "dependencies": list(self.dependencies),
            "node_id": self.node_id,
        }


@dataclass
class GeneratedArtifact:
    """Everything produced by one generation run, plus its HCL text."""

    provider: str
    provider_preamble: str
    resources: list[TerraformResource]
    variables: dict[str, dict[str, Any]]
    outputs: dict[str, dict[str, Any]]
    text: str
    warnings: list[str] = field(default_factory=list)

    @property
    def dependency_count(self) -> int:
        return sum(len(r.dependencies) for r in self.resources)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "resource_count": len(self.resources),
            "dependency_count": self.dependency_count,
            "resources": [r.to_dict() for r in self.resources],
            "variables": self.variables,
            "outputs": self.outputs,
            "text": self.text,
        }


def parse_graph(
    raw_nodes: list[Any],
    raw_edges: list[Any],
) -> tuple[list[BlockNode], list[Edge], list[str]]:
    """Parse raw canvas payloads, skipping malformed entries with a warning.

    Nodes without an ``id`` are given a positional one (``node-<index>``).
    Never raises for malformed items.
    """
    warnings: list[str] = []
    nodes: list[BlockNode] = []
    for index, raw in enumerate(raw_nodes):
        if isinstance(raw, BlockNode):
            nodes.append(raw)
            continue
        if isinstance(raw, dict) and raw.get("id") in (None, ""):
            raw = {**raw, "id": f"node-{index}"}
        try:
            nodes.append(BlockNode.model_validate(raw))
        except ValidationError as exc:
            warnings.append(f"Skipped node #{index}: {_first_error(exc)}")

    edges: list[Edge] = []
    for index, raw in enumerate(raw_edges):
        if isinstance(raw, Edge):
            edges.append(raw)
            continue
        try:
            edges.append(Edge.model_validate(raw))
        except ValidationError as exc:
            warnings.append(f"Skipped edge #{index}: {_first_error(exc)}")
    return nodes, edges, warnings


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg', 'invalid')}" if loc else str(first.get("msg", "invalid"))
