"""Connection rules between service types, per provider.

The rule table answers three questions: which relationship an edge
implies when the canvas did not label it, which targets a service may
connect to, and which required connections a graph is missing.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from infracanvas.domain.models import BlockNode, Edge

DEFAULT_RELATIONSHIP = "accesses"


class ConnectionRule(BaseModel):
    """A known ``source → target`` connection for one provider."""

    model_config = ConfigDict(frozen=True)

    source_type: str
    target_type: str
    relationship: str
    description: str
    bidirectional: bool = False
    required: bool = False


def _rule(
    source: str,
    target: str,
    relationship: str,
    description: str,
    *,
    required: bool = False,
) -> ConnectionRule:
    return ConnectionRule(
        source_type=source,
        target_type=target,
        relationship=relationship,
        description=description,
        required=required,
    )


CONNECTION_RULES: dict[str, tuple[ConnectionRule, ...]] = {
    "aws": (
        _rule("ec2", "vpc", "depends_on", "EC2 instances must be deployed within a VPC", required=True),
        _rule("ec2", "s3", "accesses", "EC2 can read/write to S3 buckets"),
        _rule("ec2", "rds", "connects_to", "EC2 connects to RDS database"),
        _rule("ec2", "sqs", "sends_to", "EC2 instances can send messages to SQS queue"),
        _rule("alb", "ec2", "load_balances", "Load balancer distributes traffic to EC2 instances"),
        _rule("alb", "vpc", "depends_on", "Load balancer requires VPC", required=True),
        _rule("rds", "vpc", "depends_on", "RDS must be deployed within a VPC", required=True),
        _rule("lambda", "s3", "accesses", "Lambda function can access S3 buckets"),
        _rule("lambda", "dynamodb", "accesses", "Lambda function can read/write DynamoDB tables"),
        _rule("lambda", "rds", "connects_to", "Lambda can connect to RDS database"),
        _rule("lambda", "sqs", "consumes", "Lambda function can consume messages from SQS queue"),
        _rule("lambda", "sns", "publishes_to", "Lambda function can publish to SNS topics"),
        _rule("sqs", "lambda", "triggers", "SQS queue can trigger Lambda function"),
        _rule("api_gateway", "lambda", "invokes", "API Gateway routes requests to Lambda"),
        _rule("api_gateway", "dynamodb", "accesses", "API Gateway integrates directly with DynamoDB"),
    ),
    "gcp": (
        _rule("compute", "storage", "accesses", "Compute Engine can access Cloud Storage"),
        _rule("compute", "sql", "connects_to", "Compute Engine connects to Cloud SQL"),
        _rule("lb", "compute", "load_balances", "Load balancer distributes traffic to compute instances"),
        _rule("functions", "storage", "accesses", "Cloud Functions can access Cloud Storage"),
        _rule("functions", "sql", "connects_to", "Cloud Functions can connect to Cloud SQL"),
    ),
    "azure": (
        _rule("vm", "blob", "accesses", "Virtual Machine can access Blob Storage"),
        _rule("vm", "sql", "connects_to", "Virtual Machine connects to SQL Database"),
        _rule("vm", "vnet", "depends_on", "Virtual Machine requires Virtual Network", required=True),
        _rule("lb", "vm", "load_balances", "Load balancer distributes traffic to VMs"),
        _rule("functions", "blob", "accesses", "Azure Functions can access Blob Storage"),
    ),
}


def _normalize(service_type: str, provider: str) -> str:
    """Canonical service type: aliases and hyphenated spellings collapse."""
    from infracanvas.domain.catalog import lookup

    spec = lookup(provider, service_type)
    if spec is not None:
        return spec.service_type
    return service_type.replace("-", "_")


def find_rule(source_type: str, target_type: str, provider: str) -> ConnectionRule | None:
    """Return the rule allowing ``source_type → target_type``, if any."""
    source, target = _normalize(source_type, provider), _normalize(target_type, provider)
    for rule in CONNECTION_RULES.get(provider, ()):
        if rule.source_type == source and rule.target_type == target:
            return rule
        if rule.bidirectional and rule.source_type == target and rule.target_type == source:
            return rule
    return None


def valid_targets(source_type: str, provider: str) -> list[str]:
    """Target service types *source_type* may connect to (order preserved)."""
    source = _normalize(source_type, provider)
    targets: list[str] = []
    for rule in CONNECTION_RULES.get(provider, ()):
        if rule.source_type == source:
            candidate = rule.target_type
        elif rule.bidirectional and rule.target_type == source:
            candidate = rule.source_type
        else:
            continue
        if candidate not in targets:
            targets.append(candidate)
    return targets


def relationship_for(source_type: str, target_type: str, provider: str) -> str:
    """Relationship implied by a rule, or ``accesses`` when none matches."""
    rule = find_rule(source_type, target_type, provider)
    return rule.relationship if rule is not None else DEFAULT_RELATIONSHIP


def edge_relationship(edge: Edge, source: BlockNode, target: BlockNode, provider: str) -> str:
    """The edge's explicit relationship, else the rule-table default."""
    if edge.relationship:
        return edge.relationship
    return relationship_for(source.service_type, target.service_type, provider)


def review_connections(
    nodes: Sequence[BlockNode],
    edges: Sequence[Edge],
    provider: str,
) -> list[str]:
    """Advisory warnings about a graph's connections. Never raises.

    Reports required connections that are missing (the target service is on
    the canvas but no edge joins them) and edges with no known rule.
    """
    rules = CONNECTION_RULES.get(provider, ())
    if not rules:
        return []

    by_id = {node.id: node for node in nodes}
    connected: set[tuple[str, str]] = set()
    warnings: list[str] = []
    for edge in edges:
        source, target = by_id.get(edge.source_id), by_id.get(edge.target_id)
        if source is None or target is None:
            continue
        connected.add((source.id, _normalize(target.service_type, provider)))
        if find_rule(source.service_type, target.service_type, provider) is None:
            warnings.append(
                f"No known {provider} rule for {source.service_type} → {target.service_type} "
                f"({source.name or source.id} → {target.name or target.id})"
            )

    present = {_normalize(node.service_type, provider) for node in nodes}
    for node in nodes:
        for rule in rules:
            if not rule.required or rule.source_type != _normalize(node.service_type, provider):
                continue
            if rule.target_type in present and (node.id, rule.target_type) not in connected:
                warnings.append(
                    f"{node.name or node.id} should connect to {rule.target_type} ({rule.description})"
                )
    return warnings
