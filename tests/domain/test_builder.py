"""Tests for the resource graph builder."""

from __future__ import annotations

from infracanvas.domain.builder import build_resources, canvas_graph, node_address
from infracanvas.domain.models import BlockNode, Edge
from tests.conftest import edge, fixed_clock, node


def _parse(nodes, edges):
    return [BlockNode.model_validate(n) for n in nodes], [Edge.model_validate(e) for e in edges]


class TestEdgePropagation:
    def test_every_edge_becomes_a_dependency(self) -> None:
        nodes, edges = _parse(
            [
                node("vpc", "vpc", "Main"),
                node("web", "ec2", "Web"),
                node("lb", "alb", "Front"),
                node("fn", "lambda", "Worker"),
                node("q", "sqs", "Jobs"),
                node("bucket", "s3", "Assets"),
            ],
            [
                edge("vpc", "web"),
                edge("vpc", "lb"),
                edge("web", "lb"),
                edge("q", "fn"),
                edge("fn", "bucket"),
            ],
        )
        graph = build_resources(nodes, edges, "aws", clock=fixed_clock)
        for e in edges:
            source = ".".join(graph.addresses[e.source_id])
            target = graph.base_resource(e.target_id)
            assert target is not None
            assert source in target.dependencies

    def test_dependencies_name_resources_in_the_artifact(self) -> None:
        nodes, edges = _parse(
            [node("f", "lambda", "Fn"), node("q", "sqs", "Q", deadLetterQueue=True, maxReceiveCount=3)],
            [edge("q", "f")],
        )
        graph = build_resources(nodes, edges, "aws", clock=fixed_clock)
        arena = graph.arena
        for resource in graph.resources:
            for dependency in resource.dependencies:
                assert dependency in arena

    def test_satellite_order_follows_node_order(self) -> None:
        nodes, edges = _parse([node("b", "s3", "B"), node("q", "sqs", "Q")], [])
        graph = build_resources(nodes, edges, "aws", clock=fixed_clock)
        assert [r.qualified_name for r in graph.resources] == [
            "aws_s3_bucket.b",
            "aws_s3_bucket_public_access_block.b",
            "aws_sqs_queue.q",
        ]


class TestRecoverableInput:
    def test_unknown_endpoint_and_self_loop_skipped(self) -> None:
        nodes, edges = _parse([node("a", "s3", "A")], [edge("a", "zz"), edge("a", "a")])
        graph = build_resources(nodes, edges, "aws", clock=fixed_clock)
        assert graph.resources[0].dependencies == []
        assert any("unknown node id 'zz'" in w for w in graph.warnings)
        assert any("self-referencing" in w for w in graph.warnings)

    def test_duplicate_node_ids_keep_first(self) -> None:
        nodes, _ = _parse([node("a", "s3", "First"), node("a", "sqs", "Second")], [])
        graph, warnings = canvas_graph(nodes, [])
        assert graph.nodes["a"]["block"].name == "First"
        assert warnings

    def test_name_collision_is_reported_not_resolved(self) -> None:
        nodes, edges = _parse([node("a", "s3", "Orders Bucket"), node("b", "s3", "orders-bucket")], [])
        graph = build_resources(nodes, edges, "aws", clock=fixed_clock)
        names = [r.qualified_name for r in graph.resources if r.type == "aws_s3_bucket"]
        assert names == ["aws_s3_bucket.orders_bucket", "aws_s3_bucket.orders_bucket"]
        assert any("Name collision" in w for w in graph.warnings)

    def test_cycle_is_a_warning(self) -> None:
        nodes, edges = _parse([node("a", "sqs", "A"), node("b", "sqs", "B")], [edge("a", "b"), edge("b", "a")])
        graph = build_resources(nodes, edges, "aws", clock=fixed_clock)
        assert "aws_sqs_queue.a" in graph.base_resource("b").dependencies
        assert "aws_sqs_queue.b" in graph.base_resource("a").dependencies
        assert any("Dependency cycle" in w for w in graph.warnings)

    def test_empty_graph(self) -> None:
        graph = build_resources([], [], "aws")
        assert graph.resources == []
        assert graph.warnings == []


class TestMixedProviders:
    def test_target_provider_decides_expansion(self) -> None:
        block = BlockNode.model_validate({"id": "d", "service_type": "storage", "provider": "aws", "name": "Files"})
        assert node_address(block, "gcp") == ("google_storage_bucket", "files")

    def test_foreign_node_provider_warns(self) -> None:
        nodes = [BlockNode.model_validate({"id": "d", "service_type": "database", "provider": "supabase", "name": "DB"})]
        graph = build_resources(nodes, [], "aws", clock=fixed_clock)
        assert not any(r.type.startswith("supabase_") for r in graph.resources)
        assert any("marked supabase; generated as aws" in w for w in graph.warnings)

    def test_matching_node_provider_is_silent(self) -> None:
        nodes = [BlockNode.model_validate({"id": "s", "service_type": "s3", "provider": "aws", "name": "S"})]
        assert build_resources(nodes, [], "aws", clock=fixed_clock).warnings == []

    def test_shared_resources_only_for_used_providers(self) -> None:
        nodes, _ = _parse([node("s", "s3", "S")], [])
        graph = build_resources(nodes, [], "aws", clock=fixed_clock)
        assert not any(r.type == "azurerm_resource_group" for r in graph.resources)
