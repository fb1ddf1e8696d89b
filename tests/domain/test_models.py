"""Tests for canvas input parsing and resource models."""

from infracanvas.domain.models import BlockNode, Edge, TerraformResource, parse_graph


class TestBlockNode:
    def test_flat_shape(self) -> None:
        node = BlockNode.model_validate(
            {"id": "n1", "serviceType": "s3", "name": "Assets", "config": {"versioning": True}}
        )
        assert node.service_type == "s3"
        assert node.config == {"versioning": True}
        assert node.provider is None

    def test_canvas_editor_shape(self) -> None:
        node = BlockNode.model_validate(
            {"id": "n1", "data": {"id": "lambda", "name": "Handler", "provider": "aws", "config": None}}
        )
        assert node.service_type == "lambda"
        assert node.name == "Handler"
        assert node.provider == "aws"
        assert node.config == {}

    def test_numeric_id_coerced(self) -> None:
        node = BlockNode.model_validate({"id": 7, "type": "ec2"})
        assert node.id == "7"
        assert node.name == ""


class TestEdge:
    def test_aliases(self) -> None:
        edge = Edge.model_validate({"sourceId": "a", "targetId": "b"})
        assert (edge.source_id, edge.target_id) == ("a", "b")

    def test_relationship_from_data(self) -> None:
        edge = Edge.model_validate({"source": "a", "target": "b", "data": {"relationship": "reads"}})
        assert edge.relationship == "reads"


class TestParseGraph:
    def test_malformed_entries_become_warnings(self) -> None:
        nodes, edges, warnings = parse_graph(
            [{"id": "ok", "service_type": "s3"}, {"id": "bad"}, "not a node"],
            [{"source": "ok"}, {"source": "ok", "target": "ok2"}],
        )
        assert [n.id for n in nodes] == ["ok"]
        assert len(edges) == 1
        assert len(warnings) == 3
        assert warnings[0].startswith("Skipped node #1")

    def test_missing_id_gets_positional_id(self) -> None:
        nodes, _, warnings = parse_graph([{"service_type": "s3"}], [])
        assert nodes[0].id == "node-0"
        assert warnings == []


class TestTerraformResource:
    def test_depend_on_skips_duplicates_and_self(self) -> None:
        res = TerraformResource(type="aws_s3_bucket", name="a")
        res.depend_on("aws_iam_role.r")
        res.depend_on("aws_iam_role.r")
        res.depend_on("aws_s3_bucket.a")
        assert res.dependencies == ["aws_iam_role.r"]

    def test_data_mode_qualified_name(self) -> None:
        res = TerraformResource(type="supabase_apikeys", name="db", mode="data")
        assert res.qualified_name == "data.supabase_apikeys.db"
        assert res.to_dict()["address"] == "data.supabase_apikeys.db"
