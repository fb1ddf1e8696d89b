"""Tests for variable and output synthesis."""

from __future__ import annotations

from infracanvas.domain.builder import build_resources
from infracanvas.domain.models import BlockNode
from infracanvas.domain.synthesis import synthesize_outputs, synthesize_variables
from tests.conftest import fixed_clock, node


def _synth(provider: str, *raw_nodes):
    nodes = [BlockNode.model_validate(n) for n in raw_nodes]
    resources = build_resources(nodes, [], provider, clock=fixed_clock).resources
    return synthesize_variables(nodes, resources, provider), synthesize_outputs(nodes, provider)


class TestVariables:
    def test_baseline_only(self) -> None:
        variables, outputs = _synth("aws")
        assert list(variables) == ["environment", "region"]
        assert variables["region"]["default"] == "us-east-1"
        assert outputs == {}

    def test_gcp_adds_project(self) -> None:
        variables, _ = _synth("gcp", node("b", "storage", "B"))
        assert variables["region"]["default"] == "us-central1"
        assert "project_id" in variables

    def test_managed_database_adds_sensitive_password(self) -> None:
        variables, _ = _synth("supabase", node("d", "database", "DB"))
        assert variables["supabase_db_password"]["sensitive"] is True
        assert "supabase_organization_id" in variables
        assert variables["supabase_access_token"]["sensitive"] is True

    def test_function_adds_code_location(self) -> None:
        variables, _ = _synth("aws", node("f", "lambda", "Fn"))
        assert variables["lambda_s3_bucket"]["default"] == "my-lambda-bucket"
        assert "lambda_s3_key" in variables

    def test_referenced_password_declared(self) -> None:
        variables, _ = _synth("aws", node("r", "rds", "Users"))
        assert variables["db_password"]["sensitive"] is True

    def test_load_balancer_lists(self) -> None:
        variables, _ = _synth("aws", node("l", "alb", "Front"))
        assert variables["alb_subnet_ids"]["type"] == "list(string)"
        assert variables["alb_subnet_ids"]["default"] == []


class TestOutputs:
    def test_gateway_and_table(self) -> None:
        _, outputs = _synth("aws", node("g", "api_gateway", "Orders API"), node("t", "dynamodb", "Orders"))
        assert outputs["orders_api_id"]["value"] == "aws_api_gateway_rest_api.orders_api.id"
        assert outputs["orders_api_arn"]["value"] == "aws_api_gateway_rest_api.orders_api.arn"
        assert outputs["orders_api_execution_arn"]["value"] == "aws_api_gateway_rest_api.orders_api.execution_arn"
        assert outputs["orders_table_name"]["value"] == "aws_dynamodb_table.orders.name"
        assert outputs["orders_table_arn"]["value"] == "aws_dynamodb_table.orders.arn"

    def test_function_inline_location(self) -> None:
        _, outputs = _synth("aws", node("f", "lambda", "Fn"))
        assert outputs["fn_filename"]["value"] == "aws_lambda_function.fn.filename"
        assert "fn_s3_bucket" not in outputs

    def test_function_external_location(self) -> None:
        _, outputs = _synth("aws", node("f", "lambda", "Fn", s3_bucket="code", s3_key="fn.zip"))
        assert outputs["fn_s3_key"]["value"] == "aws_lambda_function.fn.s3_key"

    def test_attribute_overrides(self) -> None:
        _, outputs = _synth("gcp", node("c", "compute", "Web"), node("s", "sql", "Users"))
        assert outputs["web_public_ip"]["value"] == (
            "google_compute_instance.web.network_interface[0].access_config[0].nat_ip"
        )
        assert outputs["users_endpoint"]["value"] == "google_sql_database_instance.users.public_ip_address"

    def test_managed_database_keys_are_sensitive(self) -> None:
        _, outputs = _synth("supabase", node("d", "database", "Main"))
        assert outputs["main_project_url"]["value"] == "https://${supabase_project.main.id}.supabase.co"
        assert outputs["main_anon_key"]["sensitive"] is True
        assert outputs["main_service_role_key"]["value"] == "data.supabase_apikeys.main.service_role_key"

    def test_categories_without_outputs(self) -> None:
        _, outputs = _synth("aws", node("q", "sqs", "Jobs"), node("x", "mystery", "Thing"))
        assert outputs == {}
