"""Variable and output synthesis.

Both functions are additive: every entry is keyed on the presence of a
resource category, and an absent category simply contributes nothing.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from infracanvas.domain.builder import node_address
from infracanvas.domain.catalog import lookup
from infracanvas.domain.models import BlockNode, TerraformResource
from infracanvas.domain.types import Category, Provider, default_region

_VAR_REFERENCE = re.compile(r"\bvar\.([A-Za-z_][A-Za-z0-9_-]*)")

# category -> (output suffix, attribute key, description template)
_OUTPUTS: dict[Category, tuple[tuple[str, str, str], ...]] = {
    Category.COMPUTE: (("public_ip", "public_ip", "Public IP of {label}"),),
    Category.GATEWAY: (
        ("id", "id", "ID of {label} API Gateway"),
        ("arn", "arn", "ARN of {label} API Gateway"),
        ("execution_arn", "execution_arn", "Execution ARN of {label} API Gateway"),
    ),
    Category.BUCKET: (("bucket_name", "bucket", "Name of {label} bucket"),),
    Category.TABLE: (
        ("table_name", "name", "Name of {label} table"),
        ("table_arn", "arn", "ARN of {label} table"),
    ),
    Category.RELATIONAL_DB: (("endpoint", "endpoint", "Database endpoint for {label}"),),
    Category.LOAD_BALANCER: (("dns_name", "dns_name", "DNS name of {label}"),),
    Category.FUNCTION: (
        ("function_name", "function_name", "Name of {label} function"),
        ("arn", "arn", "ARN of {label} function"),
    ),
}


def classify(node: BlockNode, provider: str) -> Category:
    """Category of a node's base resource (``OTHER`` when unregistered)."""
    spec = lookup(provider, node.service_type)
    return spec.category if spec is not None else Category.OTHER


def _variable(
    description: str,
    *,
    default: Any = None,
    type_: str = "string",
    sensitive: bool = False,
) -> dict[str, Any]:
    variable: dict[str, Any] = {"description": description, "type": type_}
    if default is not None:
        variable["default"] = default
    if sensitive:
        variable["sensitive"] = True
    return variable


def synthesize_variables(
    nodes: Sequence[BlockNode],
    resources: Sequence[TerraformResource],
    provider: str,
) -> dict[str, dict[str, Any]]:
    """Baseline variables plus those implied by the categories present.

    Any ``var.<name>`` referenced by a resource that is still undeclared
    after the category rules gets a plain string variable.
    """
    categories = {classify(node, provider) for node in nodes}

    variables: dict[str, dict[str, Any]] = {
        "environment": _variable("Environment name", default="dev"),
        "region": _variable("Cloud provider region", default=default_region(provider)),
    }
    if provider == Provider.GCP:
        variables["project_id"] = _variable("GCP project ID")
    if provider == Provider.SUPABASE:
        variables["supabase_access_token"] = _variable("Supabase personal access token", sensitive=True)
    if Category.MANAGED_DB in categories:
        variables["supabase_organization_id"] = _variable("Supabase organization ID")
        variables["supabase_db_password"] = _variable("Supabase database password", sensitive=True)
    if Category.FUNCTION in categories:
        variables["lambda_s3_bucket"] = _variable(
            "S3 bucket containing the Lambda function code", default="my-lambda-bucket"
        )
        variables["lambda_s3_key"] = _variable(
            "S3 key (path) to the Lambda function ZIP file", default="lambda-function.zip"
        )
    if Category.LOAD_BALANCER in categories:
        variables["alb_subnet_ids"] = _variable(
            "Subnet IDs for the load balancer", type_="list(string)", default=[]
        )
        variables["alb_security_group_ids"] = _variable(
            "Security group IDs for the load balancer", type_="list(string)", default=[]
        )

    referenced = _referenced_variables(resources)
    if "db_password" in referenced:
        variables.setdefault(
            "db_password", _variable("Master password for relational databases", sensitive=True)
        )
    if "network_interface_ids" in referenced:
        variables.setdefault(
            "network_interface_ids",
            _variable("Network interface IDs for virtual machines", type_="list(string)", default=[]),
        )
    if "admin_ssh_public_key" in referenced:
        variables.setdefault("admin_ssh_public_key", _variable("SSH public key for the VM admin user"))
    for name in referenced:
        variables.setdefault(name, _variable(f"Value for {name}"))
    return variables


def _referenced_variables(resources: Iterable[TerraformResource]) -> list[str]:
    found: list[str] = []

    def visit(value: Any) -> None:
        if isinstance(value, str):
            for match in _VAR_REFERENCE.finditer(value):
                if match.group(1) not in found:
                    found.append(match.group(1))
        elif isinstance(value, Mapping):
            for item in value.values():
                visit(item)
        elif isinstance(value, list | tuple):
            for item in value:
                visit(item)

    for resource in resources:
        visit(resource.config)
    return found


def synthesize_outputs(nodes: Sequence[BlockNode], provider: str) -> dict[str, dict[str, Any]]:
    """Per-node outputs by category; nodes of unlisted categories add none."""
    outputs: dict[str, dict[str, Any]] = {}
    for node in nodes:
        category = classify(node, provider)
        resource_type, name = node_address(node, provider)
        ref = f"{resource_type}.{name}"
        label = node.name or name
        spec = lookup(provider, node.service_type)
        overrides = spec.attributes if spec is not None else {}

        for suffix, attribute, description in _OUTPUTS.get(category, ()):
            attribute = overrides.get(attribute, overrides.get(suffix, attribute))
            outputs[f"{name}_{suffix}"] = {
                "description": description.format(label=label),
                "value": f"{ref}.{attribute}",
            }

        if category is Category.FUNCTION:
            outputs.update(_code_location_outputs(node, ref, name, label))
        elif category is Category.MANAGED_DB:
            outputs.update(_managed_db_outputs(ref, name, label))
    return outputs


def _code_location_outputs(node: BlockNode, ref: str, name: str, label: str) -> dict[str, dict[str, Any]]:
    if not node.config.get("s3_bucket") and not node.config.get("s3_key"):
        return {
            f"{name}_filename": {
                "description": f"Deployment package for {label} function",
                "value": f"{ref}.filename",
            }
        }
    return {
        f"{name}_s3_bucket": {
            "description": f"S3 bucket containing {label} function code",
            "value": f"{ref}.s3_bucket",
        },
        f"{name}_s3_key": {
            "description": f"S3 key for {label} function code",
            "value": f"{ref}.s3_key",
        },
    }


def _managed_db_outputs(ref: str, name: str, label: str) -> dict[str, dict[str, Any]]:
    keys = f"data.supabase_apikeys.{name}"
    return {
        f"{name}_project_id": {"description": f"Project ID of {label}", "value": f"{ref}.id"},
        f"{name}_project_url": {
            "description": f"API URL of {label}",
            "value": f"https://${{{ref}.id}}.supabase.co",
        },
        f"{name}_db_host": {
            "description": f"Database host of {label}",
            "value": f"db.${{{ref}.id}}.supabase.co",
        },
        f"{name}_anon_key": {
            "description": f"Anonymous API key of {label}",
            "value": f"{keys}.anon_key",
            "sensitive": True,
        },
        f"{name}_service_role_key": {
            "description": f"Service role API key of {label}",
            "value": f"{keys}.service_role_key",
            "sensitive": True,
        },
    }
