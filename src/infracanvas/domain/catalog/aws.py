"""AWS service expansions."""

from __future__ import annotations

import json
from typing import Any

from infracanvas.domain.catalog.registry import (
    ExpansionContext,
    as_int,
    first,
    flag,
    lookup,
    register,
)
from infracanvas.domain.connections import edge_relationship
from infracanvas.domain.models import TerraformResource
from infracanvas.domain.naming import qualified_name, resource_name
from infracanvas.domain.types import Category

PROVIDER = "aws"

RDS_ENGINE_VERSIONS = {"mysql": "8.0", "postgres": "13.7", "mariadb": "10.6"}

LAMBDA_BASIC_EXECUTION_ARN = "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"

INLINE_HANDLER = """\
exports.handler = async (event) => {
  console.log('Event:', JSON.stringify(event, null, 2));

  return {
    statusCode: 200,
    headers: {
      'Content-Type': 'application/json',
      'Access-Control-Allow-Origin': '*'
    },
    body: JSON.stringify({
      message: 'Hello from Lambda!',
      timestamp: new Date().toISOString(),
      input: event
    })
  };
};"""

# target service -> (relationships granting access, actions, include object ARN)
_ACCESS: dict[str, tuple[frozenset[str], tuple[str, ...], bool]] = {
    "s3": (
        frozenset({"accesses", "reads", "writes"}),
        ("s3:GetObject", "s3:PutObject", "s3:DeleteObject", "s3:ListBucket"),
        True,
    ),
    "dynamodb": (
        frozenset({"accesses", "reads", "writes"}),
        (
            "dynamodb:GetItem",
            "dynamodb:PutItem",
            "dynamodb:UpdateItem",
            "dynamodb:DeleteItem",
            "dynamodb:Query",
            "dynamodb:Scan",
        ),
        False,
    ),
    "sqs": (
        frozenset({"sends_to", "consumes"}),
        ("sqs:SendMessage", "sqs:ReceiveMessage", "sqs:DeleteMessage", "sqs:GetQueueAttributes"),
        False,
    ),
    "sns": (
        frozenset({"publishes_to", "subscribes_to"}),
        ("sns:Publish", "sns:Subscribe", "sns:Unsubscribe"),
        False,
    ),
    "rds": (frozenset({"connects_to"}), ("rds-db:connect",), False),
}

# target service -> (env var suffix, attribute) pairs
_ENV_ATTRIBUTES: dict[str, tuple[tuple[str, str], ...]] = {
    "dynamodb": (("TABLE_NAME", "name"), ("TABLE_ARN", "arn")),
    "s3": (("BUCKET_NAME", "bucket"), ("BUCKET_ARN", "arn")),
    "sqs": (("QUEUE_URL", "url"), ("QUEUE_ARN", "arn")),
}


def _canonical(service_type: str) -> str:
    spec = lookup(PROVIDER, service_type)
    return spec.service_type if spec is not None else service_type


@register(PROVIDER, "ec2", "aws_instance", Category.COMPUTE)
def expand_ec2(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "ami": c.get("ami") or "ami-0abcdef1234567890",
                "instance_type": c.get("instance_type") or "t3.micro",
                "key_name": c.get("key_name") or None,
                "tags": ctx.tags(name=c.get("name") or f"{ctx.label}-instance-{ctx.timestamp}"),
            }
        )
    ]


@register(
    PROVIDER,
    "api_gateway",
    "aws_api_gateway_rest_api",
    Category.GATEWAY,
    aliases=("gateway", "apigateway"),
)
def expand_api_gateway(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    endpoint = c.get("endpoint_configuration") or "REGIONAL"
    return [
        ctx.base(
            {
                "name": c.get("name") or ctx.unique("api"),
                "description": c.get("description") or "REST API",
                "endpoint_configuration": {"types": [endpoint]},
                "tags": ctx.tags(),
            }
        )
    ]


@register(
    PROVIDER,
    "dynamodb",
    "aws_dynamodb_table",
    Category.TABLE,
    aliases=("dynamodb_table",),
)
def expand_dynamodb(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    billing_mode = c.get("billing_mode") or "PAY_PER_REQUEST"
    hash_key = c.get("hash_key") or "id"
    config: dict[str, Any] = {
        "name": c.get("table_name") or ctx.unique("table"),
        "billing_mode": billing_mode,
        "hash_key": hash_key,
        "range_key": c.get("range_key") or None,
    }
    if billing_mode == "PROVISIONED":
        config["read_capacity"] = as_int(c, "read_capacity", 5)
        config["write_capacity"] = as_int(c, "write_capacity", 5)
    config["attribute"] = {"name": hash_key, "type": c.get("hash_key_type") or "S"}
    if flag(c, "point_in_time_recovery"):
        config["point_in_time_recovery"] = {"enabled": True}
    if flag(c, "stream_enabled"):
        config["stream_enabled"] = True
        config["stream_view_type"] = c.get("stream_view_type") or "NEW_AND_OLD_IMAGES"
    config["tags"] = ctx.tags()
    return [ctx.base(config)]


@register(PROVIDER, "s3", "aws_s3_bucket", Category.BUCKET, aliases=("s3_bucket",))
def expand_s3(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    bucket = ctx.base({"bucket": c.get("bucket_name") or ctx.unique("bucket"), "tags": ctx.tags()})
    resources = [
        bucket,
        ctx.satellite(
            "aws_s3_bucket_public_access_block",
            ctx.name,
            {
                "bucket": f"{bucket.qualified_name}.id",
                "block_public_acls": True,
                "block_public_policy": True,
                "ignore_public_acls": True,
                "restrict_public_buckets": True,
            },
            bucket.qualified_name,
        ),
    ]
    if flag(c, "versioning"):
        resources.append(
            ctx.satellite(
                "aws_s3_bucket_versioning",
                f"{ctx.name}_versioning",
                {
                    "bucket": f"{bucket.qualified_name}.id",
                    "versioning_configuration": {"status": "Enabled"},
                },
                bucket.qualified_name,
            )
        )
    return resources


@register(
    PROVIDER,
    "rds",
    "aws_db_instance",
    Category.RELATIONAL_DB,
    aliases=("rds_database",),
)
def expand_rds(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    engine = str(c.get("engine") or "mysql")
    return [
        ctx.base(
            {
                "identifier": c.get("identifier") or ctx.unique("db"),
                "engine": engine,
                "engine_version": c.get("engine_version") or RDS_ENGINE_VERSIONS.get(engine, "8.0"),
                "instance_class": c.get("instance_class") or "db.t3.micro",
                "allocated_storage": as_int(c, "allocated_storage", 20),
                "db_name": c.get("db_name") or f"{ctx.name}_db",
                "username": c.get("username") or "admin",
                "password": c.get("password") or "var.db_password",
                "skip_final_snapshot": True,
                "tags": ctx.tags(),
            }
        )
    ]


@register(
    PROVIDER,
    "lambda",
    "aws_lambda_function",
    Category.FUNCTION,
    aliases=("lambda_function", "function"),
)
def expand_lambda(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    role_name = f"{ctx.name}_role"
    role_ref = qualified_name("aws_iam_role", role_name)
    inline = not c.get("s3_bucket") and not c.get("s3_key")

    config: dict[str, Any] = {
        "function_name": c.get("function_name") or ctx.unique("function"),
        "runtime": c.get("runtime") or "nodejs18.x",
        "handler": c.get("handler") or "index.handler",
    }
    if inline:
        config["filename"] = f"lambda-{ctx.name}.zip"
    else:
        config["s3_bucket"] = c.get("s3_bucket") or "var.lambda_s3_bucket"
        config["s3_key"] = c.get("s3_key") or "var.lambda_s3_key"
    config["memory_size"] = as_int(c, "memory_size", 128)
    config["timeout"] = as_int(c, "timeout", 30)
    config["role"] = f"{role_ref}.arn"
    variables = _environment_variables(ctx)
    if variables:
        config["environment"] = {"variables": variables}
    config["tags"] = ctx.tags()

    function = ctx.base(config)
    function.depend_on(role_ref)

    assume_role = {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "lambda.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }
    resources = [
        function,
        ctx.satellite(
            "aws_iam_role",
            role_name,
            {
                "name": ctx.unique("role"),
                "assume_role_policy": json.dumps(assume_role, indent=2),
                "tags": ctx.tags(name=f"{ctx.label}-role"),
            },
        ),
        ctx.satellite(
            "aws_iam_role_policy_attachment",
            f"{ctx.name}_basic_execution",
            {"role": f"{role_ref}.name", "policy_arn": LAMBDA_BASIC_EXECUTION_ARN},
            role_ref,
        ),
    ]
    resources.extend(_access_policies(ctx, role_ref))

    if inline:
        archive_name = f"{ctx.name}_lambda_zip"
        resources.append(
            ctx.satellite(
                "archive_file",
                archive_name,
                {
                    "type": "zip",
                    "output_path": f"lambda-{ctx.name}.zip",
                    "source": {"content": c.get("inline_code") or INLINE_HANDLER, "filename": "index.js"},
                },
            )
        )
        function.depend_on(qualified_name("archive_file", archive_name))
    return resources


def _environment_variables(ctx: ExpansionContext) -> dict[str, str]:
    environment = ctx.config.get("environment")
    variables: dict[str, str] = {}
    if isinstance(environment, dict) and isinstance(environment.get("variables"), dict):
        variables.update(environment["variables"])
    for _, target in ctx.outgoing():
        attributes = _ENV_ATTRIBUTES.get(_canonical(target.service_type))
        ref = ctx.reference(target.id)
        if attributes is None or ref is None:
            continue
        prefix = ref.rsplit(".", 1)[1].upper()
        for suffix, attribute in attributes:
            variables[f"{prefix}_{suffix}"] = f"{ref}.{attribute}"
    return variables


def _access_policies(ctx: ExpansionContext, role_ref: str) -> list[TerraformResource]:
    """One custom policy + attachment per connected service type."""
    statements: dict[str, list[dict[str, Any]]] = {}
    for edge, target in ctx.outgoing():
        service = _canonical(target.service_type)
        access = _ACCESS.get(service)
        ref = ctx.reference(target.id)
        if access is None or ref is None:
            continue
        relationships, actions, objects = access
        if edge_relationship(edge, ctx.node, target, PROVIDER) not in relationships:
            continue
        if service == "rds":
            db_user = ref.rsplit(".", 1)[1]
            resource: Any = f"arn:aws:rds-db:${{var.region}}:*:dbuser:*/{db_user}"
        elif objects:
            resource = [f"${{{ref}.arn}}", f"${{{ref}.arn}}/*"]
        else:
            resource = f"${{{ref}.arn}}"
        statements.setdefault(service, []).append(
            {"Effect": "Allow", "Action": list(actions), "Resource": resource}
        )

    resources: list[TerraformResource] = []
    for service, service_statements in statements.items():
        policy_name = resource_name(f"{ctx.name}_{service}_policy")
        policy_ref = qualified_name("aws_iam_policy", policy_name)
        document = {"Version": "2012-10-17", "Statement": service_statements}
        resources.append(
            ctx.satellite(
                "aws_iam_policy",
                policy_name,
                {
                    "name": ctx.unique(f"{service}-access"),
                    "policy": json.dumps(document, indent=2),
                    "tags": ctx.tags(name=f"{ctx.label}-{service}-policy"),
                },
            )
        )
        resources.append(
            ctx.satellite(
                "aws_iam_role_policy_attachment",
                f"{policy_name}_attachment",
                {"role": f"{role_ref}.name", "policy_arn": f"{policy_ref}.arn"},
                role_ref,
                policy_ref,
            )
        )
    return resources


@register(PROVIDER, "vpc", "aws_vpc", Category.NETWORK)
def expand_vpc(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "cidr_block": c.get("cidr_block") or "10.0.0.0/16",
                "enable_dns_hostnames": c.get("enable_dns_hostnames") is not False,
                "enable_dns_support": c.get("enable_dns_support") is not False,
                "tags": ctx.tags(name=c.get("name") or f"{ctx.label}-vpc"),
            }
        )
    ]


@register(
    PROVIDER,
    "alb",
    "aws_lb",
    Category.LOAD_BALANCER,
    aliases=("lb", "load_balancer"),
)
def expand_alb(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "name": c.get("name") or ctx.unique("alb"),
                "load_balancer_type": c.get("load_balancer_type") or "application",
                "internal": c.get("scheme") == "internal",
                "subnets": "var.alb_subnet_ids",
                "security_groups": "var.alb_security_group_ids",
                "tags": ctx.tags(),
            }
        )
    ]


@register(PROVIDER, "sqs", "aws_sqs_queue", Category.QUEUE, aliases=("sqs_queue", "queue"))
def expand_sqs(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    fifo = flag(c, "fifo_queue", "fifoQueue")
    name = str(c.get("name") or ctx.unique("queue"))
    config: dict[str, Any] = {
        "name": f"{name}.fifo" if fifo and not name.endswith(".fifo") else name,
        "visibility_timeout_seconds": as_int(c, "visibility_timeout_seconds", 30),
        "message_retention_seconds": as_int(c, "message_retention_seconds", 1209600),
        "delay_seconds": as_int(c, "delay_seconds", 0),
    }
    if fifo:
        config["fifo_queue"] = True
        if flag(c, "content_based_deduplication"):
            config["content_based_deduplication"] = True
    if c.get("kms_master_key_id"):
        config["kms_master_key_id"] = c["kms_master_key_id"]
        if c.get("kms_data_key_reuse_period_seconds"):
            config["kms_data_key_reuse_period_seconds"] = as_int(
                c, "kms_data_key_reuse_period_seconds", 300
            )
    config["tags"] = ctx.tags()
    queue = ctx.base(config)
    resources = [queue]

    max_receive = first(c, "max_receive_count", "maxReceiveCount")
    if flag(c, "dead_letter_queue", "deadLetterQueue") and max_receive is not None:
        dlq_name = f"{ctx.name}_dlq"
        dlq_ref = qualified_name("aws_sqs_queue", dlq_name)
        base_name = name.removesuffix(".fifo")
        dlq_config: dict[str, Any] = {
            "name": f"{base_name}-dlq.fifo" if fifo else f"{base_name}-dlq",
            "message_retention_seconds": 1209600,
        }
        if fifo:
            dlq_config["fifo_queue"] = True
        dlq_config["tags"] = ctx.tags(name=f"{ctx.label}-dlq", Type="DeadLetterQueue")
        resources.append(ctx.satellite("aws_sqs_queue", dlq_name, dlq_config))

        count = as_int(c, "max_receive_count", 0) or as_int(c, "maxReceiveCount", 5)
        queue.config["redrive_policy"] = (
            f"jsonencode({{ deadLetterTargetArn = {dlq_ref}.arn, maxReceiveCount = {count} }})"
        )
        queue.depend_on(dlq_ref)
    return resources


@register(PROVIDER, "sns", "aws_sns_topic", Category.TOPIC, aliases=("sns_topic", "topic"))
def expand_sns(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    fifo = flag(c, "fifo_topic")
    name = str(c.get("name") or ctx.unique("topic"))
    return [
        ctx.base(
            {
                "name": f"{name}.fifo" if fifo and not name.endswith(".fifo") else name,
                "fifo_topic": True if fifo else None,
                "display_name": c.get("display_name") or None,
                "tags": ctx.tags(),
            }
        )
    ]
