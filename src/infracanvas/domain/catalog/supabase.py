"""Supabase managed database expansion."""

from __future__ import annotations

from infracanvas.domain.catalog.registry import ExpansionContext, register
from infracanvas.domain.models import TerraformResource
from infracanvas.domain.types import Category

PROVIDER = "supabase"


@register(
    PROVIDER,
    "database",
    "supabase_project",
    Category.MANAGED_DB,
    aliases=("supabase", "project"),
)
def expand_database(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    project = ctx.base(
        {
            "organization_id": "var.supabase_organization_id",
            "name": c.get("name") or ctx.unique("project"),
            "database_password": "var.supabase_db_password",
            "region": c.get("region") or "var.region",
            "instance_size": c.get("instance_size") or None,
        }
    )
    # anon/service keys for outputs
    keys = ctx.satellite(
        "supabase_apikeys",
        ctx.name,
        {"project_ref": f"{project.qualified_name}.id"},
        project.qualified_name,
        mode="data",
    )
    return [project, keys]
