"""GCP service expansions."""

from __future__ import annotations

from infracanvas.domain.catalog.registry import ENVIRONMENT_TAG, ExpansionContext, as_int, register
from infracanvas.domain.models import TerraformResource
from infracanvas.domain.types import Category

PROVIDER = "gcp"


def _labels() -> dict[str, str]:
    return {"environment": ENVIRONMENT_TAG}


@register(
    PROVIDER,
    "compute",
    "google_compute_instance",
    Category.COMPUTE,
    aliases=("compute_engine",),
    attributes={"public_ip": "network_interface[0].access_config[0].nat_ip"},
)
def expand_compute(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "name": c.get("name") or ctx.unique("instance"),
                "machine_type": c.get("machine_type") or "e2-micro",
                "zone": c.get("zone") or "us-central1-a",
                "boot_disk": {
                    "initialize_params": {"image": c.get("image") or "debian-cloud/debian-11"},
                },
                "network_interface": {
                    "network": c.get("network") or "default",
                    "access_config": {},
                },
                "labels": _labels(),
            }
        )
    ]


@register(
    PROVIDER,
    "storage",
    "google_storage_bucket",
    Category.BUCKET,
    aliases=("cloud_storage",),
    attributes={"bucket_name": "name"},
)
def expand_storage(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "name": c.get("name") or ctx.unique("bucket"),
                "location": c.get("location") or "US",
                "storage_class": c.get("storage_class") or "STANDARD",
                "labels": _labels(),
            }
        )
    ]


@register(
    PROVIDER,
    "sql",
    "google_sql_database_instance",
    Category.RELATIONAL_DB,
    aliases=("cloud_sql",),
    attributes={"endpoint": "public_ip_address"},
)
def expand_sql(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "name": c.get("name") or ctx.unique("db"),
                "database_version": c.get("database_version") or "MYSQL_8_0",
                "region": "var.region",
                "deletion_protection": bool(c.get("deletion_protection", False)),
                "settings": {
                    "tier": c.get("tier") or "db-f1-micro",
                    "disk_size": as_int(c, "disk_size", 10),
                    "disk_type": c.get("disk_type") or "PD_SSD",
                },
            }
        )
    ]
