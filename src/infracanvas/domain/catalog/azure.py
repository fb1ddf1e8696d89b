"""Azure service expansions.

Every resource lives in the shared ``azurerm_resource_group.main`` group,
emitted once per artifact that uses Azure.
"""

from __future__ import annotations

import re

from infracanvas.domain.catalog.registry import ENVIRONMENT_TAG, ExpansionContext, register, shared
from infracanvas.domain.models import TerraformResource
from infracanvas.domain.types import Category

PROVIDER = "azure"

RESOURCE_GROUP = "azurerm_resource_group.main"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _tags() -> dict[str, str]:
    return {"environment": ENVIRONMENT_TAG}


@shared(PROVIDER)
def resource_group() -> list[TerraformResource]:
    return [
        TerraformResource(
            type="azurerm_resource_group",
            name="main",
            config={
                "name": "infracanvas-${var.environment}-rg",
                "location": "var.region",
                "tags": _tags(),
            },
        )
    ]


def storage_account_name(label: str, timestamp: int) -> str:
    """Storage account names are 3-24 lowercase alphanumerics."""
    stem = _NON_ALNUM.sub("", label.lower())[:14] or "storage"
    return f"{stem}{timestamp % 10**10:010d}"[:24]


@register(
    PROVIDER,
    "vm",
    "azurerm_linux_virtual_machine",
    Category.COMPUTE,
    aliases=("virtual_machine",),
    attributes={"public_ip": "public_ip_address"},
)
def expand_vm(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "name": c.get("name") or ctx.unique("vm"),
                "resource_group_name": f"{RESOURCE_GROUP}.name",
                "location": c.get("location") or f"{RESOURCE_GROUP}.location",
                "size": c.get("vm_size") or "Standard_B1s",
                "admin_username": c.get("admin_username") or "adminuser",
                "disable_password_authentication": True,
                "network_interface_ids": "var.network_interface_ids",
                "admin_ssh_key": {
                    "username": c.get("admin_username") or "adminuser",
                    "public_key": "var.admin_ssh_public_key",
                },
                "os_disk": {
                    "caching": "ReadWrite",
                    "storage_account_type": c.get("os_disk_type") or "Standard_LRS",
                },
                "source_image_reference": {
                    "publisher": "Canonical",
                    "offer": "0001-com-ubuntu-server-focal",
                    "sku": "20_04-lts-gen2",
                    "version": "latest",
                },
                "tags": _tags(),
            }
        )
    ]


@register(
    PROVIDER,
    "blob",
    "azurerm_storage_account",
    Category.BUCKET,
    aliases=("blob_storage", "storage"),
    attributes={"bucket_name": "name"},
)
def expand_blob(ctx: ExpansionContext) -> list[TerraformResource]:
    c = ctx.config
    return [
        ctx.base(
            {
                "name": c.get("name") or storage_account_name(ctx.label, ctx.timestamp),
                "resource_group_name": f"{RESOURCE_GROUP}.name",
                "location": c.get("location") or f"{RESOURCE_GROUP}.location",
                "account_tier": c.get("account_tier") or "Standard",
                "account_replication_type": c.get("replication_type") or "LRS",
                "tags": _tags(),
            }
        )
    ]
