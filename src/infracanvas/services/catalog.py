"""CatalogService: read-only questions about services and connections."""

from __future__ import annotations

from infracanvas.domain.catalog import lookup, services_for
from infracanvas.domain.connections import CONNECTION_RULES, find_rule, valid_targets
from infracanvas.services.base import BaseService
from infracanvas.services.result import ErrorCode, ServiceResult
from infracanvas.services.telemetry import traced


class CatalogService(BaseService):
    """Connection rules and registered service types per provider."""

    @traced
    def rules(self, provider: str, service_type: str) -> ServiceResult:
        """Valid connection targets for *service_type* on *provider*."""
        op = "rules"
        if provider not in CONNECTION_RULES:
            return ServiceResult.failure(
                op,
                ErrorCode.INVALID_INPUT,
                f"No connection rules for provider '{provider}'",
                detail={"providers": sorted(CONNECTION_RULES)},
            )
        items = []
        for target in valid_targets(service_type, provider):
            rule = find_rule(service_type, target, provider)
            if rule is None:
                continue
            items.append(
                {
                    "target_type": rule.target_type,
                    "relationship": rule.relationship,
                    "required": rule.required,
                    "description": rule.description,
                }
            )
        warnings = []
        if lookup(provider, service_type) is None:
            warnings.append(f"'{service_type}' is not a registered {provider} service")
        return ServiceResult(
            ok=True,
            op=op,
            data={"provider": provider, "service_type": service_type, "items": items, "count": len(items)},
            warnings=warnings,
        )

    @traced
    def services(self, provider: str) -> ServiceResult:
        """Registered service types for *provider*, with their Terraform types."""
        items = [
            {
                "service_type": spec.service_type,
                "terraform_type": spec.terraform_type,
                "category": str(spec.category),
            }
            for spec in services_for(provider)
        ]
        return ServiceResult(
            ok=True,
            op="services",
            data={"provider": provider, "items": items, "count": len(items)},
        )
