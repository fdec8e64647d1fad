"""Cross-service context built once per composition.

Each selected service exports a small set of facts that every rendered file
can use (``auth_provider``, ``has_database``...).  The caller's per-selection
configuration is layered on top under ``config_<key>`` names.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from anvil.manifest.models import ServiceCategory, ServiceManifest

from .models import ServiceContext, ServiceInfo, ServiceSelection
from .registry import ServiceRegistry

logger = logging.getLogger(__name__)

# Substrings marking an environment variable as safe to expose to a browser.
PUBLIC_KEY_MARKERS = ("PUBLISHABLE", "PUBLIC")


def service_exports(
    selection: ServiceSelection, manifest: Optional[ServiceManifest]
) -> dict[str, Any]:
    """Exports of one selection, before configuration is overlaid."""
    provider = selection.provider
    category = selection.category
    exports: dict[str, Any] = {"provider": provider, "category": category.key}

    if category is ServiceCategory.AUTH:
        exports["auth_provider"] = provider
        exports["has_auth"] = True
        for env_var in manifest.environment_variables if manifest else []:
            if any(marker in env_var.name for marker in PUBLIC_KEY_MARKERS):
                exports["public_auth_key_name"] = env_var.name
    elif category is ServiceCategory.DATABASE:
        exports["database_provider"] = provider
        exports["has_database"] = True
    elif category is ServiceCategory.PAYMENTS:
        exports["payments_provider"] = provider
        exports["has_payments"] = True
    elif category is ServiceCategory.AI:
        exports["ai_provider"] = provider
        exports["has_ai"] = True
    elif category is ServiceCategory.API:
        exports["api_pattern"] = provider
        exports["api_type"] = provider
        exports["has_api"] = True
    else:
        exports[f"has_{category.key}"] = True
    return exports


def build_service_context(
    selections: Sequence[ServiceSelection],
    manifests: Mapping[str, Optional[ServiceManifest]],
) -> ServiceContext:
    """Build the immutable :class:`ServiceContext` for *selections*.

    Providers without a manifest still contribute their baseline exports.
    """
    services: dict[str, ServiceInfo] = {}
    for selection in selections:
        exports = service_exports(selection, manifests.get(selection.label))
        for key, value in selection.config.items():
            exports[f"config_{key}"] = value
        services[selection.category.key] = ServiceInfo(
            provider=selection.provider,
            config=dict(selection.config),
            exports=exports,
        )

    shared_config: dict[str, Any] = {
        "has_any_auth": ServiceCategory.AUTH.key in services,
        "has_any_database": ServiceCategory.DATABASE.key in services,
        "service_count": len(selections),
    }
    logger.debug("Built service context for %s", ", ".join(services) or "no services")
    return ServiceContext(services=services, shared_config=shared_config)


class ServiceContextBuilder:
    """Registry-backed wrapper around :func:`build_service_context`."""

    def __init__(self, registry: ServiceRegistry) -> None:
        self.registry = registry

    async def build_context(
        self,
        selections: Sequence[ServiceSelection],
        manifests: Optional[Mapping[str, Optional[ServiceManifest]]] = None,
    ) -> ServiceContext:
        if manifests is None:
            manifests = await self.registry.load_manifests(selections)
        return build_service_context(selections, manifests)
