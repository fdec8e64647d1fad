"""Aggregation of package dependencies and environment variables.

Dependencies declared by every selected provider are merged per ecosystem.
Nothing is deduplicated: duplicates are kept exactly as declared and left to
the package manager.  Environment variables are collected in the order the
providers are selected.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from anvil.config import EngineConfig
from anvil.manifest.models import EnvironmentVariable, ServiceManifest

from .models import ServiceSelection
from .registry import ServiceRegistry

logger = logging.getLogger(__name__)


class AggregatedServices(BaseModel):
    """Output of :meth:`DependencyAggregator.aggregate`.

    ``dependencies`` has at most these keys, each present only when non-empty:
    ``npm`` (list of ``{"name", "version"}``), ``cargo`` (name -> version),
    ``go`` and ``python`` (lists of requirement strings).
    """

    dependencies: dict[str, Any] = Field(default_factory=dict)
    environment_variables: list[EnvironmentVariable] = Field(default_factory=list)


def split_npm_dependency(spec: str, default_version: str = "^1.0.0") -> tuple[str, str]:
    """Split ``name@version`` into its parts.

    Scoped packages keep their leading ``@``::

        split_npm_dependency("@scope/pkg@^5.0.0") -> ("@scope/pkg", "^5.0.0")
        split_npm_dependency("@scope/pkg")        -> ("@scope/pkg", "^1.0.0")
        split_npm_dependency("lodash@4.17.21")    -> ("lodash", "4.17.21")
        split_npm_dependency("lodash")            -> ("lodash", "^1.0.0")
    """
    spec = spec.strip()
    if spec.startswith("@"):
        if "@" in spec[1:]:
            name, version = spec.rsplit("@", 1)
        else:
            name, version = spec, ""
    elif "@" in spec:
        name, version = spec.split("@", 1)
    else:
        name, version = spec, ""
    return name, version or default_version


class DependencyAggregator:
    """Merges dependency declarations and environment variables."""

    def __init__(
        self,
        registry: Optional[ServiceRegistry] = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.registry = registry
        self.config = config or (registry.config if registry else EngineConfig())

    async def aggregate(
        self,
        selections: Sequence[ServiceSelection],
        manifests: Optional[Mapping[str, Optional[ServiceManifest]]] = None,
    ) -> AggregatedServices:
        """Aggregate dependencies and environment variables of *selections*.

        Args:
            selections: Active selections, in order.
            manifests: Already-loaded provider manifests keyed by
                ``category/provider``.  Loaded through the registry when
                omitted.
        """
        if manifests is None:
            if self.registry is None:
                raise ValueError("either manifests or a registry is required")
            manifests = await self.registry.load_manifests(selections)

        npm: list[dict[str, str]] = []
        cargo: dict[str, str] = {}
        go: list[str] = []
        python: list[str] = []
        environment: list[EnvironmentVariable] = []

        for selection in selections:
            manifest = manifests.get(selection.label)
            if manifest is None:
                continue
            deps = manifest.dependencies
            if deps is not None:
                for spec in deps.npm or []:
                    name, version = split_npm_dependency(
                        spec, self.config.default_dependency_version
                    )
                    npm.append({"name": name, "version": version})
                cargo.update(deps.cargo or {})
                go.extend(deps.go or [])
                python.extend(deps.python or [])
            environment.extend(manifest.environment_variables)

        dependencies: dict[str, Any] = {}
        for key, value in (("npm", npm), ("cargo", cargo), ("go", go), ("python", python)):
            if value:
                dependencies[key] = value

        logger.debug(
            "Aggregated %d npm dependency(ies) and %d environment variable(s)",
            len(npm), len(environment),
        )
        return AggregatedServices(dependencies=dependencies, environment_variables=environment)
