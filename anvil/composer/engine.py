"""Composition engine: base template + selected services -> one file tree.

Pipeline per ``compose_template`` call::

    load manifest -> validate selections -> build service context
    -> collect files -> conditional filter -> resolve conflicts
    -> aggregate dependencies / environment variables

Every stage runs sequentially inside the calling task.  No state is shared
between calls, so independent compositions can run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from anvil.config import EngineConfig
from anvil.errors import CompositionError, TemplateNotFoundError
from anvil.manifest.loader import parse_template
from anvil.manifest.models import ServiceCategory, TemplateManifest

from .aggregator import DependencyAggregator
from .collector import FileCollector
from .conditions import ConditionalFilter, UnrecognizedHook
from .context import build_service_context
from .models import ComposedFile, ComposedTemplate, FileSource, ServiceSelection
from .registry import NONE_PROVIDER, ServiceRegistry
from .resolver import ConflictResolver
from .selection import SelectionValidator

logger = logging.getLogger(__name__)


class CompositionEngine:
    """Composes base templates with shared service modules.

    Args:
        base_template_root: Directory holding ``<template-name>/`` folders.
        shared_services_root: Directory holding ``<category>/<provider>/``.
        config: Engine settings (defaults when omitted).
        on_unrecognized_condition: Called with every condition leaf the
            inclusion filter could not parse (such files are kept).
    """

    def __init__(
        self,
        base_template_root: str | Path,
        shared_services_root: str | Path,
        config: EngineConfig | None = None,
        on_unrecognized_condition: Optional[UnrecognizedHook] = None,
    ) -> None:
        self.base_template_root = Path(base_template_root)
        self.shared_services_root = Path(shared_services_root)
        self.config = config or EngineConfig()
        self.registry = ServiceRegistry(self.shared_services_root, self.config)
        self.validator = SelectionValidator(self.registry)
        self.collector = FileCollector(self.config)
        self.filter = ConditionalFilter(on_unrecognized_condition)
        self.resolver = ConflictResolver()
        self.aggregator = DependencyAggregator(self.registry, self.config)

    # -- Discovery ---------------------------------------------------------

    async def discover_service_providers(self, category: ServiceCategory) -> list[str]:
        return await self.registry.discover_providers(category)

    async def discover_all_services(self) -> dict[ServiceCategory, list[str]]:
        return await self.registry.discover_all()

    # -- Templates ---------------------------------------------------------

    def template_dir(self, template_name: str) -> Path:
        return self.base_template_root / template_name

    async def load_template(self, template_name: str) -> TemplateManifest:
        """Parse the named template's manifest.

        Raises:
            TemplateNotFoundError: If the template or its manifest is missing.
            InvalidConfigError: If the manifest is invalid.
        """
        if not template_name or Path(template_name).name != template_name:
            raise TemplateNotFoundError(template_name)
        manifest_path = self.template_dir(template_name) / self.config.manifest_filename
        if not await asyncio.to_thread(manifest_path.is_file):
            raise TemplateNotFoundError(template_name)
        return await parse_template(manifest_path)

    def selections_for_combination(
        self, manifest: TemplateManifest, combination_name: str
    ) -> list[ServiceSelection]:
        """Expand a named preset into service selections."""
        combination = manifest.get_combination(combination_name)
        if combination is None:
            available = ", ".join(c.name for c in manifest.service_combinations) or "none"
            raise CompositionError(
                f"Unknown service combination '{combination_name}' for template "
                f"'{manifest.name}'. Available: {available}"
            )
        return [
            ServiceSelection(category=spec.category, provider=spec.provider, config=dict(spec.config))
            for spec in combination.services
        ]

    # -- Composition -------------------------------------------------------

    async def compose_template(
        self,
        template_name: str,
        selections: Sequence[ServiceSelection],
    ) -> ComposedTemplate:
        """Compose *template_name* with *selections*.

        Selections whose provider is ``none`` mean "no service" and are
        dropped first.  Validation runs before any file is collected, so a
        rejected selection produces no partial output.

        Raises:
            TemplateNotFoundError, InvalidConfigError, CompositionError,
            StructuredDocumentError, FileError
        """
        manifest = await self.load_template(template_name)
        active = [s for s in selections if s.provider != NONE_PROVIDER]

        manifests = await self.validator.validate(manifest, active)
        service_context = build_service_context(active, manifests)

        files: list[ComposedFile] = await self.collector.collect(
            self.template_dir(template_name), FileSource.base_template()
        )
        for selection in active:
            files.extend(
                await self.collector.collect(
                    self.registry.provider_dir(selection.category, selection.provider),
                    FileSource.service(selection.category, selection.provider),
                )
            )

        filtered = self.filter.filter(files, active, manifest.composition)
        resolved = self.resolver.resolve(filtered, manifest.composition)
        aggregated = await self.aggregator.aggregate(active, manifests)

        logger.info(
            "Composed '%s' with %d service(s): %d file(s)",
            manifest.name, len(active), len(resolved),
        )
        return ComposedTemplate(
            base_config=manifest,
            selections=list(active),
            files=resolved,
            merged_dependencies=aggregated.dependencies,
            environment_variables=aggregated.environment_variables,
            service_context=service_context,
        )
