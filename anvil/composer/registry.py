"""Service-provider discovery over the shared-services directory tree.

Layout::

    <shared-root>/<category>/<provider>/anvil.yaml

A provider directory without a manifest is not offered.  A missing category
directory simply means only the ``none`` sentinel is available.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from anvil.config import EngineConfig
from anvil.errors import FileError
from anvil.manifest.loader import parse_service
from anvil.manifest.models import ServiceCategory, ServiceManifest

from .models import ServiceSelection

logger = logging.getLogger(__name__)

NONE_PROVIDER = "none"


class ServiceRegistry:
    """Read-only view of the providers available under *shared_root*."""

    def __init__(self, shared_root: str | Path, config: EngineConfig | None = None) -> None:
        self.shared_root = Path(shared_root)
        self.config = config or EngineConfig()

    # -- Paths -------------------------------------------------------------

    def category_dir(self, category: ServiceCategory) -> Path:
        return self.shared_root / category.key

    def provider_dir(self, category: ServiceCategory, provider: str) -> Path:
        return self.category_dir(category) / provider

    def manifest_path(self, category: ServiceCategory, provider: str) -> Path:
        return self.provider_dir(category, provider) / self.config.manifest_filename

    # -- Discovery ---------------------------------------------------------

    async def discover_providers(self, category: ServiceCategory) -> list[str]:
        """Return ``["none", *providers]`` for *category*, providers sorted.

        Raises:
            FileError: If the category directory exists but cannot be listed.
        """
        category_dir = self.category_dir(category)
        providers = await asyncio.to_thread(self._scan_category, category_dir)
        logger.debug("Discovered %d provider(s) for %s", len(providers), category.key)
        return [NONE_PROVIDER, *providers]

    async def discover_all(
        self, categories: Iterable[ServiceCategory] | None = None
    ) -> dict[ServiceCategory, list[str]]:
        """Discover providers for every category (all categories by default)."""
        result: dict[ServiceCategory, list[str]] = {}
        for category in categories if categories is not None else ServiceCategory:
            result[category] = await self.discover_providers(category)
        return result

    # -- Manifests ---------------------------------------------------------

    async def load_manifest(
        self, category: ServiceCategory, provider: str
    ) -> Optional[ServiceManifest]:
        """Parse the provider's manifest, or return ``None`` if it has none."""
        path = self.manifest_path(category, provider)
        if not await asyncio.to_thread(path.is_file):
            return None
        return await parse_service(path)

    async def load_manifests(
        self, selections: Iterable[ServiceSelection]
    ) -> dict[str, Optional[ServiceManifest]]:
        """Load manifests one at a time, keyed by ``category/provider``."""
        manifests: dict[str, Optional[ServiceManifest]] = {}
        for selection in selections:
            if selection.label not in manifests:
                manifests[selection.label] = await self.load_manifest(
                    selection.category, selection.provider
                )
        return manifests

    # -- Internal ----------------------------------------------------------

    def _scan_category(self, category_dir: Path) -> list[str]:
        if not category_dir.is_dir():
            return []
        try:
            entries = sorted(category_dir.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise FileError.from_os_error(category_dir, exc) from exc
        return [
            entry.name
            for entry in entries
            if entry.is_dir()
            and entry.name != NONE_PROVIDER
            and (entry / self.config.manifest_filename).is_file()
        ]
