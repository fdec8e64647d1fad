"""Validation of a proposed service selection against a template.

Checks run in a fixed order and the first failure aborts composition with a
:class:`~anvil.errors.CompositionError` whose reason names the offending
services:

1. required services are selected
2. each selection's category is declared and its provider is a valid option
3. each selected provider's directory exists
4. no declared conflict is selected
5. every declared dependency is selected
6. language requirements and provider compatibility rules hold
7. at most one selection per exclusive category (auth provider, API pattern)
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Sequence

from anvil.errors import CompositionError
from anvil.manifest.models import (
    EXCLUSIVE_CATEGORIES,
    CompatibilityRule,
    CompatibilityRuleType,
    ServiceCategory,
    ServiceDefinition,
    ServiceManifest,
    TemplateManifest,
)

from .models import ServiceSelection
from .registry import ServiceRegistry

logger = logging.getLogger(__name__)

# Template-name tokens that identify a single implementation language.
_LANGUAGE_HINTS: list[tuple[frozenset[str], str]] = [
    (frozenset({"rust"}), "rust"),
    (frozenset({"go", "golang"}), "go"),
    (frozenset({"python", "py"}), "python"),
]
_DEFAULT_LANGUAGES = ["typescript", "javascript"]


def detect_languages(manifest: TemplateManifest) -> list[str]:
    """Infer the template's implementation language(s) from its name.

    ``rust-api`` -> ``["rust"]``; anything without a language token is
    assumed to be a TypeScript/JavaScript project.
    """
    tokens = {t for t in re.split(r"[^a-z0-9]+", manifest.name.lower()) if t}
    for hints, language in _LANGUAGE_HINTS:
        if tokens & hints:
            return [language]
    return list(_DEFAULT_LANGUAGES)


class SelectionValidator:
    """Checks selections against a template's service rules."""

    def __init__(self, registry: ServiceRegistry) -> None:
        self.registry = registry

    async def validate(
        self,
        manifest: TemplateManifest,
        selections: Sequence[ServiceSelection],
    ) -> dict[str, Optional[ServiceManifest]]:
        """Run every check in order.

        Returns:
            The provider manifests loaded during the compatibility pass, keyed
            by ``category/provider`` (``None`` for providers without one), so
            later stages need not read them again.

        Raises:
            CompositionError: On the first failed check.
        """
        self._check_required(manifest, selections)
        self._check_declared(manifest, selections)
        await self._check_directories(selections)
        self._check_conflicts(manifest, selections)
        self._check_dependencies(manifest, selections)
        manifests = await self._check_compatibility(manifest, selections)
        self._check_exclusive(selections)
        return manifests

    # -- 1. Required -------------------------------------------------------

    def _check_required(
        self, manifest: TemplateManifest, selections: Sequence[ServiceSelection]
    ) -> None:
        selected = {s.category for s in selections}
        for definition in manifest.services:
            if definition.required and definition.category not in selected:
                raise CompositionError(
                    f"Required service '{definition.name}' (category "
                    f"'{definition.category.key}') not provided"
                )

    # -- 2. Declared category & valid provider -----------------------------

    def _check_declared(
        self, manifest: TemplateManifest, selections: Sequence[ServiceSelection]
    ) -> None:
        for selection in selections:
            definition = manifest.get_service(selection.category)
            if definition is None:
                raise CompositionError(
                    f"Service category '{selection.category.key}' not supported by "
                    f"template '{manifest.name}'"
                )
            if selection.provider not in definition.options:
                raise CompositionError(
                    f"Invalid provider '{selection.provider}' for service "
                    f"'{selection.category.key}'. Valid options: "
                    f"{', '.join(definition.options)}"
                )

    # -- 3. Provider files exist -------------------------------------------

    async def _check_directories(self, selections: Sequence[ServiceSelection]) -> None:
        for selection in selections:
            path = self.registry.provider_dir(selection.category, selection.provider)
            if not await asyncio.to_thread(path.is_dir):
                raise CompositionError(
                    f"Service files not found for '{selection.label}' (expected {path})"
                )

    # -- 4. Conflicts ------------------------------------------------------

    def _check_conflicts(
        self, manifest: TemplateManifest, selections: Sequence[ServiceSelection]
    ) -> None:
        for selection in selections:
            definition = manifest.get_service(selection.category)
            if definition is None or not definition.conflicts:
                continue
            others = _other_category_keys(selection, selections)
            for conflict in definition.conflicts:
                if conflict.lower() in others:
                    raise CompositionError(
                        f"Service conflict: '{definition.name}' ({selection.label}) "
                        f"conflicts with selected category '{conflict}'"
                    )

    # -- 5. Dependencies ---------------------------------------------------

    def _check_dependencies(
        self, manifest: TemplateManifest, selections: Sequence[ServiceSelection]
    ) -> None:
        for selection in selections:
            definition = manifest.get_service(selection.category)
            if definition is None or not definition.dependencies:
                continue
            others = _other_category_keys(selection, selections)
            for dependency in definition.dependencies:
                if dependency.lower() not in others:
                    raise CompositionError(
                        f"Service '{definition.name}' ({selection.label}) requires "
                        f"dependency '{dependency}' which is not selected"
                    )

    # -- 6. Languages & compatibility rules --------------------------------

    async def _check_compatibility(
        self, manifest: TemplateManifest, selections: Sequence[ServiceSelection]
    ) -> dict[str, Optional[ServiceManifest]]:
        languages = detect_languages(manifest)
        manifests: dict[str, Optional[ServiceManifest]] = {}

        for selection in selections:
            definition = manifest.get_service(selection.category)
            service_manifest = manifests.get(selection.label)
            if selection.label not in manifests:
                service_manifest = await self.registry.load_manifest(
                    selection.category, selection.provider
                )
                manifests[selection.label] = service_manifest

            required_languages: list[str] = []
            if definition is not None and definition.language_requirements:
                required_languages.extend(definition.language_requirements)
            if service_manifest is not None and service_manifest.language_requirements:
                required_languages.extend(service_manifest.language_requirements)

            for language in required_languages:
                if language.lower() not in languages:
                    raise CompositionError(
                        f"Service '{selection.label}' requires {language} but project "
                        f"language is {', '.join(languages)}"
                    )

            rules = _collect_rules(definition, service_manifest)
            for rule in rules:
                self._apply_rule(rule, selection, selections, languages)

        return manifests

    def _apply_rule(
        self,
        rule: CompatibilityRule,
        selection: ServiceSelection,
        selections: Sequence[ServiceSelection],
        languages: list[str],
    ) -> None:
        present = _target_selected(rule.target_service, selection, selections)
        message = rule.message or f"rule {rule.rule_type.value} {rule.target_service}"

        if rule.rule_type is CompatibilityRuleType.REQUIRES and not present:
            raise CompositionError(
                f"Service '{selection.label}' requires '{rule.target_service}': {message}"
            )
        if rule.rule_type is CompatibilityRuleType.CONFLICTS_WITH and present:
            raise CompositionError(
                f"Service '{selection.label}' conflicts with '{rule.target_service}': {message}"
            )
        if rule.rule_type is CompatibilityRuleType.REQUIRES_LANGUAGE:
            language = (rule.condition or rule.target_service).strip().lower()
            if language not in languages:
                raise CompositionError(
                    f"Service '{selection.label}' requires {language} but project "
                    f"language is {', '.join(languages)}: {message}"
                )
        if rule.rule_type is CompatibilityRuleType.RECOMMENDS_AGAINST and present:
            logger.warning(
                "Service '%s' recommends against '%s': %s",
                selection.label, rule.target_service, message,
            )
        if rule.rule_type is CompatibilityRuleType.REQUIRES_PLATFORM:
            logger.warning(
                "Service '%s' requires platform '%s' (not verified): %s",
                selection.label, rule.condition or rule.target_service, message,
            )

    # -- 7. Exclusive categories -------------------------------------------

    def _check_exclusive(self, selections: Sequence[ServiceSelection]) -> None:
        for category, label in EXCLUSIVE_CATEGORIES.items():
            providers = [s.provider for s in selections if s.category == category]
            if len(providers) > 1:
                raise CompositionError(
                    f"Multiple {label}s selected: {', '.join(providers)}. "
                    f"Only one {label} is allowed."
                )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _other_category_keys(
    selection: ServiceSelection, selections: Sequence[ServiceSelection]
) -> set[str]:
    return {s.category.key for s in selections if s is not selection}


def _collect_rules(
    definition: Optional[ServiceDefinition], service_manifest: Optional[ServiceManifest]
) -> list[CompatibilityRule]:
    rules: list[CompatibilityRule] = []
    if definition is not None and definition.compatibility_rules:
        rules.extend(definition.compatibility_rules)
    if service_manifest is not None and service_manifest.compatibility_rules:
        rules.extend(service_manifest.compatibility_rules)
    return rules


def _target_selected(
    target: str, selection: ServiceSelection, selections: Sequence[ServiceSelection]
) -> bool:
    """True if another selection matches ``category`` or ``category/provider``."""
    category_key, _, provider = target.strip().lower().partition("/")
    for other in selections:
        if other is selection or other.category.key != category_key:
            continue
        if not provider or other.provider.lower() == provider:
            return True
    return False
