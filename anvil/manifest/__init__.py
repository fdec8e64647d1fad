"""Template and service-provider manifests (``anvil.yaml``).

Quick usage::

    from anvil.manifest import parse_template

    manifest = await parse_template("templates/fullstack-saas/anvil.yaml")
    print(manifest.name, [s.category.key for s in manifest.services])
"""

from anvil.manifest.loader import (
    dump_manifest,
    load_service_text,
    load_template_text,
    parse_service,
    parse_template,
)
from anvil.manifest.models import (
    EXCLUSIVE_CATEGORIES,
    CompatibilityRule,
    CompatibilityRuleType,
    CompositionConfig,
    ConditionalFile,
    DependencyResolution,
    EnvironmentVariable,
    Feature,
    FileMergingStrategy,
    Hooks,
    ServiceCategory,
    ServiceCombination,
    ServiceDefinition,
    ServiceDependencies,
    ServiceManifest,
    ServicePrompt,
    ServicePromptType,
    ServiceSpec,
    TemplateManifest,
    TemplateVariable,
)

__all__ = [
    "EXCLUSIVE_CATEGORIES",
    "CompatibilityRule",
    "CompatibilityRuleType",
    "CompositionConfig",
    "ConditionalFile",
    "DependencyResolution",
    "EnvironmentVariable",
    "Feature",
    "FileMergingStrategy",
    "Hooks",
    "ServiceCategory",
    "ServiceCombination",
    "ServiceDefinition",
    "ServiceDependencies",
    "ServiceManifest",
    "ServicePrompt",
    "ServicePromptType",
    "ServiceSpec",
    "TemplateManifest",
    "TemplateVariable",
    "dump_manifest",
    "load_service_text",
    "load_template_text",
    "parse_service",
    "parse_template",
]
