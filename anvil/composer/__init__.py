"""Composition of base templates with shared service modules.

Quick usage::

    from anvil.composer import CompositionEngine, ServiceSelection
    from anvil.manifest import ServiceCategory

    engine = CompositionEngine("templates", "templates/shared")
    providers = await engine.discover_service_providers(ServiceCategory.AUTH)
    composed = await engine.compose_template(
        "fullstack-saas",
        [ServiceSelection(category=ServiceCategory.AUTH, provider=providers[1])],
    )
"""

from anvil.composer.aggregator import AggregatedServices, DependencyAggregator, split_npm_dependency
from anvil.composer.collector import FileCollector
from anvil.composer.conditions import (
    ConditionalFilter,
    ConditionEvaluator,
    build_condition_context,
    evaluate_condition,
)
from anvil.composer.context import ServiceContextBuilder, build_service_context
from anvil.composer.engine import CompositionEngine
from anvil.composer.models import (
    ComposedFile,
    ComposedTemplate,
    FileSource,
    ServiceContext,
    ServiceInfo,
    ServiceSelection,
    SourceKind,
)
from anvil.composer.registry import NONE_PROVIDER, ServiceRegistry
from anvil.composer.resolver import ConflictResolver, merge_documents
from anvil.composer.selection import SelectionValidator, detect_languages

__all__ = [
    "AggregatedServices",
    "ComposedFile",
    "ComposedTemplate",
    "CompositionEngine",
    "ConditionEvaluator",
    "ConditionalFilter",
    "ConflictResolver",
    "DependencyAggregator",
    "FileCollector",
    "FileSource",
    "NONE_PROVIDER",
    "SelectionValidator",
    "ServiceContext",
    "ServiceContextBuilder",
    "ServiceInfo",
    "ServiceRegistry",
    "ServiceSelection",
    "SourceKind",
    "build_condition_context",
    "build_service_context",
    "detect_languages",
    "evaluate_condition",
    "merge_documents",
    "split_npm_dependency",
]
