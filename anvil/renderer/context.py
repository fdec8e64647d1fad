"""User context and the unified render context.

A :class:`Context` holds what the caller supplies: variable values and the
names of enabled features.  :func:`build_shared_context` layers template
metadata, build metadata, aggregated dependencies and service exports on
top of it for composed templates.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from anvil.composer.models import ComposedTemplate
from anvil.config import EngineConfig
from anvil.errors import VariableError
from anvil.manifest.models import TemplateManifest

logger = logging.getLogger(__name__)


class Context:
    """Variables and enabled features supplied by the caller."""

    def __init__(
        self,
        variables: Optional[dict[str, Any]] = None,
        features: Optional[list[str]] = None,
    ) -> None:
        self.variables: dict[str, Any] = dict(variables or {})
        self.features: list[str] = []
        for feature in features or []:
            self.add_feature(feature)

    @staticmethod
    def builder() -> "ContextBuilder":
        return ContextBuilder()

    def add_variable(self, name: str, value: Any) -> None:
        self.variables[name] = value

    def get_variable(self, name: str) -> Any:
        return self.variables.get(name)

    def add_feature(self, feature: str) -> None:
        if feature not in self.features:
            self.features.append(feature)

    def has_feature(self, feature: str) -> bool:
        return feature in self.features

    def to_template_context(self) -> dict[str, Any]:
        """Variables, a ``features`` list and one ``feature_<name>`` flag each."""
        context = dict(self.variables)
        context["features"] = list(self.features)
        for feature in self.features:
            context[f"feature_{feature}"] = True
        return context

    def __repr__(self) -> str:
        return f"Context(variables={self.variables!r}, features={self.features!r})"


class ContextBuilder:
    """Fluent construction of a :class:`Context`::

        Context.builder().variable("project_name", "demo").feature("docker").build()
    """

    def __init__(self) -> None:
        self._context = Context()

    def variable(self, name: str, value: Any) -> "ContextBuilder":
        self._context.add_variable(name, value)
        return self

    def feature(self, feature: str) -> "ContextBuilder":
        self._context.add_feature(feature)
        return self

    def build(self) -> Context:
        return self._context


def validate_context(context: Context, manifest: TemplateManifest) -> None:
    """Check *context* against the variables *manifest* declares.

    Raises:
        VariableError: If a required variable is missing or a supplied value
            does not satisfy its declared type.
    """
    for variable in manifest.variables:
        if variable.required and variable.name not in context.variables:
            raise VariableError(variable.name, "Required variable not provided")
        if variable.name in context.variables:
            variable.validate_value(context.variables[variable.name])


def build_shared_context(
    user_context: Context,
    composed: ComposedTemplate,
    config: EngineConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Assemble the render context used for every file of *composed*.

    Keys, in the order they are layered (later keys win on collision)::

        <variables>, features, feature_<name>
        template            name / description / version / min_anvil_version
        build               timestamp / timestamp_iso / year / generator / generator_version
        merged_dependencies
        environment_variables
        service_<category>  selected provider
        <category>_<export> every service export
        <shared facts>      has_any_auth, has_any_database, service_count
        active_services     [{category, provider, has_config}]
        has_services, has_dependencies, has_environment_variables
    """
    config = config or EngineConfig()
    now = now or datetime.now(timezone.utc)
    manifest = composed.base_config
    services = composed.service_context.services

    context = user_context.to_template_context()
    context["template"] = {
        "name": manifest.name,
        "description": manifest.description,
        "version": manifest.version,
        "min_anvil_version": manifest.min_anvil_version,
    }
    context["build"] = {
        "timestamp": now.strftime("%Y-%m-%d %H:%M:%S UTC"),
        "timestamp_iso": now.isoformat(),
        "year": now.strftime("%Y"),
        "generator": config.generator_name,
        "generator_version": config.generator_version,
    }
    context["merged_dependencies"] = composed.merged_dependencies
    context["environment_variables"] = [
        env.model_dump() for env in composed.environment_variables
    ]

    for category, info in services.items():
        context[f"service_{category}"] = info.provider
        for export_key, export_value in info.exports.items():
            context[f"{category}_{export_key}"] = export_value

    context.update(composed.service_context.shared_config)

    context["active_services"] = [
        {"category": category, "provider": info.provider, "has_config": bool(info.config)}
        for category, info in services.items()
    ]
    context["has_services"] = bool(services)
    context["has_dependencies"] = bool(composed.merged_dependencies)
    context["has_environment_variables"] = bool(composed.environment_variables)

    logger.debug("Render context for '%s' has %d key(s)", manifest.name, len(context))
    return context
