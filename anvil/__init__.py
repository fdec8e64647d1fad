"""Anvil -- composable project-template engine.

Combines a base template with shared service modules (auth, database,
payments, ...) into one resolved file tree, then renders it with Jinja2.

Quick usage::

    from anvil import CompositionEngine, Context, ServiceSelection, TemplateProcessor
    from anvil.manifest import ServiceCategory

    engine = CompositionEngine("templates", "templates/shared")
    composed = await engine.compose_template(
        "fullstack-saas",
        [ServiceSelection(category=ServiceCategory.AUTH, provider="clerk")],
    )
    context = Context.builder().variable("project_name", "my-app").build()
    processed = await TemplateProcessor().process_composed_template(composed, context)
"""

__version__ = "0.1.0"

from anvil.composer import CompositionEngine, ComposedTemplate, ServiceSelection  # noqa: E402
from anvil.config import EngineConfig  # noqa: E402
from anvil.errors import (  # noqa: E402
    CompositionError,
    EngineError,
    FeatureDependencyError,
    FileError,
    InvalidConfigError,
    ProcessingError,
    StructuredDocumentError,
    TemplateNotFoundError,
    VariableError,
)
from anvil.renderer import Context, ProcessedTemplate, TemplateProcessor  # noqa: E402

__all__ = [
    "ComposedTemplate",
    "CompositionEngine",
    "CompositionError",
    "Context",
    "EngineConfig",
    "EngineError",
    "FeatureDependencyError",
    "FileError",
    "InvalidConfigError",
    "ProcessedTemplate",
    "ProcessingError",
    "ServiceSelection",
    "StructuredDocumentError",
    "TemplateNotFoundError",
    "TemplateProcessor",
    "VariableError",
    "__version__",
]
