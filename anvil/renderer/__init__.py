"""Jinja2 rendering of composed and plain templates.

Quick usage::

    from anvil.renderer import Context, TemplateProcessor

    context = Context.builder().variable("project_name", "demo").build()
    processed = await TemplateProcessor().process_template("templates/basic", context)
    for file in processed.files:
        print(file.output_path, file.executable)
"""

from anvil.renderer.context import (
    Context,
    ContextBuilder,
    build_shared_context,
    validate_context,
)
from anvil.renderer.filters import FILTERS
from anvil.renderer.pipeline import ProcessedFile, ProcessedTemplate, TemplateProcessor
from anvil.renderer.templates import TemplateRenderer

__all__ = [
    "FILTERS",
    "Context",
    "ContextBuilder",
    "ProcessedFile",
    "ProcessedTemplate",
    "TemplateProcessor",
    "TemplateRenderer",
    "build_shared_context",
    "validate_context",
]
