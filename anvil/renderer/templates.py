"""Jinja2 environment used to render template files.

Undefined names are errors when they are output or operated on, so a typo in
a template fails loudly instead of rendering an empty string.  Testing an
undefined name for truth (``{% if has_payments %}``) is allowed and is
false, so templates can branch on service flags that only exist when the
service is selected.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from jinja2.exceptions import TemplateError, TemplateSyntaxError

from anvil.errors import ProcessingError

from .filters import FILTERS


class _FalsyStrictUndefined(StrictUndefined):
    def __bool__(self) -> bool:
        return False


class TemplateRenderer:
    """Renders Jinja2 template sources with a context dictionary.

    Args:
        template_dir: Optional directory for file-based rendering through
            :meth:`render`, and for ``{% include %}`` lookups from strings.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else None
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)) if self.template_dir else None,
            autoescape=select_autoescape([], default_for_string=False),
            undefined=_FalsyStrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters.update(FILTERS)

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a template file relative to ``template_dir``."""
        if self.env.loader is None:
            raise ProcessingError("no template directory configured", template_path)
        try:
            return self.env.get_template(template_path).render(**context)
        except TemplateError as exc:
            raise ProcessingError(_describe(exc), template_path) from exc

    def render_string(
        self,
        source: str,
        context: dict[str, Any],
        path: str | Path | None = None,
    ) -> str:
        """Render an inline template source.

        Args:
            source: Template text.
            context: Variables available to the template.
            path: Output path the source belongs to, used in error messages.

        Raises:
            ProcessingError: On syntax errors or undefined names.
        """
        try:
            return self.env.from_string(source).render(**context)
        except TemplateError as exc:
            raise ProcessingError(_describe(exc), path) from exc


def _describe(exc: TemplateError) -> str:
    if isinstance(exc, TemplateSyntaxError) and exc.lineno:
        return f"{exc.message} (line {exc.lineno})"
    return str(exc.message or exc)
