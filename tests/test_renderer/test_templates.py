"""Tests for the Jinja2 wrapper (anvil.renderer.templates)."""

from __future__ import annotations

from pathlib import Path

import pytest

from anvil.errors import ProcessingError
from anvil.renderer import TemplateRenderer


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestRenderString:
    def test_variables_and_filters(self, renderer):
        source = "{{ name | snake_case }} {{ name | pascal_case }} {{ name | kebab_case }}"
        assert renderer.render_string(source, {"name": "MyApp"}) == "my_app MyApp my-app"

    def test_trailing_newline_kept(self, renderer):
        assert renderer.render_string("x\n", {}) == "x\n"

    def test_block_whitespace_trimmed(self, renderer):
        source = "a\n{% if flag %}\nb\n{% endif %}\nc\n"
        assert renderer.render_string(source, {"flag": True}) == "a\nb\nc\n"

    def test_no_html_escaping(self, renderer):
        assert renderer.render_string("{{ v }}", {"v": "<a & b>"}) == "<a & b>"

    def test_undefined_output_fails(self, renderer):
        with pytest.raises(ProcessingError, match="missing") as exc_info:
            renderer.render_string("{{ missing }}", {}, "src/app.ts")
        assert exc_info.value.path == Path("src/app.ts")

    def test_undefined_is_falsy_in_conditions(self, renderer):
        source = "{% if has_payments %}pay{% else %}free{% endif %}"
        assert renderer.render_string(source, {}) == "free"

    def test_syntax_error_reports_line(self, renderer):
        with pytest.raises(ProcessingError, match="line 2"):
            renderer.render_string("ok\n{% if %}\n", {})

    def test_filter_type_error_is_processing_error(self, renderer):
        with pytest.raises(ProcessingError):
            renderer.render_string("{{ 5 | snake_case }}", {})


class TestRenderFile:
    def test_render_from_directory(self, tmp_path):
        (tmp_path / "partials").mkdir()
        (tmp_path / "partials" / "header.j2").write_text("// {{ title }}\n", encoding="utf-8")
        (tmp_path / "main.j2").write_text('{% include "partials/header.j2" %}body\n', encoding="utf-8")

        renderer = TemplateRenderer(tmp_path)
        assert renderer.render("main.j2", {"title": "Demo"}) == "// Demo\nbody\n"

    def test_render_without_directory(self, renderer):
        with pytest.raises(ProcessingError, match="no template directory"):
            renderer.render("main.j2", {})

    def test_missing_template(self, tmp_path):
        with pytest.raises(ProcessingError):
            TemplateRenderer(tmp_path).render("nope.j2", {})
