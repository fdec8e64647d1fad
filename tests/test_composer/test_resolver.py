"""Tests for conflict resolution (anvil.composer.resolver).

Covers:
- Single-occupant passthrough and group ordering
- override / append / skip / merge strategies
- Structural JSON merge of dependency collections
- Structural merge failures
"""

from __future__ import annotations

import itertools
import json

import pytest

from anvil.composer import ComposedFile, ConflictResolver, FileSource, SourceKind, merge_documents
from anvil.errors import CompositionError, StructuredDocumentError
from anvil.manifest import CompositionConfig, FileMergingStrategy, ServiceCategory


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


BASE = FileSource.base_template()
CLERK = FileSource.service(ServiceCategory.AUTH, "clerk")
SUPABASE = FileSource.service(ServiceCategory.DATABASE, "supabase")
STRIPE = FileSource.service(ServiceCategory.PAYMENTS, "stripe")


def _file(path: str, content: str, source: FileSource = BASE, rendering: bool = False) -> ComposedFile:
    return ComposedFile(path=path, content=content, source=source, requires_rendering=rendering)


def _config(strategy: str) -> CompositionConfig:
    return CompositionConfig(file_merging_strategy=strategy)


@pytest.fixture
def resolver() -> ConflictResolver:
    return ConflictResolver()


class TestGrouping:
    def test_single_files_pass_through_unchanged(self, resolver):
        files = [_file("a.txt", "a", rendering=True), _file("b.txt", "b", CLERK)]
        assert resolver.resolve(files) == files

    def test_groups_in_first_occurrence_order(self, resolver):
        files = [
            _file("b.txt", "base b"),
            _file("a.txt", "base a"),
            _file("b.txt", "clerk b", CLERK),
        ]
        resolved = resolver.resolve(files, _config("skip"))
        assert [f.path for f in resolved] == ["b.txt", "a.txt"]


class TestStrategies:
    def test_override_prefers_service_over_base(self, resolver):
        files = [_file("x.ts", "clerk", CLERK), _file("x.ts", "base")]
        (result,) = resolver.resolve(files, _config("override"))
        assert result.content == "clerk"

    def test_override_last_service_wins(self, resolver):
        files = [_file("x.ts", "base"), _file("x.ts", "clerk", CLERK), _file("x.ts", "supa", SUPABASE)]
        (result,) = resolver.resolve(files, _config("override"))
        assert result.content == "supa"

    def test_override_is_idempotent(self, resolver):
        files = [_file("x.ts", "base"), _file("x.ts", "clerk", CLERK)]
        (once,) = resolver.resolve(files, _config("override"))
        (twice,) = resolver.resolve([once], _config("override"))
        assert twice == once

    def test_append_concatenates_with_newlines(self, resolver):
        files = [_file(".env.example", "A=1", rendering=True), _file(".env.example", "B=2", CLERK)]
        (result,) = resolver.resolve(files, _config("append"))
        assert result.content == "A=1\nB=2\n"
        assert result.source.kind is SourceKind.MERGED
        assert result.merge_strategy is FileMergingStrategy.APPEND
        assert result.requires_rendering is False

    def test_skip_keeps_first(self, resolver):
        files = [_file("x.ts", "clerk", CLERK), _file("x.ts", "base")]
        (result,) = resolver.resolve(files, _config("skip"))
        assert result.content == "clerk"

    def test_merge_non_structured_falls_back_to_append(self, resolver):
        files = [_file("README.md", "# Base"), _file("README.md", "## Auth", CLERK)]
        (result,) = resolver.resolve(files)
        assert result.content == "# Base\n## Auth\n"
        assert result.merge_strategy is FileMergingStrategy.APPEND


class TestStructuralMerge:
    def test_dependency_union(self, resolver):
        files = [
            _file("package.json", json.dumps({"name": "app", "dependencies": {"react": "^18"}})),
            _file("package.json", json.dumps({"dependencies": {"@clerk/nextjs": "^5"}}), CLERK),
            _file("package.json", json.dumps({"devDependencies": {"vitest": "^1"}}), SUPABASE),
        ]
        (result,) = resolver.resolve(files)
        merged = json.loads(result.content)
        assert merged == {
            "name": "app",
            "dependencies": {"react": "^18", "@clerk/nextjs": "^5"},
            "devDependencies": {"vitest": "^1"},
        }
        assert result.source.kind is SourceKind.MERGED
        assert result.merge_strategy is FileMergingStrategy.MERGE
        assert not result.content.endswith("\n")

    def test_later_version_wins_within_dependencies(self, resolver):
        files = [
            _file("package.json", json.dumps({"dependencies": {"zod": "^3.0.0"}})),
            _file("package.json", json.dumps({"dependencies": {"zod": "^3.22.0"}}), CLERK),
        ]
        (result,) = resolver.resolve(files)
        assert json.loads(result.content)["dependencies"] == {"zod": "^3.22.0"}

    def test_other_top_level_keys_overwrite(self, resolver):
        files = [
            _file("tsconfig.json", json.dumps({"compilerOptions": {"strict": True}})),
            _file("tsconfig.json", json.dumps({"compilerOptions": {"jsx": "react"}}), CLERK),
        ]
        (result,) = resolver.resolve(files)
        assert json.loads(result.content) == {"compilerOptions": {"jsx": "react"}}

    def test_dependency_key_set_independent_of_order(self):
        documents = [
            {"dependencies": {"a": "1"}},
            {"dependencies": {"b": "1"}, "devDependencies": {"x": "1"}},
            {"dependencies": {"c": "1"}, "devDependencies": {"y": "1"}},
        ]
        key_sets = set()
        for order in itertools.permutations(documents):
            merged: dict = {}
            for document in order:
                merge_documents(merged, json.loads(json.dumps(document)))
            key_sets.add((frozenset(merged["dependencies"]), frozenset(merged["devDependencies"])))
        assert len(key_sets) == 1

    def test_invalid_json_names_path_and_sources(self, resolver):
        files = [_file("package.json", "{}"), _file("package.json", "{not json", CLERK)]
        with pytest.raises(StructuredDocumentError) as exc_info:
            resolver.resolve(files)
        error = exc_info.value
        assert str(error.path) == "package.json"
        assert error.sources == ["base_template", "auth/clerk"]
        assert isinstance(error, CompositionError)

    def test_non_object_top_level_rejected(self, resolver):
        files = [_file("list.json", "[1]"), _file("list.json", "[2]", STRIPE)]
        with pytest.raises(StructuredDocumentError, match="not an object"):
            resolver.resolve(files)

    def test_unicode_preserved(self, resolver):
        files = [_file("i18n.json", '{"greeting": "héllo"}'), _file("i18n.json", "{}", CLERK)]
        (result,) = resolver.resolve(files)
        assert "héllo" in result.content
