"""Tests for dependency and environment aggregation (anvil.composer.aggregator)."""

from __future__ import annotations

import pytest

from anvil.composer import DependencyAggregator, ServiceRegistry, ServiceSelection, split_npm_dependency
from anvil.config import EngineConfig
from anvil.manifest import ServiceCategory, ServiceManifest


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


class TestSplitNpmDependency:
    @pytest.mark.parametrize(
        "spec,expected",
        [
            ("@scope/pkg@^5.0.0", ("@scope/pkg", "^5.0.0")),
            ("@scope/pkg", ("@scope/pkg", "^1.0.0")),
            ("lodash@4.17.21", ("lodash", "4.17.21")),
            ("lodash", ("lodash", "^1.0.0")),
            ("lodash@", ("lodash", "^1.0.0")),
        ],
    )
    def test_split(self, spec, expected):
        assert split_npm_dependency(spec) == expected

    def test_custom_default(self):
        assert split_npm_dependency("zod", "latest") == ("zod", "latest")


def _manifest(name: str, category: str, **fields) -> ServiceManifest:
    return ServiceManifest.model_validate(
        {"name": name, "description": name, "category": category, **fields}
    )


class TestAggregate:
    @pytest.mark.asyncio
    async def test_npm_and_environment_from_registry(self, shared_root, clerk, supabase):
        aggregator = DependencyAggregator(ServiceRegistry(shared_root))
        result = await aggregator.aggregate([clerk, supabase])

        assert result.dependencies == {
            "npm": [
                {"name": "@clerk/nextjs", "version": "^5.0.0"},
                {"name": "@supabase/supabase-js", "version": "^2.39.0"},
                {"name": "lodash", "version": "^1.0.0"},
            ]
        }
        assert [e.name for e in result.environment_variables] == [
            "NEXT_PUBLIC_CLERK_PUBLISHABLE_KEY",
            "CLERK_SECRET_KEY",
            "SUPABASE_URL",
        ]

    @pytest.mark.asyncio
    async def test_other_ecosystems(self):
        selections = [
            ServiceSelection(category=ServiceCategory.DATABASE, provider="sqlx"),
            ServiceSelection(category=ServiceCategory.AI, provider="openai"),
        ]
        manifests = {
            "database/sqlx": _manifest(
                "sqlx", "database",
                dependencies={"cargo": {"sqlx": "0.7", "tokio": "1.0"}, "go": ["github.com/lib/pq"]},
            ),
            "ai/openai": _manifest(
                "openai", "ai",
                dependencies={"cargo": {"tokio": "1.35"}, "python": ["openai>=1.0"], "go": ["github.com/lib/pq"]},
            ),
        }
        result = await DependencyAggregator().aggregate(selections, manifests)

        assert result.dependencies["cargo"] == {"sqlx": "0.7", "tokio": "1.35"}
        assert result.dependencies["go"] == ["github.com/lib/pq", "github.com/lib/pq"]
        assert result.dependencies["python"] == ["openai>=1.0"]
        assert "npm" not in result.dependencies

    @pytest.mark.asyncio
    async def test_provider_without_manifest_contributes_nothing(self):
        selection = ServiceSelection(category=ServiceCategory.EMAIL, provider="smtp")
        result = await DependencyAggregator().aggregate([selection], {"email/smtp": None})
        assert result.dependencies == {}
        assert result.environment_variables == []

    @pytest.mark.asyncio
    async def test_default_version_from_config(self):
        selection = ServiceSelection(category=ServiceCategory.PAYMENTS, provider="stripe")
        manifests = {"payments/stripe": _manifest("stripe", "payments", dependencies={"npm": ["stripe"]})}
        aggregator = DependencyAggregator(config=EngineConfig(default_dependency_version="*"))
        result = await aggregator.aggregate([selection], manifests)
        assert result.dependencies["npm"] == [{"name": "stripe", "version": "*"}]

    @pytest.mark.asyncio
    async def test_manifests_or_registry_required(self, clerk):
        with pytest.raises(ValueError):
            await DependencyAggregator().aggregate([clerk])
