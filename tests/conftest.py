"""Shared pytest fixtures for the Anvil test suite.

Provides reusable fixtures for:
- A temporary templates root with one base template and a shared services tree
- A ready-to-use CompositionEngine over that tree
- Common service selections
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from anvil.composer import CompositionEngine, ServiceSelection
from anvil.manifest import ServiceCategory


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative_path: content}`` under *root*, creating directories."""
    for relative, content in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


def _yaml(text: str) -> str:
    return textwrap.dedent(text).lstrip()


TEMPLATE_MANIFEST = _yaml("""
    name: fullstack-saas
    description: Full-stack SaaS starter
    version: 1.2.0
    min_anvil_version: 0.1.0
    variables:
      - name: project_name
        type:
          type: string
          min_length: 2
          max_length: 40
        prompt: Project name?
        required: true
      - name: port
        type: {type: number, min: 1024, max: 65535}
        prompt: Dev server port?
        default: 3000
      - name: license
        type: {type: choice, options: [MIT, Apache-2.0]}
        prompt: License?
    features:
      - name: docker
        description: Add a Dockerfile
    services:
      - name: auth
        category: auth
        prompt: Authentication provider?
        options: [clerk, auth0]
        required: true
      - name: database
        category: database
        prompt: Database?
        options: [supabase, neon]
      - name: payments
        category: payments
        prompt: Payments?
        options: [stripe]
        dependencies: [database]
    composition:
      file_merging_strategy: merge
      conditional_files:
        - path: src/billing.ts
          condition: has_payments
    service_combinations:
      - name: starter
        description: Clerk and Supabase
        recommended: true
        services:
          - category: auth
            provider: clerk
          - category: database
            provider: supabase
            config:
              region: eu-west-1
""")

CLERK_MANIFEST = _yaml("""
    name: clerk
    description: Clerk authentication
    version: 5.0.0
    category: auth
    dependencies:
      npm:
        - "@clerk/nextjs@^5.0.0"
    environment_variables:
      - name: NEXT_PUBLIC_CLERK_PUBLISHABLE_KEY
        description: Clerk publishable key
        required: true
      - name: CLERK_SECRET_KEY
        description: Clerk secret key
        required: true
""")

AUTH0_MANIFEST = _yaml("""
    name: auth0
    description: Auth0 authentication
    category: auth
    dependencies:
      npm:
        - "@auth0/nextjs-auth0"
    environment_variables:
      - name: AUTH0_SECRET
        description: Session secret
        required: true
""")

SUPABASE_MANIFEST = _yaml("""
    name: supabase
    description: Supabase Postgres
    category: database
    dependencies:
      npm:
        - "@supabase/supabase-js@^2.39.0"
        - lodash
    environment_variables:
      - name: SUPABASE_URL
        description: Project URL
        required: true
""")

STRIPE_MANIFEST = _yaml("""
    name: stripe
    description: Stripe payments
    category: payments
    dependencies:
      npm:
        - stripe@^14.0.0
""")


# ---------------------------------------------------------------------------
# Filesystem fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tree_writer():
    """The :func:`write_tree` helper, for tests that add files to a fixture tree."""
    return write_tree


@pytest.fixture
def templates_root(tmp_path: Path) -> Path:
    """A templates directory with ``fullstack-saas`` and a shared services tree."""
    root = tmp_path / "templates"
    write_tree(root, {
        "fullstack-saas/anvil.yaml": TEMPLATE_MANIFEST,
        "fullstack-saas/package.json": json.dumps(
            {"name": "app", "dependencies": {"react": "^18.2.0"}}, indent=2
        ),
        "fullstack-saas/README.md.j2": "# {{ project_name }}\n",
        "fullstack-saas/scripts/setup.sh": "#!/bin/sh\necho setup\n",
        "fullstack-saas/src/index.ts": "export {};\n",
        "fullstack-saas/src/billing.ts": "// billing\n",

        "shared/auth/clerk/anvil.yaml": CLERK_MANIFEST,
        "shared/auth/clerk/package.json": json.dumps(
            {"dependencies": {"@clerk/nextjs": "^5.0.0"}}, indent=2
        ),
        "shared/auth/clerk/src/auth.ts.j2": "export const provider = '{{ service_auth }}';\n",
        "shared/auth/auth0/anvil.yaml": AUTH0_MANIFEST,
        "shared/auth/auth0/src/auth.ts": "export const provider = 'auth0';\n",
        "shared/database/supabase/anvil.yaml": SUPABASE_MANIFEST,
        "shared/database/supabase/package.json": json.dumps(
            {"dependencies": {"@supabase/supabase-js": "^2.39.0"}}, indent=2
        ),
        "shared/database/supabase/src/db.ts": "export const db = 'supabase';\n",
        "shared/payments/stripe/anvil.yaml": STRIPE_MANIFEST,
        "shared/payments/stripe/src/stripe.ts": "export const stripe = true;\n",
    })
    return root


@pytest.fixture
def shared_root(templates_root: Path) -> Path:
    return templates_root / "shared"


@pytest.fixture
def engine(templates_root: Path, shared_root: Path) -> CompositionEngine:
    return CompositionEngine(templates_root, shared_root)


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------

@pytest.fixture
def clerk() -> ServiceSelection:
    return ServiceSelection(category=ServiceCategory.AUTH, provider="clerk")


@pytest.fixture
def auth0() -> ServiceSelection:
    return ServiceSelection(category=ServiceCategory.AUTH, provider="auth0")


@pytest.fixture
def supabase() -> ServiceSelection:
    return ServiceSelection(
        category=ServiceCategory.DATABASE, provider="supabase", config={"region": "eu-west-1"}
    )


@pytest.fixture
def stripe() -> ServiceSelection:
    return ServiceSelection(category=ServiceCategory.PAYMENTS, provider="stripe")
