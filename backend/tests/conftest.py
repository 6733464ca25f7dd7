"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-only-secret-key-consignment-platform-0001")
os.environ.setdefault("SKIP_USER_INIT", "1")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("EMAIL_ENABLED", "1")
os.environ.pop("ADMIN_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from core.schema import create_schema, drop_schema
from tests import factories


@pytest.fixture(autouse=True)
def database():
    drop_schema()
    create_schema()
    yield
    drop_schema()


@pytest.fixture
def client() -> TestClient:
    """Create a TestClient instance for the FastAPI app."""
    from backend.main import create_app

    return TestClient(create_app())


def bearer(user: dict, *, consignor_id: int | None = None) -> dict[str, str]:
    from backend.dependencies.security import token_for_user

    return {"Authorization": f"Bearer {token_for_user(user, consignor_id=consignor_id)}"}


@pytest.fixture
def shop() -> dict:
    """Active shop with owner, clerk and platform admin accounts."""

    organization_id = factories.make_organization()
    return {
        "organization_id": organization_id,
        "owner": factories.make_user("owner@shop.test", "owner", organization_id),
        "clerk": factories.make_user("clerk@shop.test", "clerk", organization_id),
        "admin": factories.make_user("admin@platform.test", "admin", None),
    }


@pytest.fixture
def owner_headers(shop) -> dict[str, str]:
    return bearer(shop["owner"])


@pytest.fixture
def clerk_headers(shop) -> dict[str, str]:
    return bearer(shop["clerk"])


@pytest.fixture
def admin_headers(shop) -> dict[str, str]:
    return bearer(shop["admin"])


@pytest.fixture
def consignor(shop) -> dict:
    return factories.make_consignor(shop["organization_id"])


@pytest.fixture
def headers_for():
    """Build Authorization headers for any seeded account."""

    return bearer
