"""Shared fixtures for service tests: an in-memory SQLite database rebuilt per test."""

from __future__ import annotations

import os

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-only-secret-key-consignment-platform-0001")
os.environ.setdefault("SKIP_USER_INIT", "1")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("EMAIL_ENABLED", "1")

import pytest

from core.schema import create_schema, drop_schema
from tests import factories


@pytest.fixture(autouse=True)
def database():
    drop_schema()
    create_schema()
    yield
    drop_schema()


@pytest.fixture
def shop() -> dict:
    """Active shop with one owner account and a 4-digit store code."""

    organization_id = factories.make_organization()
    owner = factories.make_user("owner@shop.test", "owner", organization_id)
    return {"organization_id": organization_id, "owner": owner}


@pytest.fixture
def consignor(shop) -> dict:
    return factories.make_consignor(shop["organization_id"])
