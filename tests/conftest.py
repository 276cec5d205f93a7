"""
Shared test configuration.
Every test gets the required environment variables and, on request, a fresh in-memory SQLite store
with the catalog tables created.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

TEST_ENV = {
    "PROJECT_NAME": "test-project",
    "ENV": "test",
    "LOG_LEVEL": "INFO",
    "DATABASE_URL": "sqlite+pysqlite:///:memory:",
}

# Importing the app reads settings at module import time, before fixtures run.
for _key, _value in TEST_ENV.items():
    os.environ.setdefault(_key, _value)

from entity_rest.api.ddl import category_table, widget_table  # noqa: E402
from entity_rest.api.dependencies import (  # noqa: E402
    build_category_repository,
    build_widget_repository,
)
from entity_rest.api.schemas.catalog_schemas import Category, Widget  # noqa: E402
from entity_rest.common.db import create_schema  # noqa: E402
from entity_rest.persistence import EntityRepository, StoreSession  # noqa: E402


@pytest.fixture(autouse=True)
def base_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure required environment variables are present during tests."""

    for key, value in TEST_ENV.items():
        if os.getenv(key) is None:
            monkeypatch.setenv(key, value)


@pytest.fixture
def engine() -> Iterator[Engine]:
    test_engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    create_schema(test_engine)
    try:
        yield test_engine
    finally:
        test_engine.dispose()


@pytest.fixture
def store(engine: Engine) -> StoreSession:
    return StoreSession(engine)


@pytest.fixture
def category_repo(store: StoreSession) -> EntityRepository[Category]:
    return build_category_repository(store)


@pytest.fixture
def widget_repo(store: StoreSession) -> EntityRepository[Widget]:
    return build_widget_repository(store)


@pytest.fixture
def catalog(store: StoreSession) -> dict[str, int]:
    """Seed two categories and six widgets; returns category ids by name."""

    tools = store.insert(category_table, {"name": "Tools"})
    toys = store.insert(category_table, {"name": "Toys"})
    rows = [
        {"name": "hammer", "color": "Red", "price": 12.5, "active": True, "category_id": tools},
        {"name": "wrench", "color": "red-orange", "price": 8.0, "active": False, "category_id": tools},
        {"name": "yo-yo", "color": "Reddish", "price": 2.25, "active": True, "category_id": toys},
        {"name": "kite", "color": "Blue", "price": 15.0, "active": True, "category_id": toys},
        {"name": "marble", "color": "dark red", "price": 0.5, "active": True, "category_id": None},
        {
            "name": "drill",
            "color": "Green",
            "price": 99.99,
            "active": False,
            "description": "Cordless drill with blue case",
            "category_id": tools,
        },
    ]
    for row in rows:
        store.insert(widget_table, row)
    return {"Tools": tools, "Toys": toys}
