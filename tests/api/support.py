# This file provides shared helpers for API endpoint tests.
# Tests override the repository and config dependencies so resources run against a throwaway store.

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.testclient import TestClient

from entity_rest.api.api_config import ApiConfig
from entity_rest.api.app import app as default_app
from entity_rest.api.dependencies import (
    get_category_repository,
    get_config,
    get_store_session,
    get_widget_repository,
)


def build_test_config(*, total_count_header: str = "X-Total-Count") -> ApiConfig:
    """Create deterministic API config for tests."""

    return ApiConfig(
        api_name="Test Entity API",
        api_version_path="/api/v1",
        host="0.0.0.0",
        port=8000,
        environment="test",
        total_count_header=total_count_header,
        allowed_origins=[],
        app_version="0.1.0",
    )


@contextmanager
def api_test_client(
    *,
    app: FastAPI | None = None,
    config: ApiConfig | None = None,
    store: Any | None = None,
    widget_repo: Any | None = None,
    category_repo: Any | None = None,
) -> Iterator[TestClient]:
    """Yield a TestClient with scoped dependency overrides."""

    target = app or default_app
    resolved_config = config or build_test_config()

    target.dependency_overrides[get_config] = lambda: resolved_config
    if store is not None:
        target.dependency_overrides[get_store_session] = lambda: store
    if widget_repo is not None:
        target.dependency_overrides[get_widget_repository] = lambda: widget_repo
    if category_repo is not None:
        target.dependency_overrides[get_category_repository] = lambda: category_repo

    try:
        with TestClient(target) as client:
            yield client
    finally:
        target.dependency_overrides.clear()
