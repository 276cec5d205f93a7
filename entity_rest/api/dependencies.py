# This file provides dependency factories for FastAPI routes and middleware.
# The store session and every repository are created once and shared through dependency injection.
# Tests override these factories to point the resources at a throwaway database.

from __future__ import annotations

from functools import lru_cache

from entity_rest.api.api_config import ApiConfig, get_api_config
from entity_rest.api.ddl import category_table, widget_table
from entity_rest.api.schemas.catalog_schemas import Category, Widget
from entity_rest.common.db import get_engine
from entity_rest.persistence import (
    EntityRepository,
    StoreSession,
    boolean_filter,
    contains_filter,
    exact_filter,
)


@lru_cache(maxsize=1)
def get_store_session() -> StoreSession:
    return StoreSession(get_engine())


def build_category_repository(session: StoreSession) -> EntityRepository[Category]:
    return EntityRepository(session, category_table, Category)


def build_widget_repository(session: StoreSession) -> EntityRepository[Widget]:
    return EntityRepository(
        session,
        widget_table,
        Widget,
        filters={
            "active": boolean_filter,
            "description": contains_filter,
            "category.name": exact_filter,
        },
    )


@lru_cache(maxsize=1)
def get_category_repository() -> EntityRepository[Category]:
    return build_category_repository(get_store_session())


@lru_cache(maxsize=1)
def get_widget_repository() -> EntityRepository[Widget]:
    return build_widget_repository(get_store_session())


def get_config() -> ApiConfig:
    return get_api_config()
