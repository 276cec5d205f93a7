"""
Database connection utilities.
The engine is built lazily from settings so importing the package never opens a connection.
Entity tables register on the shared `metadata` and can be created with `create_schema`.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine

from entity_rest.common.settings import get_settings

metadata = MetaData()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Cached engine bound to `DATABASE_URL`."""

    settings = get_settings()
    return create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        echo=settings.DATABASE_ECHO,
        future=True,
    )


def create_schema(engine: Engine | None = None, *, schema: MetaData | None = None) -> None:
    """Create every table registered on `schema` (defaults to the shared metadata)."""

    (schema or metadata).create_all(engine or get_engine())
