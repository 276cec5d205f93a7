"""
Error taxonomy for the persistence layer.
The store driver raises `NoRowsError` and `StoreError`; the repository turns "no rows" into `NotFoundError`.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for every failure raised by the persistence layer."""


class StoreError(RepositoryError):
    """Any persistence failure other than a missing row (constraints, connectivity, bad fields)."""


class NoRowsError(StoreError):
    """Sentinel raised by the store driver when a single-row query matched nothing."""


class NotFoundError(RepositoryError):
    """No row matched the primary key of a read, update or delete."""

    def __init__(self, entity_name: str, entity_id: object) -> None:
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(f"{entity_name} {entity_id} not found")


class FilterParseError(ValueError):
    """The `_filters` request blob is not a JSON object of strings and numbers."""
