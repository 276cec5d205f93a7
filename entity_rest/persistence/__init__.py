"""Generic table repository: query options, filter dispatch and the SQLAlchemy store driver."""

from entity_rest.persistence.errors import (
    FilterParseError,
    NoRowsError,
    NotFoundError,
    RepositoryError,
    StoreError,
)
from entity_rest.persistence.filters import (
    FilterFunc,
    FilterRegistry,
    boolean_filter,
    contains_filter,
    exact_filter,
    id_filter,
    starts_with_filter,
)
from entity_rest.persistence.options import FilterValue, QueryOptions, SortDirection
from entity_rest.persistence.repository import EntityRepository
from entity_rest.persistence.store import StoreSession, TableQuery

__all__ = [
    "EntityRepository",
    "FilterFunc",
    "FilterParseError",
    "FilterRegistry",
    "FilterValue",
    "NoRowsError",
    "NotFoundError",
    "QueryOptions",
    "RepositoryError",
    "SortDirection",
    "StoreError",
    "StoreSession",
    "TableQuery",
    "boolean_filter",
    "contains_filter",
    "exact_filter",
    "id_filter",
    "starts_with_filter",
]
