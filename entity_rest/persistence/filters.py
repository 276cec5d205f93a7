"""
Per-field filter functions and the registry that maps field names onto them.
A filter function receives the query, the store-level field path and the value as text,
and returns the constrained query.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping

from entity_rest.persistence.store import JOIN_SEPARATOR, TableQuery

FilterFunc = Callable[[TableQuery, str, str], TableQuery]

ID_SUFFIXES: tuple[str, ...] = (f"{JOIN_SEPARATOR}id", "_id", "Id")

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def id_suffix(field: str) -> str | None:
    """Return the identifier suffix `field` ends with, if any."""

    for suffix in ID_SUFFIXES:
        if field.endswith(suffix) and len(field) > len(suffix):
            return suffix
    return None


def id_filter(query: TableQuery, field: str, value: str) -> TableQuery:
    """Equality on a related id: `ownerId`, `owner_id` and `owner__id` all become `owner__id`.

    Only an optionally signed run of ASCII digits parses as an id; any other value
    filters on 0 instead of failing the request.
    """

    suffix = id_suffix(field)
    if suffix is not None:
        field = field[: -len(suffix)]
    entity_id = int(value) if _INTEGER_RE.fullmatch(value) else 0
    return query.filter(f"{field}{JOIN_SEPARATOR}id", entity_id)


def boolean_filter(query: TableQuery, field: str, value: str) -> TableQuery:
    return query.filter(field, value == "true")


def exact_filter(query: TableQuery, field: str, value: str) -> TableQuery:
    return query.filter(field, value)


def starts_with_filter(query: TableQuery, field: str, value: str) -> TableQuery:
    return query.filter(f"{field}{JOIN_SEPARATOR}istartswith", value)


def contains_filter(query: TableQuery, field: str, value: str) -> TableQuery:
    return query.filter(f"{field}{JOIN_SEPARATOR}icontains", value)


class FilterRegistry(Mapping[str, FilterFunc]):
    """Field name -> filter function overrides.

    Populate it while wiring the application; request handling only reads it.
    """

    def __init__(self, filters: Mapping[str, FilterFunc | None] | None = None) -> None:
        self._filters: dict[str, FilterFunc] = {}
        for field, function in (filters or {}).items():
            self.register(field, function)

    def register(self, field: str, function: FilterFunc | None) -> None:
        """Register or replace the filter for `field`; `None` removes any override."""

        if function is None:
            self._filters.pop(field, None)
            return
        self._filters[field] = function

    def __getitem__(self, field: str) -> FilterFunc:
        return self._filters[field]

    def __iter__(self) -> Iterator[str]:
        return iter(self._filters)

    def __len__(self) -> int:
        return len(self._filters)
