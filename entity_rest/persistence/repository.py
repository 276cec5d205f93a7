"""
Generic CRUD repository for one entity table.
It translates `QueryOptions` into a `TableQuery`: sort fields with a global direction flip,
offset/limit pagination, and per-field filter dispatch (override, id equality, prefix match).
One instance serves every request for its entity; it keeps no per-request state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import Table

from entity_rest.persistence.errors import NoRowsError, NotFoundError
from entity_rest.persistence.filters import (
    FilterFunc,
    FilterRegistry,
    id_filter,
    id_suffix,
    starts_with_filter,
)
from entity_rest.persistence.options import QueryOptions, SortDirection
from entity_rest.persistence.store import JOIN_SEPARATOR, StoreSession, TableQuery, primary_key_column

EntityT = TypeVar("EntityT", bound=BaseModel)

QueryShaper = Callable[[TableQuery], TableQuery]

LOGGER = logging.getLogger("entity_rest.repository")


def store_path(field: str) -> str:
    """Rewrite a dotted field path (`owner.name`) into the store's join path (`owner__name`)."""

    return field.replace(".", JOIN_SEPARATOR)


def sort_fields(sort: str, order: SortDirection) -> list[str]:
    """Split a sort specification into store-level fields.

    With `order=DESC` each field's own direction is inverted, so `name,-age` becomes `-name,age`.
    """

    fields: list[str] = []
    for raw in sort.split(","):
        name = raw.strip()
        if not name:
            continue
        if order is SortDirection.DESC:
            name = name[1:] if name.startswith("-") else f"-{name}"
        fields.append(store_path(name))
    return fields


class EntityRepository(Generic[EntityT]):
    """CRUD engine for the pydantic entity `entity_type` stored in `table`.

    The session is borrowed: the repository never disposes the engine behind it.
    `shaper`, when given, adjusts the query used by `read` and `read_all`
    (for example to add a fixed constraint or a default ordering).
    """

    def __init__(
        self,
        session: StoreSession,
        table: Table,
        entity_type: type[EntityT],
        *,
        entity_name: str | None = None,
        filters: Mapping[str, FilterFunc | None] | None = None,
        shaper: QueryShaper | None = None,
    ) -> None:
        self.session = session
        self.table = table
        self.entity_type = entity_type
        self.entity_name = entity_name or table.name
        self.filters = FilterRegistry(filters)
        self._shaper = shaper
        self._pk = primary_key_column(table)

    @property
    def primary_key(self) -> str:
        return self._pk.name

    def add_filter(self, field: str, function: FilterFunc | None) -> None:
        """Override how `field` is filtered. Call this before serving requests."""

        self.filters.register(field, function)

    def new_instance(self) -> EntityT:
        return self.entity_type.model_construct()

    def new_collection(self) -> list[EntityT]:
        return []

    def _query(self) -> TableQuery:
        return self.session.query_table(self.table)

    def _shape(self, query: TableQuery) -> TableQuery:
        if self._shaper is None:
            return query
        return self._shaper(query)

    def _to_entity(self, row: Mapping[str, Any]) -> EntityT:
        return self.entity_type.model_validate(dict(row))

    def _row_values(self, entity: EntityT, columns: Sequence[str] | None = None) -> dict[str, Any]:
        values = entity.model_dump(include=set(self.table.c.keys()))
        if columns is not None:
            wanted = set(columns)
            values = {key: value for key, value in values.items() if key in wanted}
        return values

    def apply_options(self, query: TableQuery, options: QueryOptions) -> TableQuery:
        """Apply sort and pagination."""

        if options.sort:
            fields = sort_fields(options.sort, options.order)
            if fields:
                query = query.order_by(*fields)
        if options.limit > 0:
            query = query.limit(options.limit)
        if options.offset > 0:
            query = query.offset(options.offset)
        return query

    def apply_filters(self, query: TableQuery, options: QueryOptions) -> TableQuery:
        """Constrain `query` by every filter in `options`.

        A registered override for the field wins; otherwise fields ending in an id suffix
        filter by integer equality and everything else by case-insensitive prefix.
        """

        for field, value in options.filters.items():
            path = store_path(field)
            text = value.as_text()
            override = self.filters.get(field)
            if override is not None:
                query = override(query, path, text)
            elif id_suffix(path) is not None:
                query = id_filter(query, path, text)
            else:
                query = starts_with_filter(query, path, text)
        return query

    def count(self, options: QueryOptions | None = None) -> int:
        query = self._query()
        if options is not None:
            query = self.apply_filters(query, options)
        return query.count()

    def read(self, entity_id: int) -> EntityT:
        query = self._shape(self._query().filter(self._pk.name, entity_id))
        try:
            row = query.one()
        except NoRowsError as exc:
            raise NotFoundError(self.entity_name, entity_id) from exc
        return self._to_entity(row)

    def read_all(self, options: QueryOptions | None = None) -> list[EntityT]:
        query = self._query()
        if options is not None:
            query = self.apply_options(query, options)
            query = self.apply_filters(query, options)
        entities = self.new_collection()
        entities.extend(self._to_entity(row) for row in self._shape(query).all())
        return entities

    def save(self, entity: EntityT) -> int:
        """Insert `entity` and return the generated primary key."""

        values = self._row_values(entity)
        if values.get(self._pk.name) is None:
            values.pop(self._pk.name, None)
        entity_id = self.session.insert(self.table, values)
        LOGGER.debug("Inserted %s %s", self.entity_name, entity_id)
        return entity_id

    def update(self, entity: EntityT, columns: Sequence[str] | None = None) -> None:
        """Update the row matching the entity's primary key, optionally only `columns`."""

        entity_id = getattr(entity, self._pk.name, None)
        values = self._row_values(entity, columns)
        values.pop(self._pk.name, None)
        if self.session.update(self.table, entity_id, values) == 0:
            raise NotFoundError(self.entity_name, entity_id)

    def delete(self, entity_id: int) -> None:
        affected = self._query().filter(self._pk.name, entity_id).delete()
        if affected == 0:
            raise NotFoundError(self.entity_name, entity_id)
