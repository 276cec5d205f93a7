"""
Store driver over SQLAlchemy Core.
It exposes a small query-builder vocabulary (`field__related__operator` lookups, `-field` ordering)
so the repository can describe queries with plain field names instead of SQL.
Every call is one unit of work on the borrowed engine; failures surface as `StoreError`.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Column, Select, String, Table, cast, delete, func, insert, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import ColumnElement, FromClause

from entity_rest.persistence.errors import NoRowsError, StoreError

JOIN_SEPARATOR = "__"

LOOKUP_OPERATORS = frozenset(
    {
        "exact",
        "iexact",
        "startswith",
        "istartswith",
        "contains",
        "icontains",
        "gt",
        "gte",
        "lt",
        "lte",
        "in",
        "isnull",
    }
)

_Joins = dict[str, tuple[FromClause, ColumnElement[bool]]]


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(str(getattr(exc, "orig", None) or exc)) from exc


def primary_key_column(table: Table) -> Column[Any]:
    columns = list(table.primary_key.columns)
    if len(columns) != 1:
        raise StoreError(f"table {table.name!r} must have a single-column primary key")
    return columns[0]


def _as_text(column: ColumnElement[Any]) -> ColumnElement[Any]:
    if isinstance(column.type, String):
        return column
    return cast(column, String)


def _condition(column: ColumnElement[Any], operator: str, value: Any) -> ColumnElement[bool]:
    if operator == "exact":
        return column.is_(None) if value is None else column == value
    if operator == "iexact":
        return func.lower(_as_text(column)) == func.lower(str(value))
    if operator == "startswith":
        return _as_text(column).startswith(str(value), autoescape=True)
    if operator == "istartswith":
        return _as_text(column).istartswith(str(value), autoescape=True)
    if operator == "contains":
        return _as_text(column).contains(str(value), autoescape=True)
    if operator == "icontains":
        return _as_text(column).icontains(str(value), autoescape=True)
    if operator == "gt":
        return column > value
    if operator == "gte":
        return column >= value
    if operator == "lt":
        return column < value
    if operator == "lte":
        return column <= value
    if operator == "in":
        return column.in_(list(value))
    if operator == "isnull":
        return column.is_(None) if value else column.is_not(None)
    raise StoreError(f"unsupported lookup operator {operator!r}")


class TableQuery:
    """Immutable query over one table; every builder method returns a new query."""

    def __init__(
        self,
        session: StoreSession,
        table: Table,
        *,
        conditions: tuple[ColumnElement[bool], ...] = (),
        joins: _Joins | None = None,
        ordering: tuple[ColumnElement[Any], ...] = (),
        limit: int | None = None,
        offset: int | None = None,
    ) -> None:
        self._session = session
        self._table = table
        self._conditions = conditions
        self._joins: _Joins = dict(joins or {})
        self._ordering = ordering
        self._limit = limit
        self._offset = offset

    @property
    def table(self) -> Table:
        return self._table

    def _clone(self, **changes: Any) -> TableQuery:
        state: dict[str, Any] = {
            "conditions": self._conditions,
            "joins": self._joins,
            "ordering": self._ordering,
            "limit": self._limit,
            "offset": self._offset,
        }
        state.update(changes)
        return TableQuery(self._session, self._table, **state)

    def _resolve(self, path: str, joins: _Joins) -> ColumnElement[Any]:
        """Resolve `a__b__c` to a column, adding outer joins along foreign keys to `joins`."""

        parts = path.split(JOIN_SEPARATOR)
        if not all(parts):
            raise StoreError(f"invalid field path {path!r}")

        current: FromClause = self._table
        base: Table = self._table
        trail: list[str] = []
        for index, part in enumerate(parts[:-1]):
            key = f"{part}_id"
            if key not in base.c:
                raise StoreError(f"unknown field {path!r} on {self._table.name}")
            fk_column = current.c[key]
            if parts[index + 1 :] == ["id"]:
                return fk_column
            foreign_keys = list(base.c[key].foreign_keys)
            if not foreign_keys:
                raise StoreError(f"field {part!r} on {base.name} is not a foreign key")
            target_column = foreign_keys[0].column
            trail.append(part)
            alias_name = JOIN_SEPARATOR.join(trail)
            if alias_name not in joins:
                alias = target_column.table.alias(alias_name)
                joins[alias_name] = (alias, fk_column == alias.c[target_column.name])
            current = joins[alias_name][0]
            base = target_column.table  # type: ignore[assignment]

        name = parts[-1]
        if name not in base.c:
            raise StoreError(f"unknown field {path!r} on {self._table.name}")
        return current.c[name]

    def filter(self, lookup: str, value: Any) -> TableQuery:
        """Add a `field[__related...][__operator]` constraint (default operator: `exact`)."""

        parts = lookup.split(JOIN_SEPARATOR)
        operator = "exact"
        if len(parts) > 1 and parts[-1] in LOOKUP_OPERATORS:
            operator = parts.pop()
        joins = dict(self._joins)
        column = self._resolve(JOIN_SEPARATOR.join(parts), joins)
        condition = _condition(column, operator, value)
        return self._clone(conditions=(*self._conditions, condition), joins=joins)

    def order_by(self, *fields: str) -> TableQuery:
        """Replace the ordering; a leading `-` sorts that field descending."""

        joins = dict(self._joins)
        ordering: list[ColumnElement[Any]] = []
        for name in fields:
            descending = name.startswith("-")
            column = self._resolve(name.lstrip("-"), joins)
            ordering.append(column.desc() if descending else column.asc())
        return self._clone(ordering=tuple(ordering), joins=joins)

    def limit(self, count: int) -> TableQuery:
        return self._clone(limit=count)

    def offset(self, count: int) -> TableQuery:
        return self._clone(offset=count)

    def _from_clause(self) -> FromClause:
        from_clause: FromClause = self._table
        for alias, onclause in self._joins.values():
            from_clause = from_clause.outerjoin(alias, onclause)
        return from_clause

    def _rows_statement(self) -> Select[Any]:
        statement = select(*self._table.c).select_from(self._from_clause())
        if self._conditions:
            statement = statement.where(*self._conditions)
        if self._ordering:
            statement = statement.order_by(*self._ordering)
        if self._limit is not None:
            statement = statement.limit(self._limit)
        if self._offset is not None:
            statement = statement.offset(self._offset)
        return statement

    def count(self) -> int:
        """Count matching rows; ordering, limit and offset are ignored."""

        statement = select(func.count()).select_from(self._from_clause())
        if self._conditions:
            statement = statement.where(*self._conditions)
        return int(self._session.fetch_scalar(statement))

    def one(self) -> dict[str, Any]:
        row = self._session.fetch_one(self._rows_statement().limit(1))
        if row is None:
            raise NoRowsError(f"no row in {self._table.name} matched the query")
        return row

    def all(self) -> list[dict[str, Any]]:
        return self._session.fetch_all(self._rows_statement())

    def delete(self) -> int:
        """Delete matching rows and return how many were affected."""

        statement = delete(self._table)
        if self._joins:
            pk = primary_key_column(self._table)
            matching = select(pk).select_from(self._from_clause()).where(*self._conditions).correlate(None)
            statement = statement.where(pk.in_(matching))
        elif self._conditions:
            statement = statement.where(*self._conditions)
        return self._session.execute_write(statement)


class StoreSession:
    """Borrowed handle on a SQLAlchemy engine; the caller owns the engine lifecycle."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def can_connect(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def query_table(self, table: Table) -> TableQuery:
        return TableQuery(self, table)

    def fetch_all(self, statement: Any) -> list[dict[str, Any]]:
        with _store_errors(), self._engine.connect() as connection:
            rows = connection.execute(statement).mappings().all()
        return [dict(row) for row in rows]

    def fetch_one(self, statement: Any) -> dict[str, Any] | None:
        with _store_errors(), self._engine.connect() as connection:
            row = connection.execute(statement).mappings().first()
        return dict(row) if row is not None else None

    def fetch_scalar(self, statement: Any) -> Any:
        with _store_errors(), self._engine.connect() as connection:
            return connection.execute(statement).scalar_one()

    def execute_write(self, statement: Any) -> int:
        with _store_errors(), self._engine.begin() as connection:
            return int(connection.execute(statement).rowcount)

    def insert(self, table: Table, values: Mapping[str, Any]) -> int:
        """Insert one row and return its generated primary key."""

        with _store_errors(), self._engine.begin() as connection:
            result = connection.execute(insert(table).values(**dict(values)))
            key = result.inserted_primary_key
        if not key or key[0] is None:
            raise StoreError(f"insert into {table.name} did not return a primary key")
        return int(key[0])

    def update(self, table: Table, key: Any, values: Mapping[str, Any]) -> int:
        """Update the row with primary key `key`; returns the number of matched rows."""

        pk = primary_key_column(table)
        if not values:
            return self.query_table(table).filter(pk.name, key).count()
        statement = update(table).where(pk == key).values(**dict(values))
        return self.execute_write(statement)
