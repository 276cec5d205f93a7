"""
Protocol-independent query options: sort, pagination and filters.
Request parsers build these values; the repository translates them into store queries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from entity_rest.persistence.errors import FilterParseError


class SortDirection(str, Enum):
    NONE = ""
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: str | None) -> SortDirection:
        """Map a `_sortDir` value onto a direction; anything unknown means no override."""

        value = (raw or "").strip().lower()
        if value == cls.DESC.value:
            return cls.DESC
        if value == cls.ASC.value:
            return cls.ASC
        return cls.NONE


def format_number(value: int | float) -> str:
    """Format a number with full precision, no exponent and no redundant trailing zeros."""

    if isinstance(value, int):
        return str(value)
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass(frozen=True)
class FilterValue:
    """A raw filter value tagged as either a number or a string."""

    kind: Literal["number", "string"]
    raw: int | float | str

    @classmethod
    def text(cls, value: str) -> FilterValue:
        return cls(kind="string", raw=value)

    @classmethod
    def number(cls, value: int | float) -> FilterValue:
        return cls(kind="number", raw=value)

    @classmethod
    def from_json(cls, value: Any) -> FilterValue:
        """Tag a decoded JSON value; booleans become their JSON text."""

        if isinstance(value, bool):
            return cls.text("true" if value else "false")
        if isinstance(value, (int, float)):
            return cls.number(value)
        if isinstance(value, str):
            return cls.text(value)
        raise FilterParseError(f"unsupported filter value {value!r}")

    def as_text(self) -> str:
        if self.kind == "number":
            return format_number(self.raw)  # type: ignore[arg-type]
        return str(self.raw)


@dataclass(frozen=True)
class QueryOptions:
    """Requested sort, pagination and filters for a count or collection read.

    `sort` is a comma separated list of field paths, each optionally prefixed with
    `-` for descending order. `order=DESC` flips every field's direction. `offset`
    and `limit` are applied only when greater than zero.
    """

    sort: str = ""
    order: SortDirection = SortDirection.NONE
    offset: int = 0
    limit: int = 0
    filters: dict[str, FilterValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.limit < 0:
            raise ValueError("limit must be >= 0")
