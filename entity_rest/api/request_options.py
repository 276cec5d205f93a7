# This file turns list-request query parameters into `QueryOptions`.
# Every resource shares the same rules for `_page`/`_perPage`, `_sortField`/`_sortDir`,
# the `_filters` JSON blob, and implicit field=value filters.

from __future__ import annotations

import json
import logging
from urllib.parse import unquote_plus

from starlette.datastructures import QueryParams

from entity_rest.persistence import FilterParseError, FilterValue, QueryOptions, SortDirection

RESERVED_PREFIX = "_"
PAGE_PARAM = "_page"
PER_PAGE_PARAM = "_perPage"
SORT_FIELD_PARAM = "_sortField"
SORT_DIR_PARAM = "_sortDir"
FILTERS_PARAM = "_filters"

LOGGER = logging.getLogger("entity_rest.api")


def _int_param(params: QueryParams, name: str, default: int) -> int:
    raw = params.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def decode_filter_blob(raw: str) -> dict[str, FilterValue]:
    """Decode a URL-escaped JSON object of field -> string/number filters."""

    try:
        decoded = json.loads(unquote_plus(raw))
    except (json.JSONDecodeError, RecursionError) as exc:
        raise FilterParseError(str(exc)) from exc
    if not isinstance(decoded, dict):
        raise FilterParseError("filters must be a JSON object")
    return {str(field): FilterValue.from_json(value) for field, value in decoded.items()}


def parse_filters(params: QueryParams) -> dict[str, FilterValue]:
    """Merge `_filters` with every non-reserved query parameter.

    Query parameters are applied after the JSON blob, so they win on a key collision.
    A multi-valued parameter contributes its first value.
    """

    filters: dict[str, FilterValue] = {}
    raw_blob = params.get(FILTERS_PARAM, "")
    if raw_blob:
        try:
            filters.update(decode_filter_blob(raw_blob))
        except FilterParseError as exc:
            LOGGER.warning("Invalid filter specification: %s - %s", raw_blob, exc)

    for key in params.keys():
        if key.startswith(RESERVED_PREFIX):
            continue
        filters[key] = FilterValue.text(params.getlist(key)[0])
    return filters


def parse_options(params: QueryParams) -> QueryOptions:
    page = _int_param(params, PAGE_PARAM, 1)
    per_page = _int_param(params, PER_PAGE_PARAM, 0)

    return QueryOptions(
        sort=params.get(SORT_FIELD_PARAM, ""),
        order=SortDirection.parse(params.get(SORT_DIR_PARAM)),
        offset=max((page - 1) * per_page, 0),
        limit=max(per_page, 0),
        filters=parse_filters(params),
    )
