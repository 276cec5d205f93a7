# This file tests the widget and category REST resources end to end against an in-memory store.
# It covers the verb mapping, the total-count header, list parameters, and error responses.

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from entity_rest.api.ddl import widget_table
from entity_rest.api.schemas.catalog_schemas import Category, Widget
from entity_rest.persistence import EntityRepository, StoreError, StoreSession
from tests.api.support import api_test_client, build_test_config

WIDGETS = "/api/v1/widgets"
CATEGORIES = "/api/v1/categories"


@pytest.fixture
def client(
    store: StoreSession,
    widget_repo: EntityRepository[Widget],
    category_repo: EntityRepository[Category],
) -> Iterator[TestClient]:
    with api_test_client(store=store, widget_repo=widget_repo, category_repo=category_repo) as test_client:
        yield test_client


def _names(response_payload: list[dict[str, object]]) -> list[str]:
    return [str(item["name"]) for item in response_payload]


def _widget_id(store: StoreSession, name: str) -> int:
    return int(store.query_table(widget_table).filter("name", name).one()["id"])


def test_list_page_sorted_descending_with_total_count(client: TestClient, store: StoreSession) -> None:
    for number in range(1, 26):
        store.insert(widget_table, {"name": f"widget-{number:02d}"})

    response = client.get(WIDGETS, params={"_page": 2, "_perPage": 10, "_sortField": "name", "_sortDir": "desc"})

    assert response.status_code == 200
    assert _names(response.json()) == [f"widget-{number:02d}" for number in range(15, 5, -1)]
    assert response.headers["X-Total-Count"] == "25"


def test_list_filters_by_case_insensitive_prefix(client: TestClient, catalog: dict[str, int]) -> None:
    response = client.get(WIDGETS, params={"color": "Red", "_sortField": "name"})

    assert response.status_code == 200
    assert _names(response.json()) == ["hammer", "wrench", "yo-yo"]
    assert response.headers["X-Total-Count"] == "3"


def test_list_without_parameters_returns_everything(client: TestClient, catalog: dict[str, int]) -> None:
    response = client.get(WIDGETS)

    assert response.status_code == 200
    assert len(response.json()) == 6
    assert response.headers["X-Total-Count"] == "6"


def test_list_filters_from_json_blob(client: TestClient, catalog: dict[str, int]) -> None:
    blob = json.dumps({"categoryId": catalog["Toys"], "name": "k"})

    response = client.get(WIDGETS, params={"_filters": blob})

    assert response.status_code == 200
    assert _names(response.json()) == ["kite"]
    assert response.headers["X-Total-Count"] == "1"


def test_list_uses_registered_filters(client: TestClient, catalog: dict[str, int]) -> None:
    inactive = client.get(WIDGETS, params={"active": "false", "_sortField": "name"})
    tools = client.get(WIDGETS, params={"category.name": "Tools", "_sortField": "-price"})

    assert _names(inactive.json()) == ["drill", "wrench"]
    assert _names(tools.json()) == ["drill", "hammer", "wrench"]
    assert tools.headers["X-Total-Count"] == "3"


def test_total_count_header_name_is_configurable(
    store: StoreSession, widget_repo: EntityRepository[Widget], catalog: dict[str, int]
) -> None:
    config = build_test_config(total_count_header="X-Count")
    with api_test_client(config=config, store=store, widget_repo=widget_repo) as client:
        response = client.get(WIDGETS, params={"_perPage": 2})

    assert len(response.json()) == 2
    assert response.headers["X-Count"] == "6"
    assert "X-Total-Count" not in response.headers


def test_count_failure_sets_zero_total(
    client: TestClient,
    widget_repo: EntityRepository[Widget],
    catalog: dict[str, int],
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def failing_count(options: object = None) -> int:
        raise StoreError("count unavailable")

    monkeypatch.setattr(widget_repo, "count", failing_count)

    with caplog.at_level(logging.WARNING, logger="entity_rest.controller"):
        response = client.get(WIDGETS)

    assert response.status_code == 200
    assert len(response.json()) == 6
    assert response.headers["X-Total-Count"] == "0"
    assert "count unavailable" in caplog.text


def test_list_on_unknown_field_reports_store_error(client: TestClient, catalog: dict[str, int]) -> None:
    response = client.get(WIDGETS, params={"_sortField": "weight"})

    assert response.status_code == 500
    payload = response.json()
    assert payload["error_code"] == "STORE_ERROR"
    assert "weight" in payload["message"]


def test_read_one(client: TestClient, store: StoreSession, catalog: dict[str, int]) -> None:
    kite_id = _widget_id(store, "kite")

    response = client.get(f"{WIDGETS}/{kite_id}")

    assert response.status_code == 200
    assert response.json() == {
        "id": kite_id,
        "name": "kite",
        "color": "Blue",
        "price": 15.0,
        "active": True,
        "description": None,
        "category_id": catalog["Toys"],
    }
    assert "X-Total-Count" not in response.headers


def test_zero_id_is_a_collection_read(client: TestClient, catalog: dict[str, int]) -> None:
    response = client.get(f"{WIDGETS}/0", params={"color": "Red", "_sortField": "name"})

    assert response.status_code == 200
    assert _names(response.json()) == ["hammer", "wrench", "yo-yo"]
    assert response.headers["X-Total-Count"] == "3"


def test_deeply_nested_filter_blob_is_ignored(client: TestClient, catalog: dict[str, int]) -> None:
    response = client.get(WIDGETS, params={"_filters": "[" * 5000, "color": "Red"})

    assert response.status_code == 200
    assert response.headers["X-Total-Count"] == "3"


def test_read_missing_returns_not_found(client: TestClient) -> None:
    response = client.get(f"{WIDGETS}/42")

    assert response.status_code == 404
    payload = response.json()
    assert payload["error_code"] == "NOT_FOUND"
    assert payload["message"] == "widget 42 not found"
    assert payload["request_id"]


def test_create_returns_new_id(client: TestClient, store: StoreSession) -> None:
    response = client.post(WIDGETS, json={"name": "lamp", "color": "White", "price": 4.5})

    assert response.status_code == 200
    new_id = response.json()["id"]
    assert store.query_table(widget_table).filter("id", new_id).one()["name"] == "lamp"


def test_create_ignores_client_supplied_null_id(client: TestClient) -> None:
    response = client.post(WIDGETS, json={"id": None, "name": "lamp"})

    assert response.status_code == 200
    assert isinstance(response.json()["id"], int)


@pytest.mark.parametrize(
    "body",
    [
        b"{not json",
        b'{"color": "Red"}',
        b'{"name": "lamp", "price": -1}',
    ],
)
def test_create_with_invalid_body_is_rejected(client: TestClient, store: StoreSession, body: bytes) -> None:
    response = client.post(WIDGETS, content=body, headers={"content-type": "application/json"})

    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"
    assert store.query_table(widget_table).count() == 0


def test_create_duplicate_category_reports_store_error(client: TestClient, catalog: dict[str, int]) -> None:
    response = client.post(CATEGORIES, json={"name": "Tools"})

    assert response.status_code == 500
    payload = response.json()
    assert payload["error_code"] == "STORE_ERROR"
    assert "UNIQUE" in payload["message"]


def test_update_missing_returns_not_found(client: TestClient, store: StoreSession) -> None:
    response = client.put(f"{WIDGETS}/7", json={"id": 7, "name": "ghost"})

    assert response.status_code == 404
    assert response.json()["message"] == "widget 7 not found"
    assert store.query_table(widget_table).count() == 0


def test_update_echoes_entity_and_persists(client: TestClient, store: StoreSession, catalog: dict[str, int]) -> None:
    hammer_id = _widget_id(store, "hammer")
    body = {
        "id": hammer_id,
        "name": "hammer",
        "color": "Crimson",
        "price": 14,
        "active": True,
        "category_id": catalog["Tools"],
    }

    response = client.put(f"{WIDGETS}/{hammer_id}", json=body)

    assert response.status_code == 200
    assert response.json() == {**body, "price": 14.0, "description": None}
    assert client.get(f"{WIDGETS}/{hammer_id}").json()["color"] == "Crimson"


def test_update_takes_id_from_path_when_body_has_none(
    client: TestClient, store: StoreSession, catalog: dict[str, int]
) -> None:
    kite_id = _widget_id(store, "kite")

    response = client.put(f"{WIDGETS}/{kite_id}", json={"name": "box kite", "color": "Blue", "price": 18.0})

    assert response.status_code == 200
    assert response.json()["id"] == kite_id
    row = store.query_table(widget_table).filter("id", kite_id).one()
    assert row["name"] == "box kite"
    assert row["category_id"] is None


def test_delete_removes_row(client: TestClient, store: StoreSession, catalog: dict[str, int]) -> None:
    marble_id = _widget_id(store, "marble")

    response = client.delete(f"{WIDGETS}/{marble_id}")

    assert response.status_code == 200
    assert response.json() == {}
    assert client.get(f"{WIDGETS}/{marble_id}").status_code == 404
    assert store.query_table(widget_table).count() == 5


def test_delete_missing_returns_not_found(client: TestClient) -> None:
    response = client.delete(f"{WIDGETS}/999")

    assert response.status_code == 404
    assert response.json()["message"] == "widget 999 not found"


def test_non_integer_id_is_a_validation_error(client: TestClient) -> None:
    response = client.get(f"{WIDGETS}/abc")

    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_categories_resource_lists_with_count(client: TestClient, catalog: dict[str, int]) -> None:
    response = client.get(CATEGORIES, params={"_sortField": "name", "_sortDir": "desc"})

    assert response.status_code == 200
    assert response.json() == [
        {"id": catalog["Toys"], "name": "Toys"},
        {"id": catalog["Tools"], "name": "Tools"},
    ]
    assert response.headers["X-Total-Count"] == "2"
