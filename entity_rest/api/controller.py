# This file implements the generic REST controller that exposes one entity repository.
# A controller is created per request: it authorizes, dispatches on the verb, calls the repository,
# and shapes the single JSON response (plus the total-count header for collection reads).
# Repository outcomes map onto 404 (not found), 422 (bad payload), and 500 (store failures).

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, NoReturn, Protocol, runtime_checkable

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from entity_rest.api.api_config import ApiConfig
from entity_rest.api.error_handlers import APIError
from entity_rest.api.request_options import parse_options
from entity_rest.persistence import EntityRepository, NotFoundError, QueryOptions, RepositoryError
from entity_rest.persistence.repository import EntityT

LOGGER = logging.getLogger("entity_rest.controller")

ACTIONS = ("get", "post", "put", "delete")


@runtime_checkable
class AccessControlled(Protocol):
    """Optional capability: decide whether the caller may run `action` on `controller`."""

    def access_control(self, controller: str, action: str, url: str, profile: str) -> bool: ...


class ResourceController(ABC, Generic[EntityT]):
    """REST verbs over one `EntityRepository`.

    Subclasses implement `resolve_id` and may implement `access_control`
    (see `AccessControlled`); without it every request is allowed.
    The caller identity comes from `request.state.user` / `request.state.profile`,
    which an upstream middleware is expected to set.
    """

    def __init__(
        self,
        repo: EntityRepository[EntityT],
        request: Request,
        *,
        config: ApiConfig,
    ) -> None:
        self.repo = repo
        self.request = request
        self.config = config
        self.data: Any = None
        self.headers: dict[str, str] = {}

    @property
    def entity_name(self) -> str:
        return self.repo.entity_name

    @abstractmethod
    def resolve_id(self, entity: EntityT) -> int:
        """Identify `entity` in not-found messages."""

    def _state(self, name: str) -> str:
        value = getattr(self.request.state, name, "")
        return value if isinstance(value, str) else ""

    def send_error(self, status_code: int, error_code: str, message: str) -> NoReturn:
        raise APIError(status_code=status_code, error_code=error_code, message=message)

    def prepare(self, action: str) -> None:
        """Run the access-control hook when the controller provides one."""

        if not isinstance(self, AccessControlled):
            return
        url = self.request.url.path
        user = self._state("user")
        profile = self._state("profile")
        if not self.access_control(type(self).__name__, action, url, profile):
            LOGGER.warning("Access denied! User: %s, Profile: %s, URL: %s", user, profile, url)
            self.send_error(401, "ACCESS_DENIED", "Access denied!")

    def handle(
        self,
        action: str,
        *,
        entity_id: int | None = None,
        body: bytes = b"",
    ) -> JSONResponse:
        """Authorize, run the verb handler and build the response."""

        if action not in ACTIONS:
            self.send_error(405, "METHOD_NOT_ALLOWED", f"Unsupported action {action!r}")
        self.prepare(action)
        if action == "get":
            self.get(entity_id)
        elif action == "post":
            self.post(body)
        elif action == "put":
            self.put(entity_id, body)
        else:
            self.delete(entity_id or 0)
        return self.respond()

    def respond(self) -> JSONResponse:
        return JSONResponse(content=jsonable_encoder(self.data), headers=self.headers)

    def _not_found(self, entity_id: object) -> NoReturn:
        message = f"{self.entity_name} {entity_id} not found"
        LOGGER.warning("%s", message)
        self.send_error(404, "NOT_FOUND", message)

    def _store_failure(self, exc: Exception) -> NoReturn:
        self.send_error(500, "STORE_ERROR", str(exc))

    def _decode(self, body: bytes) -> EntityT:
        try:
            return self.repo.entity_type.model_validate_json(body)
        except ValidationError as exc:
            LOGGER.error("Error parsing %s %r: %s", self.entity_name, body, exc)
            self.send_error(422, "VALIDATION_ERROR", str(exc))

    def parse_options(self) -> QueryOptions:
        return parse_options(self.request.query_params)

    def get(self, entity_id: int | None = None) -> None:
        if entity_id:
            try:
                self.data = self.repo.read(entity_id)
            except NotFoundError:
                self._not_found(entity_id)
            except RepositoryError as exc:
                LOGGER.error("Error reading %s: %s", self.entity_name, exc)
                self._store_failure(exc)
            return

        options = self.parse_options()
        try:
            entities = self.repo.read_all(options)
        except RepositoryError as exc:
            LOGGER.error("Error reading %s: %s", self.entity_name, exc)
            self._store_failure(exc)
        try:
            total = self.repo.count(options)
        except RepositoryError as exc:
            LOGGER.warning("Error counting %s: %s", self.entity_name, exc)
            total = 0
        self.headers[self.config.total_count_header] = str(total)
        self.data = entities

    def put(self, entity_id: int | None, body: bytes) -> None:
        entity = self._decode(body)
        pk = self.repo.primary_key
        if entity_id and getattr(entity, pk, None) is None:
            entity = entity.model_copy(update={pk: entity_id})
        resolved_id = self.resolve_id(entity)
        try:
            self.repo.update(entity)
        except NotFoundError:
            self._not_found(resolved_id)
        except RepositoryError as exc:
            LOGGER.error("Error updating %s %r: %s", self.entity_name, entity, exc)
            self._store_failure(exc)
        self.data = entity

    def post(self, body: bytes) -> None:
        entity = self._decode(body)
        try:
            new_id = self.repo.save(entity)
        except RepositoryError as exc:
            LOGGER.error("Error creating %s %r: %s", self.entity_name, entity, exc)
            self._store_failure(exc)
        self.data = {"id": new_id}

    def delete(self, entity_id: int) -> None:
        try:
            self.repo.delete(entity_id)
        except NotFoundError:
            self._not_found(entity_id)
        except RepositoryError as exc:
            LOGGER.error("Error deleting %s %s: %s", self.entity_name, entity_id, exc)
            self._store_failure(exc)
        self.data = {}
