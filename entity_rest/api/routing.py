# This file mounts one `ResourceController` under the conventional REST verb mapping.
# Each route reads the request, builds a fresh controller, and runs the blocking repository
# work in the threadpool so the event loop stays free.

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool

from entity_rest.api.api_config import ApiConfig
from entity_rest.api.controller import ResourceController
from entity_rest.api.dependencies import get_config
from entity_rest.persistence import EntityRepository


def resource_router(
    path: str,
    controller_class: type[ResourceController[Any]],
    get_repository: Callable[[], EntityRepository[Any]],
    *,
    tags: list[str] | None = None,
) -> APIRouter:
    """Build `GET/POST {path}` and `GET/PUT/DELETE {path}/{entity_id}` routes."""

    if inspect.isabstract(controller_class):
        missing = ", ".join(sorted(controller_class.__abstractmethods__))
        raise TypeError(f"{controller_class.__name__} must implement: {missing}")

    router = APIRouter(prefix=path, tags=tags or [path.strip("/")])

    async def dispatch(
        request: Request,
        repo: EntityRepository[Any],
        config: ApiConfig,
        action: str,
        entity_id: int | None = None,
    ) -> Response:
        body = await request.body() if action in {"post", "put"} else b""
        controller = controller_class(repo, request, config=config)
        return await run_in_threadpool(controller.handle, action, entity_id=entity_id, body=body)

    @router.get("")
    async def list_entities(
        request: Request,
        repo: EntityRepository[Any] = Depends(get_repository),
        config: ApiConfig = Depends(get_config),
    ) -> Response:
        return await dispatch(request, repo, config, "get")

    @router.get("/{entity_id}")
    async def read_entity(
        entity_id: int,
        request: Request,
        repo: EntityRepository[Any] = Depends(get_repository),
        config: ApiConfig = Depends(get_config),
    ) -> Response:
        return await dispatch(request, repo, config, "get", entity_id)

    @router.post("")
    async def create_entity(
        request: Request,
        repo: EntityRepository[Any] = Depends(get_repository),
        config: ApiConfig = Depends(get_config),
    ) -> Response:
        return await dispatch(request, repo, config, "post")

    @router.put("/{entity_id}")
    async def update_entity(
        entity_id: int,
        request: Request,
        repo: EntityRepository[Any] = Depends(get_repository),
        config: ApiConfig = Depends(get_config),
    ) -> Response:
        return await dispatch(request, repo, config, "put", entity_id)

    @router.delete("/{entity_id}")
    async def delete_entity(
        entity_id: int,
        request: Request,
        repo: EntityRepository[Any] = Depends(get_repository),
        config: ApiConfig = Depends(get_config),
    ) -> Response:
        return await dispatch(request, repo, config, "delete", entity_id)

    return router
