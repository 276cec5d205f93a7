# This file builds the FastAPI application and registers the health and resource routers.
# Startup behavior, middleware, and error handling are configured in one place.
# The app adds request IDs, timing headers, and Prometheus request metrics.

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import RequestResponseEndpoint

from entity_rest.api.api_config import get_api_config
from entity_rest.api.dependencies import get_store_session
from entity_rest.api.error_handlers import register_error_handlers
from entity_rest.api.routers.catalog import category_router, widget_router
from entity_rest.api.routers.health import router as health_router
from entity_rest.common.logging import configure_logging

LOGGER = logging.getLogger("entity_rest.api")

API_HTTP_REQUESTS_TOTAL = Counter(
    "api_http_requests_total",
    "Total number of HTTP requests processed by the API.",
    ["method", "path", "status_code"],
)
API_HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "api_http_request_duration_seconds",
    "API request duration in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
API_HTTP_INFLIGHT_REQUESTS = Gauge(
    "api_http_inflight_requests",
    "Number of API requests currently being processed.",
    ["method"],
)

UNMATCHED_PATH_LABEL = "unmatched"


def route_path_label(request: Request) -> str:
    """Label requests by route template (`/api/v1/widgets/{entity_id}`), never by concrete URL."""

    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if isinstance(path, str) else UNMATCHED_PATH_LABEL


def create_app(resource_routers: Sequence[APIRouter] | None = None) -> FastAPI:
    """Create configured FastAPI application instance.

    `resource_routers` defaults to the bundled catalog resources; each router is
    mounted under the configured version path (for example `/api/v1/widgets`).
    """

    configure_logging()
    config = get_api_config()
    routers = list(resource_routers) if resource_routers is not None else [category_router, widget_router]

    app = FastAPI(
        title=config.api_name,
        description=(
            "Generic REST resources over relational tables with dynamic sorting, "
            "filtering, and pagination."
        ),
        version=config.app_version,
        openapi_tags=[
            {"name": "health", "description": "Service liveness, readiness, and version metadata."},
        ],
    )

    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[config.total_count_header],
        )

    @app.middleware("http")
    async def request_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        method_label = request.method
        started = time.perf_counter()
        status_code = 500
        API_HTTP_INFLIGHT_REQUESTS.labels(method=method_label).inc()
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            duration_ms = (time.perf_counter() - started) * 1000.0

            response.headers["x-request-id"] = request_id
            response.headers["x-response-time-ms"] = f"{duration_ms:.2f}"
            return response
        finally:
            duration_s = time.perf_counter() - started
            path_label = route_path_label(request)
            API_HTTP_REQUESTS_TOTAL.labels(
                method=method_label,
                path=path_label,
                status_code=str(status_code),
            ).inc()
            API_HTTP_REQUEST_DURATION_SECONDS.labels(
                method=method_label,
                path=path_label,
            ).observe(duration_s)
            API_HTTP_INFLIGHT_REQUESTS.labels(method=method_label).dec()

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.on_event("startup")
    def startup_checks() -> None:
        session_factory = app.dependency_overrides.get(get_store_session, get_store_session)
        try:
            connected = session_factory().can_connect()
        except RuntimeError as exc:
            LOGGER.warning("Store unavailable at startup: %s", exc)
            return
        if not connected:
            LOGGER.warning("Database unreachable at startup")

    register_error_handlers(app)

    app.include_router(health_router)
    for router in routers:
        app.include_router(router, prefix=config.api_version_path)

    return app


app = create_app()
