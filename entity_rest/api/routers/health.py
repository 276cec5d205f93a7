# This file defines liveness, readiness, and version endpoints.
# Readiness asks the store session for a live connection; the other two never touch the database.

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from entity_rest.api.api_config import ApiConfig
from entity_rest.api.dependencies import get_config, get_store_session
from entity_rest.api.schemas.health_schemas import HealthResponse, ReadinessResponse, VersionResponse
from entity_rest.persistence import StoreSession

router = APIRouter(tags=["health"])
ConfigDep = Annotated[ApiConfig, Depends(get_config)]
StoreDep = Annotated[StoreSession, Depends(get_store_session)]


def _status_fields(request: Request, config: ApiConfig) -> dict[str, object]:
    return {
        "service_name": config.api_name,
        "environment": config.environment,
        "api_version": config.api_version_label(),
        "request_id": request.state.request_id,
        "timestamp": datetime.now(tz=UTC),
    }


@router.get("/health", response_model=HealthResponse)
def health(request: Request, config: ConfigDep) -> HealthResponse:
    return HealthResponse.model_validate(_status_fields(request, config))


@router.get("/ready", response_model=ReadinessResponse)
def ready(request: Request, config: ConfigDep, store: StoreDep) -> ReadinessResponse:
    connected = store.can_connect()
    return ReadinessResponse.model_validate(
        {
            **_status_fields(request, config),
            "ready": connected,
            "database": "reachable" if connected else "unreachable",
        }
    )


@router.get("/version", response_model=VersionResponse)
def version(request: Request, config: ConfigDep) -> VersionResponse:
    return VersionResponse.model_validate(
        {
            **_status_fields(request, config),
            "app_version": config.app_version,
            "api_version_path": config.api_version_path,
            "total_count_header": config.total_count_header,
        }
    )
