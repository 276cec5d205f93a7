# This file defines the operational payloads served next to the resources.
# Every payload names the service and carries the request id for tracing.

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class ServiceStatus(BaseModel):
    service_name: str
    environment: str
    api_version: str
    request_id: str
    timestamp: datetime


class HealthResponse(ServiceStatus):
    status: Literal["ok"] = "ok"


class ReadinessResponse(ServiceStatus):
    ready: bool
    database: Literal["reachable", "unreachable"]


class VersionResponse(ServiceStatus):
    app_version: str
    api_version_path: str
    total_count_header: str
