"""
Map My Vid API dependencies.

Services are built once in the application lifespan and kept on
``app.state``; routes pull them through these dependencies so tests can swap
in their own instances.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Header, HTTPException, Request

from mapmyvid.services.insurance.insurance_service import InsuranceService
from mapmyvid.services.routes.route_planner import RoutePlannerService
from mapmyvid.services.storage.storage_service import StorageService
from mapmyvid.services.video.video_analyzer import VideoAnalyzerService


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> uuid.UUID:
    """Caller identity, set by the authenticating gateway in ``X-User-Id``."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid user ID")


def parse_id(value: str, what: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {what} ID")


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name.replace('_', ' ')} is not configured")
    return service


def get_video_analyzer(request: Request) -> VideoAnalyzerService:
    return _service(request, "video_analyzer")


def get_route_planner(request: Request) -> RoutePlannerService:
    return _service(request, "route_planner")


def get_insurance_service(request: Request) -> InsuranceService:
    return _service(request, "insurance_service")


def get_storage(request: Request) -> StorageService:
    return _service(request, "storage")
