"""
Map My Vid API: AI agent (itinerary) routes.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from mapmyvid.api.deps import get_current_user_id, get_route_planner
from mapmyvid.core.config import get_settings
from mapmyvid.core.database import get_db
from mapmyvid.core.exceptions import ValidationError
from mapmyvid.schemas.schemas import AudioRouteResponse, RouteRequest, RouteResponse
from mapmyvid.services.routes.route_planner import RoutePlannerService

router = APIRouter(prefix="/ai-agent", tags=["AI Agent"])
settings = get_settings()


@router.post("/generate-route", response_model=RouteResponse, response_model_by_alias=False)
async def generate_route(
    body: Optional[RouteRequest] = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    planner: RoutePlannerService = Depends(get_route_planner),
    db: AsyncSession = Depends(get_db),
):
    """Plan a visiting order over the caller's favourite locations."""
    preferences = body.preferences if body else None
    return await planner.generate_optimal_route(db, user_id, preferences)


@router.post("/generate-route-audio", response_model=AudioRouteResponse, response_model_by_alias=False)
async def generate_route_audio(
    audio: UploadFile = File(...),
    user_id: uuid.UUID = Depends(get_current_user_id),
    planner: RoutePlannerService = Depends(get_route_planner),
    db: AsyncSession = Depends(get_db),
):
    """Same as ``/generate-route`` but the preferences are spoken in a recording."""
    mime_type = (audio.content_type or "").split(";")[0].strip().lower()
    if mime_type not in settings.allowed_audio_types:
        raise ValidationError(
            f"Invalid audio type. Allowed: {', '.join(settings.allowed_audio_types)}"
        )
    content = await audio.read()
    if not content:
        raise ValidationError("Audio file is empty")
    if len(content) > settings.max_audio_size_bytes:
        raise ValidationError(
            f"Audio file too large. Maximum size is {settings.max_audio_size_bytes // (1024 * 1024)}MB"
        )
    return await planner.generate_optimal_route_with_audio(db, user_id, content, mime_type)
