"""
Map My Vid API: Video analyzer routes.
"""
from __future__ import annotations

import os
import time
import uuid

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from mapmyvid.api.deps import get_current_user_id, get_video_analyzer, parse_id
from mapmyvid.core.config import get_settings
from mapmyvid.core.database import get_db
from mapmyvid.core.exceptions import ValidationError
from mapmyvid.schemas.schemas import (
    AnalyzeVideoResponse, MessageResponse, UserStatistics, VideoPage, VideoSchema,
)
from mapmyvid.services.video.video_analyzer import VideoAnalyzerService

router = APIRouter(prefix="/video-analyzer", tags=["Video Analyzer"])
settings = get_settings()


def _stored_filename(original_name: str) -> str:
    ext = os.path.splitext(original_name)[1].lower()
    if not ext[1:].isalnum():
        ext = ""
    return f"video-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"


@router.post("/analyze", response_model=AnalyzeVideoResponse)
async def analyze_video(
    video: UploadFile = File(...),
    user_id: uuid.UUID = Depends(get_current_user_id),
    analyzer: VideoAnalyzerService = Depends(get_video_analyzer),
):
    """Upload a travel video; extract, geocode and store the places it shows."""
    if video.size is not None and video.size > settings.max_video_size_bytes:
        raise ValidationError(
            f"Video file too large. Maximum size is {settings.max_video_size_bytes // (1024 * 1024)}MB"
        )
    content = await video.read()
    original_name = video.filename or "video"
    return await analyzer.analyze_video_and_find_locations(
        user_id=user_id,
        video_bytes=content,
        filename=_stored_filename(original_name),
        original_name=original_name,
        size=len(content),
        mime_type=video.content_type or "",
    )


@router.get("/videos", response_model=VideoPage)
async def list_videos(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    user_id: uuid.UUID = Depends(get_current_user_id),
    analyzer: VideoAnalyzerService = Depends(get_video_analyzer),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's videos, newest first, with their locations."""
    return await analyzer.get_user_videos(db, user_id, page, page_size)


@router.get("/videos/{video_id}", response_model=VideoSchema)
async def get_video(
    video_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    analyzer: VideoAnalyzerService = Depends(get_video_analyzer),
    db: AsyncSession = Depends(get_db),
):
    video = await analyzer.get_video_by_id(db, user_id, parse_id(video_id, "video"))
    return VideoSchema.model_validate(video)


@router.delete("/videos/{video_id}", response_model=MessageResponse)
async def delete_video(
    video_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    analyzer: VideoAnalyzerService = Depends(get_video_analyzer),
    db: AsyncSession = Depends(get_db),
):
    """Delete a video together with its locations."""
    await analyzer.delete_video(db, user_id, parse_id(video_id, "video"))
    return MessageResponse(message="Video deleted successfully")


@router.get("/statistics", response_model=UserStatistics)
async def get_statistics(
    user_id: uuid.UUID = Depends(get_current_user_id),
    analyzer: VideoAnalyzerService = Depends(get_video_analyzer),
    db: AsyncSession = Depends(get_db),
):
    return await analyzer.get_user_statistics(db, user_id)


@router.get("/health")
async def health(request: Request):
    """Which collaborators the analyzer was configured with."""
    state = request.app.state
    return {
        "status": "ok" if getattr(state, "video_analyzer", None) else "degraded",
        "gemini": getattr(state, "gemini_client", None) is not None,
        "places": getattr(state, "place_resolver", None) is not None,
        "storage": getattr(state, "storage", None) is not None,
    }
