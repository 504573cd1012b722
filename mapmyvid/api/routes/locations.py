"""
Map My Vid API: Location routes.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mapmyvid.api.deps import get_current_user_id, parse_id
from mapmyvid.core.database import get_db
from mapmyvid.schemas.schemas import (
    FavoriteUpdate, LocationCreate, LocationPage, LocationSchema, LocationUpdate,
    MessageResponse,
)
from mapmyvid.services.locations.location_service import location_service

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.post("", response_model=LocationSchema, status_code=201)
async def create_location(
    data: LocationCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Add a location by hand to one of the caller's videos."""
    location = await location_service.create(db, user_id, data)
    return LocationSchema.model_validate(location)


@router.get("", response_model=LocationPage)
async def list_locations(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    favorites_only: bool = False,
    video_id: Optional[str] = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await location_service.find_all_by_user(
        db, user_id, page, page_size,
        favorites_only=favorites_only,
        video_id=parse_id(video_id, "video") if video_id else None,
    )


@router.get("/{location_id}", response_model=LocationSchema)
async def get_location(
    location_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    location = await location_service.find_one_by_user(db, user_id, parse_id(location_id, "location"))
    return LocationSchema.model_validate(location)


@router.patch("/{location_id}", response_model=LocationSchema)
async def update_location(
    location_id: str,
    data: LocationUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    location = await location_service.update_by_user(
        db, user_id, parse_id(location_id, "location"), data,
    )
    return LocationSchema.model_validate(location)


@router.delete("/{location_id}", response_model=MessageResponse)
async def delete_location(
    location_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await location_service.remove_by_user(db, user_id, parse_id(location_id, "location"))
    return MessageResponse(message="Location deleted successfully")


@router.post("/{location_id}/favorite/toggle", response_model=LocationSchema)
async def toggle_favorite(
    location_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    location = await location_service.toggle_favorite(db, user_id, parse_id(location_id, "location"))
    return LocationSchema.model_validate(location)


@router.put("/{location_id}/favorite", response_model=LocationSchema)
async def set_favorite(
    location_id: str,
    data: FavoriteUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    location = await location_service.set_favorite(
        db, user_id, parse_id(location_id, "location"), data.is_favorite,
    )
    return LocationSchema.model_validate(location)
