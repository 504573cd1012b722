"""
Map My Vid Location Service: curation of extracted locations.

Every query goes through the parent video's ``user_id``; a location owned by
someone else is indistinguishable from one that does not exist.
"""
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mapmyvid.core.exceptions import NotFoundError, ValidationError
from mapmyvid.models.models import Location, SearchStatus, Video
from mapmyvid.schemas.schemas import LocationCreate, LocationPage, LocationSchema, LocationUpdate

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _owned_by(user_id: uuid.UUID):
    return (
        select(Location)
        .join(Video, Location.video_id == Video.id)
        .where(Video.user_id == user_id)
    )


def _check_coordinates(location: Location) -> None:
    """Coordinates only come as a full set: latitude, longitude and an address."""
    has_lat = location.latitude is not None
    has_lng = location.longitude is not None
    if (has_lat or has_lng) and not (has_lat and has_lng and location.formatted_address):
        raise ValidationError("latitude, longitude and formatted_address must be set together")


def _sync_search_status(location: Location) -> None:
    """FOUND requires coordinates and an address; manual edits keep that true."""
    resolved = (
        location.latitude is not None
        and location.longitude is not None
        and bool(location.formatted_address)
    )
    if resolved:
        location.search_status = SearchStatus.FOUND
    elif location.search_status == SearchStatus.FOUND:
        location.search_status = SearchStatus.NOT_FOUND


def _parse_uuid(value: str, what: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {what} ID") from None


class LocationService:
    """Owner-scoped CRUD and favorites over Location rows."""

    async def create(self, db: AsyncSession, user_id: uuid.UUID, data: LocationCreate) -> Location:
        video_id = _parse_uuid(data.video_id, "video")
        video = await db.scalar(
            select(Video).where(Video.id == video_id, Video.user_id == user_id)
        )
        if video is None:
            raise NotFoundError("Video not found")

        location = Location(
            video_id=video.id,
            original_name=data.original_name,
            type=data.type,
            context=data.context,
            ai_address=data.ai_address,
            google_name=data.google_name,
            formatted_address=data.formatted_address,
            latitude=data.latitude,
            longitude=data.longitude,
            place_id=data.place_id,
            rating=data.rating,
            google_maps_url=data.google_maps_url,
            types=list(data.types),
            is_favorite=data.is_favorite,
            search_status=SearchStatus.PENDING,
        )
        _check_coordinates(location)
        _sync_search_status(location)
        db.add(location)
        await db.flush()
        logger.info(f"Location {location.id} created on video {video.id}")
        return location

    async def find_all_by_user(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        page: int = 1,
        page_size: int = 20,
        favorites_only: bool = False,
        video_id: Optional[uuid.UUID] = None,
    ) -> LocationPage:
        if page < 1 or page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValidationError("Invalid pagination parameters")

        query = _owned_by(user_id)
        if favorites_only:
            query = query.where(Location.is_favorite.is_(True))
        if video_id is not None:
            query = query.where(Location.video_id == video_id)

        total = await db.scalar(select(func.count()).select_from(query.subquery()))
        result = await db.execute(
            query.order_by(Location.created_at.desc(), Location.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return LocationPage(
            data=[LocationSchema.model_validate(loc) for loc in result.scalars().all()],
            total=total or 0,
            page=page,
            page_size=page_size,
        )

    async def find_one_by_user(self, db: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID) -> Location:
        location = await db.scalar(_owned_by(user_id).where(Location.id == location_id))
        if location is None:
            raise NotFoundError("Location not found")
        return location

    async def find_favorites(self, db: AsyncSession, user_id: uuid.UUID) -> List[Location]:
        result = await db.execute(
            _owned_by(user_id)
            .where(Location.is_favorite.is_(True))
            .order_by(Location.created_at, Location.id)
        )
        return list(result.scalars().all())

    async def update_by_user(
        self, db: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID, data: LocationUpdate,
    ) -> Location:
        location = await self.find_one_by_user(db, user_id, location_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(location, field, value)
        _check_coordinates(location)
        _sync_search_status(location)
        await db.flush()
        return location

    async def remove_by_user(self, db: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID) -> None:
        location = await self.find_one_by_user(db, user_id, location_id)
        await db.delete(location)
        await db.flush()
        logger.info(f"Location {location_id} removed")

    async def toggle_favorite(self, db: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID) -> Location:
        location = await self.find_one_by_user(db, user_id, location_id)
        location.is_favorite = not location.is_favorite
        await db.flush()
        return location

    async def set_favorite(
        self, db: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID, is_favorite: bool,
    ) -> Location:
        location = await self.find_one_by_user(db, user_id, location_id)
        location.is_favorite = is_favorite
        await db.flush()
        return location


location_service = LocationService()
