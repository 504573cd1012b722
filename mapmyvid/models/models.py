"""
Map My Vid ORM Models.

A Video belongs to one user; a Location belongs to one Video and, through it,
to the same user. Users themselves live in the authentication service, so
``user_id`` is a plain indexed UUID rather than a foreign key.
"""
from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON, BigInteger, Boolean, DateTime, Enum, Float, ForeignKey, Index,
    Integer, String, Text, func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mapmyvid.core.database import Base


# ═══════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════

class VideoStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class LocationType(str, enum.Enum):
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    HOTEL = "hotel"
    ATTRACTION = "attraction"
    STORE = "store"
    OTHER = "other"


class SearchStatus(str, enum.Enum):
    PENDING = "pending"
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


# ═══════════════════════════════════════════════════════════════════════
# Content Models
# ═══════════════════════════════════════════════════════════════════════

class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_user_created", "user_id", "created_at"),
        Index("ix_videos_status", "status"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True)

    # Upload
    filename: Mapped[str] = mapped_column(String(512))
    original_name: Mapped[str] = mapped_column(String(512))
    file_size: Mapped[int] = mapped_column(BigInteger)
    mime_type: Mapped[str] = mapped_column(String(128))
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # AI trip metadata
    city: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Processing
    status: Mapped[VideoStatus] = mapped_column(Enum(VideoStatus), default=VideoStatus.PENDING)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processing_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    locations: Mapped[List["Location"]] = relationship(
        "Location", back_populates="video", lazy="selectin",
        cascade="all, delete-orphan", order_by="Location.created_at",
    )


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        Index("ix_locations_video", "video_id"),
        Index("ix_locations_favorite", "is_favorite"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"))

    # As extracted by the AI
    original_name: Mapped[str] = mapped_column(String(512))
    type: Mapped[LocationType] = mapped_column(Enum(LocationType), default=LocationType.OTHER)
    context: Mapped[str] = mapped_column(Text, default="")
    ai_address: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # As resolved by Google Places
    google_name: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    formatted_address: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    place_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    google_maps_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    types: Mapped[list] = mapped_column(JSON, default=list)

    search_status: Mapped[SearchStatus] = mapped_column(Enum(SearchStatus), default=SearchStatus.PENDING)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    video: Mapped["Video"] = relationship("Video", back_populates="locations")
