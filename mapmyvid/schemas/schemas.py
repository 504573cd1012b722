"""
Map My Vid API Schemas: Pydantic v2 models for request/response validation.

Route/itinerary models accept the camelCase keys the itinerary model writes
(``estimatedDuration``, ``hotelRecommendations``...) as well as snake_case.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from mapmyvid.models.models import LocationType, SearchStatus, VideoStatus


# ═══════════════════════════════════════════════════════════════════════
# AI extraction
# ═══════════════════════════════════════════════════════════════════════

class ExtractedLocation(BaseModel):
    name: str = Field(..., min_length=1)
    type: LocationType = LocationType.OTHER
    context: str = ""
    address: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        try:
            return LocationType(str(value).strip().lower())
        except ValueError:
            return LocationType.OTHER

    @field_validator("context", mode="before")
    @classmethod
    def _none_context(cls, value):
        return value or ""


class VideoAnalysis(BaseModel):
    locations: List[ExtractedLocation] = Field(default_factory=list)
    city: Optional[str] = None
    country: Optional[str] = None
    summary: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════
# Place resolution
# ═══════════════════════════════════════════════════════════════════════

class PlaceMatch(BaseModel):
    name: str
    formatted_address: str
    lat: float
    lng: float
    place_id: str
    rating: Optional[float] = None
    types: List[str] = Field(default_factory=list)
    google_maps_url: str


class PlaceNotFound(BaseModel):
    name: str
    reason: str
    queries_tried: int = 0


class PlaceLookupError(BaseModel):
    error: str


# ═══════════════════════════════════════════════════════════════════════
# Video analysis
# ═══════════════════════════════════════════════════════════════════════

class VideoInfo(BaseModel):
    filename: str
    size: int
    mimetype: str
    city: Optional[str] = None
    country: Optional[str] = None


class AnalyzedLocation(BaseModel):
    id: str
    original_name: str
    type: LocationType
    context: str
    google_place: Union[PlaceMatch, PlaceLookupError]
    is_favorite: bool = False


class AnalyzeVideoResponse(BaseModel):
    success: bool = True
    video_id: str
    video_info: VideoInfo
    locations_found: int
    locations: List[AnalyzedLocation]
    processing_time_ms: int


# ═══════════════════════════════════════════════════════════════════════
# Videos & Locations
# ═══════════════════════════════════════════════════════════════════════

class LocationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    video_id: str
    original_name: str
    type: LocationType
    context: str
    ai_address: Optional[str] = None
    google_name: Optional[str] = None
    formatted_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    place_id: Optional[str] = None
    rating: Optional[float] = None
    google_maps_url: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    search_status: SearchStatus
    is_favorite: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "video_id", mode="before")
    @classmethod
    def _uuid_to_str(cls, value):
        return str(value)

    @field_validator("types", mode="before")
    @classmethod
    def _none_types(cls, value):
        return value or []


class VideoSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    original_name: str
    file_size: int
    mime_type: str
    duration_seconds: Optional[int] = None
    city: Optional[str] = None
    country: Optional[str] = None
    summary: Optional[str] = None
    status: VideoStatus
    error_message: Optional[str] = None
    processing_time_ms: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    locations: List[LocationSchema] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _uuid_to_str(cls, value):
        return str(value)


class VideoPage(BaseModel):
    data: List[VideoSchema]
    total: int
    page: int
    page_size: int


class LocationPage(BaseModel):
    data: List[LocationSchema]
    total: int
    page: int
    page_size: int


class UserStatistics(BaseModel):
    total_videos: int
    total_locations: int
    avg_processing_time_ms: Optional[float] = None


class LocationCreate(BaseModel):
    video_id: str
    original_name: str = Field(..., min_length=1, max_length=512)
    type: LocationType = LocationType.OTHER
    context: str = ""
    ai_address: Optional[str] = None
    google_name: Optional[str] = None
    formatted_address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(None, ge=-180.0, le=180.0)
    place_id: Optional[str] = None
    rating: Optional[float] = None
    google_maps_url: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    is_favorite: bool = False


class LocationUpdate(BaseModel):
    original_name: Optional[str] = Field(None, min_length=1, max_length=512)
    type: Optional[LocationType] = None
    context: Optional[str] = None
    ai_address: Optional[str] = None
    google_name: Optional[str] = None
    formatted_address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(None, ge=-180.0, le=180.0)
    google_maps_url: Optional[str] = None
    is_favorite: Optional[bool] = None

    @field_validator("original_name", "type", "context", "is_favorite", mode="before")
    @classmethod
    def _not_null(cls, value):
        # omitted is fine, explicit null is not: these columns are NOT NULL
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class FavoriteUpdate(BaseModel):
    is_favorite: bool


class MessageResponse(BaseModel):
    message: str


# ═══════════════════════════════════════════════════════════════════════
# Routes / Itinerary
# ═══════════════════════════════════════════════════════════════════════

class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True,
    )


class RoutePreferences(_CamelModel):
    max_distance: float = Field(20, gt=0)
    time_of_day: Literal["morning", "afternoon", "evening"] = "morning"
    transportation: Literal["walking", "driving", "public_transport"] = "walking"
    duration: float = Field(8, gt=0)


class RouteRequest(_CamelModel):
    preferences: Optional[RoutePreferences] = None


class HotelRecommendation(_CamelModel):
    name: str
    price: Optional[str] = None
    rating: Optional[str] = None
    distance: Optional[str] = None
    address: Optional[str] = None
    booking_url: Optional[str] = None


class RouteLocation(_CamelModel):
    id: str
    name: str
    type: LocationType
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_maps_url: Optional[str] = None
    formatted_address: Optional[str] = None


class RouteItem(_CamelModel):
    order: int
    location_id: str = ""
    name: str
    estimated_duration: str = ""
    transportation: str = ""
    notes: str = ""
    hotel_recommendations: Optional[List[HotelRecommendation]] = None
    location: Optional[RouteLocation] = None


class RouteSummary(_CamelModel):
    total_duration: str = ""
    total_distance: str = ""
    transportation_mode: str = ""
    best_time_to_start: str = ""
    is_overnight_trip: Optional[bool] = None
    total_estimated_cost: Optional[str] = None


class RouteResponse(_CamelModel):
    route: List[RouteItem]
    summary: RouteSummary
    recommendations: List[str] = Field(default_factory=list)


class AudioRouteResponse(RouteResponse):
    audio_url: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════
# Insurance
# ═══════════════════════════════════════════════════════════════════════

class InsurancePrice(BaseModel):
    daily: float
    weekly: float
    monthly: float
    currency: str


class InsurancePackage(BaseModel):
    id: str
    name: str
    provider: str
    coverage: List[str]
    price: InsurancePrice
    rating: float
    features: List[str]
    description: str
    coverage_limit: str
    deductible: str
    emergency_contact: str
    claim_process: str
    exclusions: List[str]
    recommended_for: List[str]


# ═══════════════════════════════════════════════════════════════════════
# Object storage
# ═══════════════════════════════════════════════════════════════════════

class StoredObject(BaseModel):
    key: str
    size: int = 0
    content_type: Optional[str] = None
    last_modified: Optional[datetime] = None
    etag: str = ""
    url: str


class ObjectExists(BaseModel):
    key: str
    exists: bool


class StorageHealth(BaseModel):
    status: str
    bucket: str
