"""
Shared fixtures: a throwaway SQLite database per test and in-process fakes
for Gemini, Google Places and object storage.
"""
from __future__ import annotations

import uuid
from typing import Dict, List, Optional, Union

import pytest

from mapmyvid.core.config import Settings
from mapmyvid.core.database import build_engine, build_session_factory, init_db
from mapmyvid.core.exceptions import ExternalServiceError, NotFoundError
from mapmyvid.models.models import Location, LocationType, SearchStatus, Video, VideoStatus
from mapmyvid.schemas.schemas import PlaceMatch, PlaceNotFound, VideoAnalysis


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key="test-gemini",
        google_maps_api_key="test-maps",
        s3_bucket_name="test-bucket",
        places_max_concurrency=3,
    )


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'mapmyvid.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def user_a() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def user_b() -> uuid.UUID:
    return uuid.uuid4()


# ── Fakes ────────────────────────────────────────────────────────────────

class FakeGemini:
    """Stands in for GeminiClient: canned analysis / text, records calls."""

    def __init__(
        self,
        analysis: Optional[VideoAnalysis] = None,
        text: str = "",
        error: Optional[Exception] = None,
    ):
        self.analysis = analysis or VideoAnalysis()
        self.text = text
        self.error = error
        self.video_calls: List[dict] = []
        self.text_calls: List[dict] = []

    async def analyze_video(self, video_bytes: bytes, mime_type: str) -> VideoAnalysis:
        self.video_calls.append({"size": len(video_bytes), "mime_type": mime_type})
        if self.error:
            raise self.error
        return self.analysis

    async def generate_text(self, prompt, *, model=None, audio_bytes=None, audio_mime_type=None) -> str:
        self.text_calls.append({
            "prompt": prompt, "model": model,
            "audio_bytes": audio_bytes, "audio_mime_type": audio_mime_type,
        })
        if self.error:
            raise self.error
        return self.text


def make_match(name: str, place_id: Optional[str] = None) -> PlaceMatch:
    place_id = place_id or f"pid-{name.lower().replace(' ', '-')}"
    return PlaceMatch(
        name=name,
        formatted_address=f"{name} street, Ho Chi Minh City, Vietnam",
        lat=10.77,
        lng=106.70,
        place_id=place_id,
        rating=4.5,
        types=["restaurant"],
        google_maps_url=f"https://www.google.com/maps/place/?q=place_id:{place_id}",
    )


class FakeResolver:
    """Name -> PlaceMatch / PlaceNotFound / exception. Unknown names resolve."""

    def __init__(self, outcomes: Optional[Dict[str, Union[PlaceMatch, PlaceNotFound, Exception]]] = None):
        self.outcomes = outcomes or {}
        self.calls: List[tuple] = []

    async def search_place(self, name, address=None, city=None, country=None):
        self.calls.append((name, address, city, country))
        outcome = self.outcomes[name] if name in self.outcomes else make_match(name)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeStorage:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.deleted: List[str] = []

    def object_url(self, key: str) -> str:
        return f"https://test-bucket.s3.amazonaws.com/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail:
            raise ExternalServiceError("Storage put_object failed")
        self.objects[key] = data
        self.content_types[key] = content_type
        return self.object_url(key)

    async def get(self, key: str) -> bytes:
        if key not in self.objects:
            raise NotFoundError(f"Object not found: {key}")
        return self.objects[key]

    async def delete(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self.objects

    async def metadata(self, key: str) -> dict:
        data = await self.get(key)
        return {
            "key": key,
            "size": len(data),
            "content_type": self.content_types.get(key),
            "last_modified": None,
            "etag": "",
            "url": self.object_url(key),
        }

    async def list(self, prefix: Optional[str] = None, max_keys: int = 1000) -> List[dict]:
        keys = sorted(k for k in self.objects if not prefix or k.startswith(prefix))
        return [await self.metadata(k) for k in keys[:max_keys]]

    async def health(self) -> dict:
        return {"status": "unhealthy" if self.fail else "healthy", "bucket": "test-bucket"}


# ── Seed helpers ─────────────────────────────────────────────────────────

async def seed_video(
    session_factory,
    user_id: uuid.UUID,
    locations: Optional[List[dict]] = None,
    status: VideoStatus = VideoStatus.COMPLETED,
    processing_time_ms: Optional[int] = 1000,
) -> Video:
    async with session_factory() as db:
        video = Video(
            user_id=user_id,
            filename=f"video-{uuid.uuid4().hex[:6]}.mp4",
            original_name="trip.mp4",
            file_size=2 * 1024 * 1024,
            mime_type="video/mp4",
            city="Ho Chi Minh City",
            country="Vietnam",
            status=status,
            processing_time_ms=processing_time_ms,
        )
        db.add(video)
        for item in locations or []:
            found = item.get("found", True)
            video.locations.append(Location(
                original_name=item["name"],
                type=item.get("type", LocationType.RESTAURANT),
                context=item.get("context", ""),
                google_name=item.get("google_name"),
                formatted_address=f"{item['name']} address" if found else None,
                latitude=10.77 if found else None,
                longitude=106.70 if found else None,
                google_maps_url="https://www.google.com/maps/place/?q=place_id:x" if found else None,
                types=[],
                search_status=SearchStatus.FOUND if found else SearchStatus.NOT_FOUND,
                is_favorite=item.get("favorite", False),
            ))
        await db.commit()
        return video
