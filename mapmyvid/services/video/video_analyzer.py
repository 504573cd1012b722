"""
Map My Vid Video Analyzer: upload-to-locations pipeline.

Pipeline (single request, single attempt):
 1. Validate the upload (size, MIME type, required fields)
 2. Create the Video row, status PROCESSING
 3. Store the raw bytes under videos/{user_id}/{filename} (best effort)
 4. Gemini extracts candidate locations + trip city/country/summary
 5. Every candidate concurrently: insert Location (PENDING), resolve it
    through Google Places, update to FOUND / NOT_FOUND
 6. Mark the Video COMPLETED with its processing time

A failure in steps 4-6 marks the Video FAILED with the cause recorded on the
row; the caller only sees a generic "Video analysis failed". A single
location that cannot be resolved never fails the video.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Optional

from prometheus_client import Counter
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mapmyvid.core.config import Settings, get_settings
from mapmyvid.core.exceptions import (
    AnalysisFailedError, ExternalServiceError, NotFoundError, ValidationError,
)
from mapmyvid.models.models import Location, SearchStatus, Video, VideoStatus
from mapmyvid.schemas.schemas import (
    AnalyzedLocation, AnalyzeVideoResponse, ExtractedLocation, PlaceLookupError,
    PlaceMatch, PlaceNotFound, UserStatistics, VideoInfo, VideoPage, VideoSchema,
)
from mapmyvid.services.ai.gemini_client import GeminiClient
from mapmyvid.services.places.place_resolver import PlaceResolver
from mapmyvid.services.storage.storage_service import StorageService, video_key

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50

VIDEOS_ANALYZED = Counter(
    "mapmyvid_videos_analyzed_total",
    "Video analyses by outcome",
    ["outcome"],
)


class VideoAnalyzerService:
    """Runs the analysis pipeline and serves a user's videos."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ai_client: GeminiClient,
        place_resolver: PlaceResolver,
        storage: Optional[StorageService] = None,
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.ai_client = ai_client
        self.place_resolver = place_resolver
        self.storage = storage
        self.settings = settings or get_settings()

    # ── Pipeline ─────────────────────────────────────────────────────────

    def validate_upload(
        self,
        user_id: Optional[uuid.UUID],
        video_bytes: Optional[bytes],
        filename: Optional[str],
        original_name: Optional[str],
        size: Optional[int],
        mime_type: Optional[str],
    ) -> None:
        if not all([user_id, video_bytes, filename, original_name, size, mime_type]):
            raise ValidationError("Missing required parameters for video analysis")
        max_mb = self.settings.max_video_size_bytes // (1024 * 1024)
        if size > self.settings.max_video_size_bytes:
            raise ValidationError(f"Video file too large. Maximum size is {max_mb}MB")
        if not mime_type.startswith("video/"):
            raise ValidationError("Invalid file type. Only video files are allowed")

    async def analyze_video_and_find_locations(
        self,
        user_id: uuid.UUID,
        video_bytes: bytes,
        filename: str,
        original_name: str,
        size: int,
        mime_type: str,
    ) -> AnalyzeVideoResponse:
        self.validate_upload(user_id, video_bytes, filename, original_name, size, mime_type)
        started = time.monotonic()

        async with self.session_factory() as db:
            video = Video(
                user_id=user_id,
                filename=filename,
                original_name=original_name,
                file_size=size,
                mime_type=mime_type,
                status=VideoStatus.PROCESSING,
            )
            db.add(video)
            await db.commit()
            video_id = video.id
        logger.info(f"Video {video_id} created for user {user_id}: {original_name} ({size} bytes)")

        await self._store_upload(user_id, filename, video_bytes, mime_type)

        try:
            analysis = await self.ai_client.analyze_video(video_bytes, mime_type)

            async with self.session_factory() as db:
                video = await db.get(Video, video_id)
                video.city = analysis.city
                video.country = analysis.country
                video.summary = analysis.summary
                await db.commit()

            results = await asyncio.gather(
                *[
                    self._resolve_location(video_id, extracted, analysis.city, analysis.country)
                    for extracted in analysis.locations
                ],
                return_exceptions=True,
            )
            failures = [r for r in results if isinstance(r, BaseException)]
            if failures:
                raise failures[0]

            elapsed_ms = int((time.monotonic() - started) * 1000)
            async with self.session_factory() as db:
                video = await db.get(Video, video_id)
                video.status = VideoStatus.COMPLETED
                video.processing_time_ms = elapsed_ms
                await db.commit()

        except Exception as e:
            logger.exception(f"✗ Video analysis failed for {video_id}: {e}")
            await self._mark_failed(video_id, str(e) or type(e).__name__)
            VIDEOS_ANALYZED.labels(outcome="failed").inc()
            raise AnalysisFailedError() from e

        found = sum(1 for r in results if isinstance(r.google_place, PlaceMatch))
        logger.info(
            f"✓ Video {video_id} completed: {found}/{len(results)} locations resolved "
            f"in {elapsed_ms} ms"
        )
        VIDEOS_ANALYZED.labels(outcome="completed").inc()

        return AnalyzeVideoResponse(
            success=True,
            video_id=str(video_id),
            video_info=VideoInfo(
                filename=filename,
                size=size,
                mimetype=mime_type,
                city=analysis.city,
                country=analysis.country,
            ),
            locations_found=len(results),
            locations=list(results),
            processing_time_ms=elapsed_ms,
        )

    async def _store_upload(self, user_id, filename: str, data: bytes, mime_type: str) -> None:
        """Raw upload goes to blob storage; processing carries on if it fails."""
        if self.storage is None:
            return
        try:
            await self.storage.put(video_key(str(user_id), filename), data, mime_type)
        except ExternalServiceError as e:
            logger.warning(f"Upload to storage failed for {filename}, continuing: {e}")

    async def _resolve_location(
        self,
        video_id: uuid.UUID,
        extracted: ExtractedLocation,
        city: Optional[str],
        country: Optional[str],
    ) -> AnalyzedLocation:
        async with self.session_factory() as db:
            location = Location(
                video_id=video_id,
                original_name=extracted.name,
                type=extracted.type,
                context=extracted.context,
                ai_address=extracted.address,
                search_status=SearchStatus.PENDING,
                types=[],
            )
            db.add(location)
            await db.commit()

            try:
                result = await self.place_resolver.search_place(
                    extracted.name, extracted.address, city, country,
                )
            except Exception as e:
                logger.warning(f"Place search crashed for '{extracted.name}': {e}")
                result = PlaceNotFound(name=extracted.name, reason=f"Place search failed: {e}")

            if isinstance(result, PlaceMatch):
                location.google_name = result.name
                location.formatted_address = result.formatted_address
                location.latitude = result.lat
                location.longitude = result.lng
                location.place_id = result.place_id
                location.rating = result.rating
                location.types = list(result.types)
                location.google_maps_url = result.google_maps_url
                location.search_status = SearchStatus.FOUND
                google_place = result
            else:
                location.search_status = SearchStatus.NOT_FOUND
                google_place = PlaceLookupError(error=result.reason)
            await db.commit()

            return AnalyzedLocation(
                id=str(location.id),
                original_name=location.original_name,
                type=location.type,
                context=location.context,
                google_place=google_place,
                is_favorite=location.is_favorite,
            )

    async def _mark_failed(self, video_id: uuid.UUID, error: str) -> None:
        try:
            async with self.session_factory() as db:
                video = await db.get(Video, video_id)
                if video is None:
                    return
                video.status = VideoStatus.FAILED
                video.error_message = error[:2000]
                await db.commit()
        except Exception:
            logger.exception(f"Could not mark video {video_id} as failed")

    # ── Reads ────────────────────────────────────────────────────────────

    async def get_user_videos(
        self, db: AsyncSession, user_id: uuid.UUID, page: int = 1, page_size: int = 10,
    ) -> VideoPage:
        if page < 1 or page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValidationError("Invalid pagination parameters")

        total = await db.scalar(select(func.count(Video.id)).where(Video.user_id == user_id))
        result = await db.execute(
            select(Video)
            .where(Video.user_id == user_id)
            .order_by(Video.created_at.desc(), Video.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        videos = result.scalars().all()
        return VideoPage(
            data=[VideoSchema.model_validate(v) for v in videos],
            total=total or 0,
            page=page,
            page_size=page_size,
        )

    async def get_video_by_id(self, db: AsyncSession, user_id: uuid.UUID, video_id: uuid.UUID) -> Video:
        video = await db.scalar(
            select(Video).where(Video.id == video_id, Video.user_id == user_id)
        )
        if video is None:
            raise NotFoundError("Video not found")
        return video

    async def delete_video(self, db: AsyncSession, user_id: uuid.UUID, video_id: uuid.UUID) -> None:
        video = await self.get_video_by_id(db, user_id, video_id)
        key = video_key(str(user_id), video.filename)
        await db.delete(video)
        # the row must be gone before the blob is
        await db.commit()
        logger.info(f"Deleted video {video_id} and its locations")

        if self.storage is not None:
            try:
                await self.storage.delete(key)
            except ExternalServiceError as e:
                logger.warning(f"Stored object {key} not removed: {e}")

    async def get_user_statistics(self, db: AsyncSession, user_id: uuid.UUID) -> UserStatistics:
        total_videos = await db.scalar(
            select(func.count(Video.id)).where(Video.user_id == user_id)
        )
        total_locations = await db.scalar(
            select(func.count(Location.id))
            .join(Video, Location.video_id == Video.id)
            .where(Video.user_id == user_id)
        )
        avg_ms = await db.scalar(
            select(func.avg(Video.processing_time_ms)).where(
                Video.user_id == user_id,
                Video.status == VideoStatus.COMPLETED,
            )
        )
        return UserStatistics(
            total_videos=total_videos or 0,
            total_locations=total_locations or 0,
            avg_processing_time_ms=round(float(avg_ms), 2) if avg_ms is not None else None,
        )
