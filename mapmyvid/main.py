"""
Map My Vid: Main FastAPI Application

Travel video → places on a map → AI itinerary.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from mapmyvid.core.config import get_settings
from mapmyvid.core.database import async_session_factory, engine, init_db
from mapmyvid.core.exceptions import MapMyVidError

settings = get_settings()

# ── Logging ──────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.getLevelName(settings.log_level),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level)
    ),
)

logger = structlog.get_logger()


# ── Lifespan ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    from mapmyvid.services.ai.gemini_client import GeminiClient
    from mapmyvid.services.insurance.insurance_service import InsuranceService
    from mapmyvid.services.places.place_resolver import PlaceResolver
    from mapmyvid.services.routes.route_planner import RoutePlannerService
    from mapmyvid.services.storage.storage_service import StorageService
    from mapmyvid.services.video.video_analyzer import VideoAnalyzerService

    logger.info("Starting Map My Vid", version=settings.app_version)

    await init_db()

    app.state.insurance_service = InsuranceService()

    # Collaborators without credentials stay None; their routes answer 503.
    app.state.gemini_client = None
    app.state.place_resolver = None
    app.state.storage = None
    app.state.video_analyzer = None
    app.state.route_planner = None

    if settings.gemini_api_key:
        app.state.gemini_client = GeminiClient(settings.gemini_api_key)
        app.state.route_planner = RoutePlannerService(app.state.gemini_client)
    else:
        logger.warning("MAPMYVID_GEMINI_API_KEY not set: video analysis and routes disabled")

    if settings.google_maps_api_key:
        app.state.place_resolver = PlaceResolver(settings.google_maps_api_key)
    else:
        logger.warning("MAPMYVID_GOOGLE_MAPS_API_KEY not set: video analysis disabled")

    if settings.s3_bucket_name:
        app.state.storage = StorageService()
    else:
        logger.warning("MAPMYVID_S3_BUCKET_NAME not set: uploads will not be archived")

    if app.state.gemini_client and app.state.place_resolver:
        app.state.video_analyzer = VideoAnalyzerService(
            session_factory=async_session_factory,
            ai_client=app.state.gemini_client,
            place_resolver=app.state.place_resolver,
            storage=app.state.storage,
        )

    logger.info(
        "Map My Vid ready",
        gemini_model=settings.gemini_video_model,
        places_locale=settings.places_locale,
        places_concurrency=settings.places_max_concurrency,
        storage=bool(app.state.storage),
    )

    yield

    # Shutdown
    if app.state.place_resolver is not None:
        await app.state.place_resolver.aclose()
    await engine.dispose()
    logger.info("Shutting down Map My Vid")


# ── App ──────────────────────────────────────────────────────────────────

def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Travel video location extraction, geocoding and AI itineraries",
        version=settings.app_version,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics
    app.mount("/metrics", make_asgi_app())

    @app.exception_handler(MapMyVidError)
    async def domain_error_handler(request: Request, exc: MapMyVidError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # ── Routes ───────────────────────────────────────────────────────────

    from mapmyvid.api.routes import ai_agent, insurance, locations, storage, video_analyzer

    app.include_router(video_analyzer.router, prefix=settings.api_prefix)
    app.include_router(locations.router, prefix=settings.api_prefix)
    app.include_router(ai_agent.router, prefix=settings.api_prefix)
    app.include_router(insurance.router, prefix=settings.api_prefix)
    app.include_router(storage.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "description": "Upload a travel video, get its places on a map",
            "version": settings.app_version,
            "features": [
                "video_location_extraction", "place_resolution", "location_curation",
                "ai_route_planning", "voice_route_planning", "insurance_recommendations",
            ],
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()
