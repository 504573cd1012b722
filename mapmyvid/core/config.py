"""
Map My Vid Core Settings.

All values can be overridden through ``MAPMYVID_*`` environment variables or a
``.env`` file in the working directory.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="MAPMYVID_", case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Map My Vid"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"
    cors_origins: List[str] = ["*"]

    # ── PostgreSQL ───────────────────────────────────────────────────────
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "mapmyvid"
    db_password: str = "mapmyvid_secret"
    db_name: str = "mapmyvid"
    db_pool_size: int = 10
    database_url_override: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Gemini ───────────────────────────────────────────────────────────
    gemini_api_key: str = ""
    gemini_video_model: str = "gemini-2.5-flash-lite"
    gemini_route_model: str = "gemini-2.5-flash"
    gemini_route_audio_model: str = "gemini-2.5-flash-native-audio-preview-09-2025"
    gemini_temperature: float = 0.3

    # ── Google Places ────────────────────────────────────────────────────
    google_maps_api_key: str = ""
    places_base_url: str = "https://maps.googleapis.com/maps/api/place"
    places_timeout_seconds: float = 8.0
    places_max_concurrency: int = 5
    places_locale: str = "vi"

    # ── Object Storage (S3) ──────────────────────────────────────────────
    s3_bucket_name: str = ""
    s3_region: str = "ap-southeast-1"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_endpoint_url: Optional[str] = None

    # ── Uploads ──────────────────────────────────────────────────────────
    max_video_size_bytes: int = 100 * 1024 * 1024
    max_audio_size_bytes: int = 10 * 1024 * 1024
    allowed_audio_types: List[str] = [
        "audio/webm", "audio/wav", "audio/mp3", "audio/mpeg",
    ]

    # ── Insurance ────────────────────────────────────────────────────────
    insurance_data_file: Optional[str] = None


@lru_cache()
def get_settings() -> Settings:
    return Settings()
