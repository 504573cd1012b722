"""
Map My Vid error taxonomy.

Every domain error carries the HTTP status it maps to; ``main.py`` registers a
single handler for ``MapMyVidError`` that renders ``{"detail": message}``.
"""
from __future__ import annotations


class MapMyVidError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MapMyVidError):
    """Client-correctable input problem, raised before any state changes."""
    status_code = 400
    default_message = "Invalid request"


class NoFavoritesError(ValidationError):
    default_message = "No favorite locations found"


class NotFoundError(MapMyVidError):
    """Missing, or owned by another user; both look the same to the caller."""
    status_code = 404
    default_message = "Resource not found"


class ExternalServiceError(MapMyVidError):
    status_code = 502
    default_message = "External service error"


class ResponseParseError(ExternalServiceError):
    default_message = "Could not parse AI response"


class AnalysisFailedError(MapMyVidError):
    status_code = 500
    default_message = "Video analysis failed"


class ConfigurationError(MapMyVidError):
    status_code = 500
    default_message = "Service is not configured"
