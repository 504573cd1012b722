"""
Map My Vid Route Planner: AI itinerary over a user's favourite locations.

The favourites are written into a prompt together with the trip preferences
(or a voice recording describing them); Gemini answers in free text that
should contain one JSON object. That object is cut out of the surrounding
prose, validated, and each stop is matched back to the stored location by
name so the client gets coordinates and map links.

All-or-nothing: an AI or parse failure fails the request, no partial route.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import List, Optional

import pydantic
from sqlalchemy.ext.asyncio import AsyncSession

from mapmyvid.core.config import Settings, get_settings
from mapmyvid.core.exceptions import NoFavoritesError, ResponseParseError
from mapmyvid.models.models import Location
from mapmyvid.schemas.schemas import (
    AudioRouteResponse, RouteLocation, RoutePreferences, RouteResponse,
)
from mapmyvid.services.ai.gemini_client import GeminiClient
from mapmyvid.services.locations.location_service import LocationService, location_service

logger = logging.getLogger(__name__)

OVERNIGHT_MIN_HOURS = 12
OVERNIGHT_EVENING_MIN_HOURS = 6


def is_overnight_trip(preferences: RoutePreferences) -> bool:
    return preferences.duration > OVERNIGHT_MIN_HOURS or (
        preferences.time_of_day == "evening" and preferences.duration > OVERNIGHT_EVENING_MIN_HOURS
    )


def extract_json_object(text: str) -> dict:
    """Parse the outermost ``{...}`` in ``text``, ignoring prose around it."""
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise ResponseParseError("No JSON found in AI response")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"AI response JSON is invalid: {e}") from e
    if not isinstance(data, dict):
        raise ResponseParseError("AI response JSON is not an object")
    return data


# ── Prompts ──────────────────────────────────────────────────────────────

def _describe_locations(locations: List[Location]) -> str:
    lines = []
    for index, loc in enumerate(locations, start=1):
        lines.append(
            f"{index}. {loc.original_name} ({loc.type.value})\n"
            f"   - Địa chỉ: {loc.formatted_address or loc.ai_address or 'không rõ'}\n"
            f"   - Tọa độ: {loc.latitude}, {loc.longitude}\n"
            f"   - Ngữ cảnh: {loc.context}"
        )
    return "\n".join(lines)


def _json_format(overnight: bool) -> str:
    hotel_item = (
        ',\n      "hotelRecommendations": [{"name": "Tên khách sạn", "price": "100-150 USD/đêm", '
        '"rating": "4.5/5", "distance": "0.5 km từ địa điểm", "address": "Địa chỉ", '
        '"bookingUrl": "Link đặt phòng"}]'
        if overnight else ""
    )
    overnight_summary = (
        ',\n    "isOvernightTrip": true,\n    "totalEstimatedCost": "200-300 USD"'
        if overnight else ""
    )
    return (
        "{\n"
        '  "route": [\n    {\n'
        '      "order": 1,\n'
        '      "name": "Tên địa điểm (giữ nguyên như trong danh sách)",\n'
        '      "estimatedDuration": "30-45 phút",\n'
        '      "transportation": "Đi bộ/Ô tô/Xe máy",\n'
        f'      "notes": "Ghi chú"{hotel_item}\n'
        "    }\n  ],\n"
        '  "summary": {\n'
        '    "totalDuration": "4-5 giờ",\n'
        '    "totalDistance": "8-10 km",\n'
        '    "transportationMode": "Chủ yếu đi bộ",\n'
        f'    "bestTimeToStart": "8:00 AM"{overnight_summary}\n'
        "  },\n"
        '  "recommendations": ["Gợi ý 1", "Gợi ý 2"]\n'
        "}"
    )


def build_route_prompt(locations: List[Location], preferences: RoutePreferences) -> str:
    overnight = is_overnight_trip(preferences)
    hotel_task = (
        "\n6. Chuyến đi qua đêm: đề xuất 2-3 khách sạn gần các địa điểm yêu thích, "
        "kèm giá phòng, đánh giá và khoảng cách, đưa vào hotelRecommendations của từng điểm."
        if overnight else ""
    )
    return f"""\
Bạn là AI Agent lập kế hoạch du lịch. Hãy tạo lộ trình tối ưu qua các địa điểm yêu thích sau.

DANH SÁCH ĐỊA ĐIỂM YÊU THÍCH:
{_describe_locations(locations)}

THÔNG TIN CHUYẾN ĐI:
- Thời gian bắt đầu: {preferences.time_of_day}
- Thời lượng: {preferences.duration:g} giờ
- Phương tiện: {preferences.transportation}
- Khoảng cách tối đa: {preferences.max_distance:g} km
- Chuyến đi qua đêm: {"CÓ" if overnight else "KHÔNG"}

YÊU CẦU:
1. Thứ tự tham quan hợp lý theo khoảng cách và thời gian di chuyển
2. Thời gian dừng chân tại mỗi địa điểm
3. Phương tiện giữa các điểm
4. Tổng thời gian và quãng đường
5. Lưu ý cho từng địa điểm{hotel_task}

Trả về JSON theo format:
{_json_format(overnight)}
"""


def build_audio_route_prompt(locations: List[Location]) -> str:
    return f"""\
Bạn là AI Agent lập kế hoạch du lịch. Người dùng mô tả sở thích của họ trong đoạn ghi âm kèm theo
(thời gian bắt đầu, thời lượng, phương tiện, khoảng cách tối đa). Hãy nghe và tạo lộ trình tối ưu
qua các địa điểm yêu thích sau.

DANH SÁCH ĐỊA ĐIỂM YÊU THÍCH:
{_describe_locations(locations)}

YÊU CẦU:
1. Thứ tự tham quan hợp lý theo khoảng cách và thời gian di chuyển
2. Thời gian dừng chân tại mỗi địa điểm
3. Phương tiện giữa các điểm
4. Tổng thời gian và quãng đường
5. Lưu ý cho từng địa điểm
6. Nếu người dùng nhắc đến việc ở lại qua đêm, đề xuất 2-3 khách sạn gần các địa điểm
   và đặt isOvernightTrip = true

Trả về JSON theo format:
{_json_format(True)}
"""


# ── Service ──────────────────────────────────────────────────────────────

class RoutePlannerService:
    """Builds itineraries over favourites with Gemini."""

    def __init__(
        self,
        ai_client: GeminiClient,
        locations: Optional[LocationService] = None,
        settings: Optional[Settings] = None,
    ):
        self.ai_client = ai_client
        self.locations = locations or location_service
        self.settings = settings or get_settings()

    async def generate_optimal_route(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        preferences: Optional[RoutePreferences] = None,
    ) -> RouteResponse:
        favorites = await self._load_favorites(db, user_id)
        preferences = preferences or RoutePreferences()
        logger.info(
            f"Generating route over {len(favorites)} favourites for {user_id} "
            f"(overnight={is_overnight_trip(preferences)})"
        )
        text = await self.ai_client.generate_text(
            build_route_prompt(favorites, preferences),
            model=self.settings.gemini_route_model,
        )
        return self.parse_route_response(text, favorites)

    async def generate_optimal_route_with_audio(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        audio_bytes: bytes,
        audio_mime_type: str,
    ) -> AudioRouteResponse:
        favorites = await self._load_favorites(db, user_id)
        logger.info(f"Generating voice-driven route over {len(favorites)} favourites for {user_id}")
        text = await self.ai_client.generate_text(
            build_audio_route_prompt(favorites),
            model=self.settings.gemini_route_audio_model,
            audio_bytes=audio_bytes,
            audio_mime_type=audio_mime_type,
        )
        route = self.parse_route_response(text, favorites)
        # Spoken replies are not produced yet; the field stays in the contract.
        return AudioRouteResponse(**route.model_dump(), audio_url=None)

    async def _load_favorites(self, db: AsyncSession, user_id: uuid.UUID) -> List[Location]:
        favorites = await self.locations.find_favorites(db, user_id)
        if not favorites:
            raise NoFavoritesError()
        return favorites

    @staticmethod
    def parse_route_response(text: str, favorites: List[Location]) -> RouteResponse:
        data = extract_json_object(text)
        try:
            route = RouteResponse.model_validate(data)
        except pydantic.ValidationError as e:
            raise ResponseParseError(f"AI route does not match the expected shape: {e}") from e

        for item in route.route:
            match = next(
                (loc for loc in favorites if item.name in (loc.original_name, loc.google_name)),
                None,
            )
            if match is None:
                item.location_id = ""
                item.location = None
                continue
            item.location_id = str(match.id)
            item.location = RouteLocation(
                id=str(match.id),
                name=match.original_name,
                type=match.type,
                latitude=match.latitude,
                longitude=match.longitude,
                google_maps_url=match.google_maps_url,
                formatted_address=match.formatted_address,
            )
        return route
