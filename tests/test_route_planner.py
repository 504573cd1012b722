"""Tests for itinerary prompts, AI output parsing and enrichment."""
from __future__ import annotations

import json

import pytest

from conftest import FakeGemini, seed_video
from mapmyvid.core.exceptions import ExternalServiceError, NoFavoritesError, ResponseParseError
from mapmyvid.models.models import LocationType
from mapmyvid.schemas.schemas import AudioRouteResponse, RoutePreferences
from mapmyvid.services.routes.route_planner import (
    RoutePlannerService, build_audio_route_prompt, build_route_prompt,
    extract_json_object, is_overnight_trip,
)


def route_payload(*names: str, overnight: bool = False) -> dict:
    items = []
    for order, name in enumerate(names, start=1):
        item = {
            "order": order,
            "name": name,
            "estimatedDuration": "45 phút",
            "transportation": "Đi bộ",
            "notes": f"Ghé {name}",
        }
        if overnight:
            item["hotelRecommendations"] = [{
                "name": "Rex Hotel", "price": "100-150 USD/đêm", "rating": "4.5/5",
                "distance": "0.5 km", "address": "141 Nguyễn Huệ", "bookingUrl": "https://example.com",
            }]
        items.append(item)
    summary = {
        "totalDuration": "4 giờ",
        "totalDistance": "6 km",
        "transportationMode": "Đi bộ",
        "bestTimeToStart": "8:00 AM",
    }
    if overnight:
        summary.update(isOvernightTrip=True, totalEstimatedCost="250 USD")
    return {"route": items, "summary": summary, "recommendations": ["Mang nước", "Đi sớm"]}


async def seed_favorites(session_factory, user_id):
    return await seed_video(session_factory, user_id, [
        {"name": "Pizza 4P's", "google_name": "Pizza 4P's Ben Thanh", "favorite": True},
        {"name": "Cộng Cà Phê", "type": LocationType.CAFE, "favorite": True},
        {"name": "Chợ Bến Thành", "favorite": False},
    ])


# ── Heuristics & parsing ─────────────────────────────────────────────────

@pytest.mark.parametrize("time_of_day, duration, expected", [
    ("morning", 8, False),
    ("morning", 12, False),
    ("morning", 13, True),
    ("evening", 6, False),
    ("evening", 7, True),
    ("afternoon", 10, False),
])
def test_overnight_heuristic(time_of_day, duration, expected):
    prefs = RoutePreferences(time_of_day=time_of_day, duration=duration)
    assert is_overnight_trip(prefs) is expected


def test_extract_json_object_ignores_surrounding_prose():
    text = 'Đây là lộ trình của bạn:\n```json\n{"route": [], "summary": {}}\n```\nChúc vui!'
    assert extract_json_object(text) == {"route": [], "summary": {}}


@pytest.mark.parametrize("text", [
    "Xin lỗi, tôi không thể tạo lộ trình.",
    "} nothing here {",
    '{"route": [1, 2,, 3]}',
])
def test_extract_json_object_failures(text):
    with pytest.raises(ResponseParseError):
        extract_json_object(text)


def test_parse_rejects_payload_without_route():
    with pytest.raises(ResponseParseError):
        RoutePlannerService.parse_route_response('{"summary": {}}', [])


def test_preferences_accept_camel_case():
    prefs = RoutePreferences.model_validate(
        {"maxDistance": 5, "timeOfDay": "evening", "transportation": "driving", "duration": 10}
    )
    assert prefs.max_distance == 5
    assert prefs.time_of_day == "evening"


def test_default_preferences():
    prefs = RoutePreferences()
    assert (prefs.max_distance, prefs.time_of_day, prefs.transportation, prefs.duration) == (
        20, "morning", "walking", 8,
    )


# ── Prompts ──────────────────────────────────────────────────────────────

async def test_route_prompt_lists_favourites_and_preferences(session_factory, db, user_a):
    await seed_favorites(session_factory, user_a)
    favorites = await RoutePlannerService(FakeGemini())._load_favorites(db, user_a)

    prompt = build_route_prompt(favorites, RoutePreferences(duration=4, transportation="driving"))

    assert "Pizza 4P's (restaurant)" in prompt
    assert "Cộng Cà Phê (cafe)" in prompt
    assert "Chợ Bến Thành" not in prompt
    assert "Thời lượng: 4 giờ" in prompt
    assert "Phương tiện: driving" in prompt
    assert "hotelRecommendations" not in prompt


async def test_overnight_prompt_asks_for_hotels(session_factory, db, user_a):
    await seed_favorites(session_factory, user_a)
    favorites = await RoutePlannerService(FakeGemini())._load_favorites(db, user_a)

    prompt = build_route_prompt(favorites, RoutePreferences(time_of_day="evening", duration=8))

    assert "hotelRecommendations" in prompt
    assert "isOvernightTrip" in prompt
    assert "Chuyến đi qua đêm: CÓ" in prompt
    assert "hotelRecommendations" in build_audio_route_prompt(favorites)


# ── Service ──────────────────────────────────────────────────────────────

async def test_route_is_enriched_with_stored_locations(session_factory, db, settings, user_a):
    video = await seed_favorites(session_factory, user_a)
    pizza, cafe = video.locations[0], video.locations[1]
    text = "Lộ trình:\n" + json.dumps(
        route_payload("Cộng Cà Phê", "Pizza 4P's Ben Thanh", "Nhà hàng lạ"), ensure_ascii=False,
    )
    gemini = FakeGemini(text=text)
    planner = RoutePlannerService(gemini, settings=settings)

    route = await planner.generate_optimal_route(db, user_a)

    assert [item.order for item in route.route] == [1, 2, 3]
    first, second, third = route.route
    assert first.location_id == str(cafe.id)
    assert first.location.name == "Cộng Cà Phê"
    # matched by the Google name
    assert second.location_id == str(pizza.id)
    assert second.location.latitude == pytest.approx(10.77)
    assert second.estimated_duration == "45 phút"
    # unknown stop stays in the route, unlinked
    assert third.location_id == ""
    assert third.location is None
    assert route.summary.total_duration == "4 giờ"
    assert route.recommendations == ["Mang nước", "Đi sớm"]
    assert gemini.text_calls[0]["model"] == settings.gemini_route_model


async def test_overnight_route_keeps_hotels(session_factory, db, settings, user_a):
    await seed_favorites(session_factory, user_a)
    text = json.dumps(route_payload("Pizza 4P's", overnight=True))
    planner = RoutePlannerService(FakeGemini(text=text), settings=settings)

    route = await planner.generate_optimal_route(
        db, user_a, RoutePreferences(time_of_day="evening", duration=10),
    )

    [hotel] = route.route[0].hotel_recommendations
    assert hotel.name == "Rex Hotel"
    assert hotel.rating == "4.5/5"
    assert hotel.booking_url == "https://example.com"
    assert route.summary.is_overnight_trip is True
    assert route.summary.total_estimated_cost == "250 USD"


async def test_no_favourites_is_rejected_before_calling_ai(session_factory, db, settings, user_a, user_b):
    await seed_favorites(session_factory, user_b)
    gemini = FakeGemini(text=json.dumps(route_payload("Pizza 4P's")))
    planner = RoutePlannerService(gemini, settings=settings)

    with pytest.raises(NoFavoritesError) as exc_info:
        await planner.generate_optimal_route(db, user_a)

    assert exc_info.value.message == "No favorite locations found"
    assert exc_info.value.status_code == 400
    assert gemini.text_calls == []


async def test_unparseable_ai_answer_fails_the_request(session_factory, db, settings, user_a):
    await seed_favorites(session_factory, user_a)
    planner = RoutePlannerService(FakeGemini(text="Tôi không hiểu yêu cầu."), settings=settings)

    with pytest.raises(ResponseParseError):
        await planner.generate_optimal_route(db, user_a)


async def test_ai_error_propagates(session_factory, db, settings, user_a):
    await seed_favorites(session_factory, user_a)
    planner = RoutePlannerService(FakeGemini(error=ExternalServiceError("down")), settings=settings)

    with pytest.raises(ExternalServiceError):
        await planner.generate_optimal_route(db, user_a)


async def test_audio_route_sends_recording_to_audio_model(session_factory, db, settings, user_a):
    await seed_favorites(session_factory, user_a)
    gemini = FakeGemini(text=json.dumps(route_payload("Pizza 4P's", overnight=True)))
    planner = RoutePlannerService(gemini, settings=settings)

    route = await planner.generate_optimal_route_with_audio(db, user_a, b"OggS-voice", "audio/ogg")

    assert isinstance(route, AudioRouteResponse)
    assert route.audio_url is None
    assert route.route[0].location is not None
    call = gemini.text_calls[0]
    assert call["model"] == settings.gemini_route_audio_model
    assert call["audio_bytes"] == b"OggS-voice"
    assert call["audio_mime_type"] == "audio/ogg"
