"""
Map My Vid Place Resolver: geocodes AI-extracted location names.

For each candidate an ordered, de-duplicated list of query variants is built
(name, name + city, name + address ..., their accent-stripped forms, and
keyword-suffixed forms). Each variant is tried against Google Places Text
Search, then Find Place From Text; the first hit wins. Running out of variants
is an ordinary outcome and is returned as ``PlaceNotFound``, never raised.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Union

import httpx
from prometheus_client import Counter

from mapmyvid.core.config import Settings, get_settings
from mapmyvid.core.exceptions import ConfigurationError
from mapmyvid.schemas.schemas import PlaceMatch, PlaceNotFound
from mapmyvid.services.places.locales import LocaleProfile, get_locale_profile, strip_accents

logger = logging.getLogger(__name__)

MAPS_PLACE_URL = "https://www.google.com/maps/place/?q=place_id:{place_id}"
FIND_PLACE_FIELDS = "place_id,name,formatted_address,geometry,types,rating"

PLACE_LOOKUPS = Counter(
    "mapmyvid_place_lookups_total",
    "Place resolutions by outcome",
    ["outcome"],
)

PlaceResult = Union[PlaceMatch, PlaceNotFound]


# ── Address gate & query generation ──────────────────────────────────────

def is_searchable_address(address: Optional[str], profile: LocaleProfile) -> bool:
    """True when the address names a street, a district/ward and a city."""
    if not address or not address.strip():
        return False
    folded = strip_accents(address).lower()
    return all(
        profile.matches(category, folded)
        for category in ("street", "district", "city")
    )


def _join(*parts: Optional[str]) -> str:
    return ", ".join(p.strip() for p in parts if p and p.strip())


def generate_queries(
    name: str,
    address: Optional[str],
    city: Optional[str],
    country: Optional[str],
    profile: LocaleProfile,
) -> List[str]:
    """Build the ordered query variants for one location, without duplicates."""
    country = country or profile.default_country
    if not is_searchable_address(address, profile):
        address = None

    base = [
        _join(name),
        _join(name, city),
        _join(name, city, country),
    ]
    if address:
        base += [
            _join(name, address),
            _join(name, address, city),
            _join(name, address, city, country),
            _join(address),
            _join(address, city),
        ]

    candidates = list(base)
    candidates += [strip_accents(q) for q in base]
    place_hint = " ".join(p.strip() for p in (city, country) if p and p.strip())
    for keyword in profile.hint_keywords:
        candidates.append(_join(f"{name.strip()} {keyword}", place_hint))

    # dict keeps insertion order
    return [q for q in dict.fromkeys(" ".join(c.split()) for c in candidates) if q]


# ── Resolver ─────────────────────────────────────────────────────────────

class PlaceResolver:
    """Google Places lookups with multi-query fallback and bounded concurrency."""

    def __init__(
        self,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        profile: Optional[LocaleProfile] = None,
        settings: Optional[Settings] = None,
    ):
        if not api_key:
            raise ConfigurationError("Google Maps API key is not set")
        self.settings = settings or get_settings()
        self.api_key = api_key
        self.profile = profile or get_locale_profile(self.settings.places_locale)
        self.base_url = self.settings.places_base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=self.settings.places_timeout_seconds)
        self._semaphore = asyncio.Semaphore(self.settings.places_max_concurrency)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def search_place(
        self,
        name: str,
        address: Optional[str] = None,
        city: Optional[str] = None,
        country: Optional[str] = None,
    ) -> PlaceResult:
        queries = generate_queries(name, address, city, country, self.profile)
        async with self._semaphore:
            for query in queries:
                place = await self._text_search(query)
                if place is None:
                    place = await self._find_place(query)
                if place is not None:
                    logger.info(f"Resolved '{name}' via query '{query}' -> {place.place_id}")
                    PLACE_LOOKUPS.labels(outcome="found").inc()
                    return place

        logger.info(f"No place found for '{name}' after {len(queries)} queries")
        PLACE_LOOKUPS.labels(outcome="not_found").inc()
        return PlaceNotFound(
            name=name,
            reason=f"Không tìm thấy địa điểm: {name}",
            queries_tried=len(queries),
        )

    # ── Places endpoints ─────────────────────────────────────────────────

    async def _text_search(self, query: str) -> Optional[PlaceMatch]:
        params = {"query": query, "key": self.api_key, "language": self.profile.language}
        if self.profile.region:
            params["region"] = self.profile.region
        data = await self._get("textsearch", params, query)
        if data and data.get("status") == "OK" and data.get("results"):
            return self._to_match(data["results"][0], query)
        return None

    async def _find_place(self, query: str) -> Optional[PlaceMatch]:
        params = {
            "input": query,
            "inputtype": "textquery",
            "fields": FIND_PLACE_FIELDS,
            "key": self.api_key,
            "language": self.profile.language,
        }
        data = await self._get("findplacefromtext", params, query)
        if data and data.get("status") == "OK" and data.get("candidates"):
            return self._to_match(data["candidates"][0], query)
        return None

    async def _get(self, endpoint: str, params: dict, query: str) -> Optional[dict]:
        """One Places call. Any failure is logged and treated as a miss."""
        try:
            response = await self.http.get(f"{self.base_url}/{endpoint}/json", params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"{endpoint} failed for '{query}': {e}")
            return None

    @staticmethod
    def _to_match(place: dict, query: str) -> Optional[PlaceMatch]:
        try:
            location = place["geometry"]["location"]
            return PlaceMatch(
                name=place.get("name") or "",
                formatted_address=place.get("formatted_address") or "",
                lat=location["lat"],
                lng=location["lng"],
                place_id=place["place_id"],
                rating=place.get("rating"),
                types=place.get("types") or [],
                google_maps_url=MAPS_PLACE_URL.format(place_id=place["place_id"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed place result for '{query}': {e}")
            return None
