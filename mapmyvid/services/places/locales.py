"""
Locale profiles for place search.

A profile bundles everything about place search that depends on local address
conventions: the indicator patterns used to decide whether an AI-suggested
address is specific enough to search with, the hint keywords appended to
disambiguate points of interest, and the Places API language/region bias.

Patterns are matched against lower-cased text with diacritics stripped, so
they are written without accents.
"""
from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from mapmyvid.core.exceptions import ConfigurationError

# Characters NFD does not decompose
_EXTRA_FOLDS = str.maketrans({"đ": "d", "Đ": "D", "ø": "o", "Ø": "O", "ł": "l", "Ł": "L"})


def strip_accents(text: str) -> str:
    """Remove diacritics and collapse whitespace: ``"Phở Hòa"`` -> ``"Pho Hoa"``."""
    decomposed = unicodedata.normalize("NFD", text.translate(_EXTRA_FOLDS))
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return " ".join(stripped.split())


@dataclass(frozen=True)
class LocaleProfile:
    code: str
    language: str
    region: Optional[str]
    default_country: str
    street_patterns: Tuple[str, ...]
    district_patterns: Tuple[str, ...]
    city_patterns: Tuple[str, ...]
    major_cities: Tuple[str, ...] = ()
    hint_keywords: Tuple[str, ...] = ()
    _compiled: Dict[str, Tuple[re.Pattern, ...]] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def __post_init__(self):
        city_regexes = self.city_patterns + tuple(
            rf"\b{re.escape(name)}\b" for name in self.major_cities
        )
        self._compiled.update({
            "street": tuple(re.compile(p) for p in self.street_patterns),
            "district": tuple(re.compile(p) for p in self.district_patterns),
            "city": tuple(re.compile(p) for p in city_regexes),
        })

    def matches(self, category: str, folded_text: str) -> bool:
        return any(regex.search(folded_text) for regex in self._compiled[category])


# ── Profiles ─────────────────────────────────────────────────────────────

VIETNAM = LocaleProfile(
    code="vi",
    language="vi",
    region="vn",
    default_country="Vietnam",
    street_patterns=(
        r"^\s*\d+[a-z]?(?:/\d+[a-z]?)*\b",     # leading house number: "65", "12/3a"
        r"\bduong\b", r"\bd\.", r"\bpho\b", r"\bhem\b", r"\bngo\b",
        r"\bngach\b", r"\bkiet\b", r"\bstreet\b", r"\bst\.?\b", r"\broad\b",
    ),
    district_patterns=(
        r"\bquan\b", r"\bq\.?\s*\d+\b", r"\bhuyen\b", r"\bphuong\b",
        r"\bp\.?\s*\d+\b", r"\bxa\b", r"\bthi xa\b", r"\bthi tran\b",
        r"\bdistrict\b", r"\bward\b",
    ),
    city_patterns=(
        r"\bthanh pho\b", r"\btp\b", r"\btinh\b", r"\bcity\b", r"\bprovince\b",
    ),
    major_cities=(
        "ho chi minh", "hcm", "tphcm", "sai gon", "saigon", "ha noi", "hanoi",
        "da nang", "hai phong", "can tho", "hue", "nha trang", "da lat",
        "vung tau", "hoi an", "phu quoc", "quy nhon", "ha long",
    ),
    hint_keywords=("quán", "cửa hàng", "tiệm", "nhà hàng", "quán ăn"),
)

ENGLISH = LocaleProfile(
    code="en",
    language="en",
    region=None,
    default_country="",
    street_patterns=(
        r"^\s*\d+[a-z]?\b",
        r"\bstreet\b", r"\bst\.?\b", r"\broad\b", r"\brd\.?\b", r"\bavenue\b",
        r"\bave\.?\b", r"\bboulevard\b", r"\bblvd\.?\b", r"\blane\b",
        r"\bdrive\b", r"\bway\b", r"\bplace\b",
    ),
    district_patterns=(
        r"\bdistrict\b", r"\bward\b", r"\bborough\b", r"\bcounty\b",
        r"\bsuburb\b", r"\bneighbou?rhood\b", r"\bquarter\b",
    ),
    city_patterns=(r"\bcity\b", r"\btown\b", r"\bprovince\b", r"\bstate\b"),
    hint_keywords=("restaurant", "shop"),
)

LOCALE_PROFILES: Dict[str, LocaleProfile] = {p.code: p for p in (VIETNAM, ENGLISH)}


def get_locale_profile(code: str) -> LocaleProfile:
    try:
        return LOCALE_PROFILES[code.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown places locale '{code}' (known: {', '.join(sorted(LOCALE_PROFILES))})"
        ) from None
