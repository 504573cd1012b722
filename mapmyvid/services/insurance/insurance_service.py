"""
Map My Vid Insurance Service: static travel-insurance recommendations.

Packages are read once from a YAML file keyed by lower-case country name;
countries without their own list fall back to ``default``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from mapmyvid.core.config import get_settings
from mapmyvid.core.exceptions import ConfigurationError, NotFoundError, ValidationError
from mapmyvid.schemas.schemas import InsurancePackage

logger = logging.getLogger(__name__)

BUNDLED_DATA_FILE = Path(__file__).resolve().parents[2] / "data" / "insurance_packages.yaml"
DEFAULT_KEY = "default"
MAX_RECOMMENDATIONS = 3


class InsuranceService:
    """Lookups over the insurance package catalogue."""

    def __init__(self, data_file: Optional[str] = None):
        path = Path(data_file or get_settings().insurance_data_file or BUNDLED_DATA_FILE)
        self._packages = self._load_packages(path)

    @staticmethod
    def _load_packages(path: Path) -> Dict[str, List[InsurancePackage]]:
        if not path.exists():
            raise ConfigurationError(f"Insurance data file not found: {path}")
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        packages = {
            country.lower(): [InsurancePackage.model_validate(p) for p in items or []]
            for country, items in raw.items()
        }
        if DEFAULT_KEY not in packages:
            raise ConfigurationError(f"Insurance data in {path} has no '{DEFAULT_KEY}' packages")
        logger.info(f"Loaded insurance packages for {len(packages) - 1} countries from {path}")
        return packages

    def get_recommendations(self, country: str, city: Optional[str] = None) -> List[InsurancePackage]:
        """Best-rated packages for a destination. ``city`` is accepted but not used yet."""
        if not country or not country.strip():
            raise ValidationError("Country parameter is required")
        packages = self._packages.get(country.strip().lower()) or self._packages[DEFAULT_KEY]
        ranked = sorted(packages, key=lambda p: p.rating, reverse=True)
        return ranked[:MAX_RECOMMENDATIONS]

    def get_all_countries(self) -> List[str]:
        return [country for country in self._packages if country != DEFAULT_KEY]

    def get_package_by_id(self, package_id: str) -> InsurancePackage:
        for packages in self._packages.values():
            for package in packages:
                if package.id == package_id:
                    return package
        raise NotFoundError("Insurance package not found")
