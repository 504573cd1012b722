"""
Map My Vid API: Insurance routes.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from mapmyvid.api.deps import get_insurance_service
from mapmyvid.schemas.schemas import InsurancePackage
from mapmyvid.services.insurance.insurance_service import InsuranceService

router = APIRouter(prefix="/insurance", tags=["Insurance"])


@router.get("", response_model=List[InsurancePackage])
async def get_recommendations(
    country: str = Query(..., min_length=1),
    city: Optional[str] = None,
    insurance: InsuranceService = Depends(get_insurance_service),
):
    """Top-rated travel insurance packages for a destination country."""
    return insurance.get_recommendations(country, city)


@router.get("/countries", response_model=List[str])
async def get_countries(insurance: InsuranceService = Depends(get_insurance_service)):
    return insurance.get_all_countries()


@router.get("/{package_id}", response_model=InsurancePackage)
async def get_package(
    package_id: str,
    insurance: InsuranceService = Depends(get_insurance_service),
):
    return insurance.get_package_by_id(package_id)
