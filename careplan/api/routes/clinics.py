"""GET /api/clinics: markers for the clinic-locator map."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query

from careplan.api.schemas import ClinicOut, ClinicsResponse, ErrorResponse, MapCenter
from careplan.config import settings
from careplan.exceptions import ClinicDataError
from careplan.services import clinics as clinics_service

logger = logging.getLogger("careplan.api.clinics")

router = APIRouter(prefix="/api", tags=["clinics"])


@router.get(
    "/clinics",
    summary="List clinics",
    description=(
        "Return clinics in directory order with the default map centre and "
        "zoom. `specialty` is a case-insensitive keyword matched against the "
        "clinic name and its text attributes."
    ),
    response_model=ClinicsResponse,
    responses={500: {"model": ErrorResponse, "description": "Clinic data unavailable"}},
)
async def list_clinics(
    specialty: str | None = Query(
        None, max_length=100, description="Keyword such as 'cardiology'"
    ),
    limit: int | None = Query(None, ge=1, le=500, description="Maximum clinics returned"),
):
    directory = clinics_service.clinic_directory
    try:
        if not directory.loaded:
            await asyncio.to_thread(directory.all)
        found = directory.search(specialty=specialty, limit=limit)
    except ClinicDataError as exc:
        logger.error("Clinic data unavailable: %s", exc)
        raise HTTPException(status_code=500, detail="Clinic data unavailable")

    return ClinicsResponse(
        center=MapCenter(lat=settings.map_center_lat, lon=settings.map_center_lon),
        zoom=settings.map_zoom,
        specialty=specialty,
        count=len(found),
        clinics=[ClinicOut(**c.to_dict()) for c in found],
    )
