from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from app.core.deps import CurrentUser, SoilServiceDep
from app.schemas.soil import (
    ClearCacheResponse,
    MapUnitDetails,
    SoilFeatureCollection,
    SoilProviderRead,
    SoilQuery,
    SoilSummary,
    WmsConfig,
)
from app.services.soil.exceptions import (
    MapUnitNotFoundError,
    ProviderNotFoundError,
    SdaTimeoutError,
    SoilDataError,
)

router = APIRouter(prefix="/soil", tags=["soil"])


def _http_error(exc: SoilDataError) -> HTTPException:
    if isinstance(exc, (ProviderNotFoundError, MapUnitNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, SdaTimeoutError):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


# ── Public ───────────────────────────────────────────────────────────────────


@router.get("/providers", response_model=list[SoilProviderRead])
async def list_providers(service: SoilServiceDep):
    """Registered soil data providers and their WMS overlay configuration."""
    return service.get_providers()


@router.get("/wms-config", response_model=WmsConfig)
async def get_wms_config(service: SoilServiceDep, provider: Optional[str] = Query(None)):
    try:
        return service.get_wms_config(provider)
    except SoilDataError as exc:
        raise _http_error(exc)


# ── Authenticated ────────────────────────────────────────────────────────────


@router.post("/summary", response_model=SoilSummary)
async def get_soil_summary(body: SoilQuery, current_user: CurrentUser, service: SoilServiceDep):
    try:
        return await service.get_soil_summary(body)
    except SoilDataError as exc:
        raise _http_error(exc)


@router.get("/map-unit/{mukey}", response_model=MapUnitDetails)
async def get_map_unit_details(
    mukey: str,
    current_user: CurrentUser,
    service: SoilServiceDep,
    provider: Optional[str] = Query(None),
):
    try:
        return await service.get_map_unit_details(mukey, provider)
    except SoilDataError as exc:
        raise _http_error(exc)


@router.post("/geometries", response_model=SoilFeatureCollection)
async def get_soil_geometries(body: SoilQuery, current_user: CurrentUser, service: SoilServiceDep):
    try:
        return await service.get_soil_geometries(body)
    except SoilDataError as exc:
        raise _http_error(exc)


@router.post("/clear-cache", response_model=ClearCacheResponse)
async def clear_cache(body: SoilQuery, current_user: CurrentUser, service: SoilServiceDep):
    """Drop the cached summary for a polygon so the next request refetches it."""
    try:
        await service.clear_cache(body.polygon, body.provider)
    except SoilDataError as exc:
        raise _http_error(exc)
    return ClearCacheResponse(success=True, message="Cache cleared")
