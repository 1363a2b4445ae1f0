"""
API routes.

Endpoints:
- POST `/api/gps`: store one raw GPS fix for a user.
- GET  `/api/gps/users/{user_id}`: a user's most recent fixes (newest first).
- GET  `/api/couples/{couple_id}/nearby`: proximity check (+ best-effort checkpoint).
- GET  `/api/couples/{couple_id}/clusters?date=YYYY-MM-DD`: places visited together that day.
- GET  `/api/couples/{couple_id}/dates/{year_month}`: days of the month with checkpoints.
- POST/DELETE `/api/dev/couples`: development stand-ins for the pairing service.
- GET  `/api/health`

Authentication happens in front of this service; ids arrive already verified.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from lovestory.config.settings import get_settings
from lovestory.core.errors import InvalidInput, NotFound, StorageUnavailable
from lovestory.domain.models import (
    ClusterDayResult,
    Couple,
    CoupleIn,
    LocationIn,
    LocationSample,
    NearbyResult,
)
from lovestory.service import GeoService, build_service

router = APIRouter()


@lru_cache
def _service() -> GeoService:
    return build_service(get_settings())


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, InvalidInput):
        return HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)})
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": str(e)})
    if isinstance(e, StorageUnavailable):
        return HTTPException(status_code=503, detail={"code": "STORAGE_UNAVAILABLE", "message": str(e)})
    return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": str(e)})


@router.get("/api/health")
def get_health() -> dict[str, Any]:
    settings = get_settings()
    return {
        "status": "ok",
        "timezone": settings.app.timezone,
        "storage_backend": settings.storage.backend,
    }


@router.post("/api/gps", response_model=LocationSample, status_code=201)
def post_gps(payload: LocationIn) -> LocationSample:
    """Store a raw GPS fix stamped with the service clock."""
    try:
        return _service().record_location(payload.user_id, payload.latitude, payload.longitude)
    except Exception as e:
        raise _http_error(e) from e


@router.get("/api/gps/users/{user_id}", response_model=list[LocationSample])
def get_user_gps(user_id: str, limit: int | None = Query(default=None, ge=1)) -> list[LocationSample]:
    settings = get_settings()
    effective = min(int(limit or settings.api.recent_limit_default), settings.api.recent_limit_max)
    try:
        return _service().recent_locations(user_id, effective)
    except Exception as e:
        raise _http_error(e) from e


@router.get("/api/couples/{couple_id}/nearby", response_model=NearbyResult)
def get_nearby(couple_id: str) -> NearbyResult:
    """Whether both members are within 100 m of each other right now."""
    try:
        return _service().check_nearby(couple_id)
    except Exception as e:
        raise _http_error(e) from e


@router.get("/api/couples/{couple_id}/clusters", response_model=ClusterDayResult)
def get_clusters(couple_id: str, date: str = Query(..., description="YYYY-MM-DD")) -> ClusterDayResult:
    try:
        return _service().cluster_day(couple_id, date)
    except Exception as e:
        raise _http_error(e) from e


@router.get("/api/couples/{couple_id}/dates/{year_month}", response_model=list[int])
def get_dates(couple_id: str, year_month: str) -> list[int]:
    try:
        return _service().dates_with_checkpoints(couple_id, year_month)
    except Exception as e:
        raise _http_error(e) from e


@router.post("/api/dev/couples", response_model=Couple, status_code=201)
def post_dev_couple(payload: CoupleIn) -> Couple:
    try:
        return _service().register_couple(payload.couple_id, payload.user_a, payload.user_b)
    except Exception as e:
        raise _http_error(e) from e


@router.delete("/api/dev/couples/{couple_id}")
def delete_dev_couple(couple_id: str) -> dict[str, Any]:
    try:
        purged = _service().delete_couple(couple_id)
    except Exception as e:
        raise _http_error(e) from e
    return {"couple_id": couple_id, "purged": purged}
