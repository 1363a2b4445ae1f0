"""
Domain models (Pydantic).

These types are the contract between layers:
- persisted records (`LocationSample`, `CoLocationCheckpoint`, `Couple`)
- engine outputs (`NearbyResult`, `Cluster`, `ClusterDayResult`)
- API payloads (`LocationIn`, `CoupleIn`)

Persisted records are frozen: the stores are append-only and a written sample is never
edited in place.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("captured_at must be timezone-aware")
    return value


class LocationSample(BaseModel):
    """One raw GPS fix posted by a user."""

    model_config = ConfigDict(frozen=True)

    owner_user_id: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    captured_at: datetime
    seq: int = Field(0, ge=0)

    @field_validator("captured_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return _require_aware(value)


class CoLocationCheckpoint(BaseModel):
    """A confirmed moment when both members of a couple were within the proximity threshold."""

    model_config = ConfigDict(frozen=True)

    couple_id: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    captured_at: datetime
    seq: int = Field(0, ge=0)

    @field_validator("captured_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return _require_aware(value)


class Couple(BaseModel):
    """Directory record linking two users."""

    model_config = ConfigDict(frozen=True)

    couple_id: str = Field(..., min_length=1)
    user_a: str = Field(..., min_length=1)
    user_b: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _distinct_members(self) -> "Couple":
        if self.user_a == self.user_b:
            raise ValueError("a couple needs two different users")
        return self


NearbyStatus = Literal["ok", "data_unavailable"]
CheckpointOutcome = Literal["written", "suppressed", "failed", "not_nearby", "skipped"]


class NearbyResult(BaseModel):
    """Outcome of one proximity check.

    `checkpoint` reports what happened to the co-location ledger:
    - `written`: a new checkpoint was appended
    - `suppressed`: a checkpoint already exists inside the de-duplication window
    - `failed`: the append failed (distance and is_nearby are still valid)
    - `not_nearby`: members were too far apart, nothing to record
    - `skipped`: no distance could be computed (`status="data_unavailable"`)
    """

    status: NearbyStatus = "ok"
    is_nearby: bool = False
    distance_m: float | None = None
    checkpoint: CheckpointOutcome = "skipped"


class Cluster(BaseModel):
    """One visited place: first absorbed point plus how many checkpoints fell into it."""

    representative_point: GeoPoint
    member_count: int = Field(..., ge=1)


class ClusterDayResult(BaseModel):
    couple_id: str
    day: date
    timezone: str
    clusters: list[Cluster] = Field(default_factory=list)
    noise_count: int = 0
    checkpoint_count: int = 0


class LocationIn(BaseModel):
    """Request body for posting a raw GPS fix."""

    user_id: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CoupleIn(BaseModel):
    couple_id: str = Field(..., min_length=1)
    user_a: str = Field(..., min_length=1)
    user_b: str = Field(..., min_length=1)
