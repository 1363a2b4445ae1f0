"""
Service facade.

Exposes the logical operations the request layer (FastAPI routes, CLI) calls:
- `record_location`, `recent_locations`
- `check_nearby`
- `cluster_day`, `dates_with_checkpoints`
- `register_couple`, `delete_couple` (stand-ins for the external pairing service)

`build_service(settings)` wires the configured storage backend. All calendar computations
use `settings.app.timezone`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from lovestory.clustering import engine
from lovestory.config.settings import Settings
from lovestory.core.env import resolve_home_path
from lovestory.core.errors import InvalidInput
from lovestory.core.time import ensure_tz, now_in, parse_day, parse_year_month
from lovestory.domain.models import ClusterDayResult, Couple, LocationSample, NearbyResult
from lovestory.proximity.detector import ProximityDetector
from lovestory.storage.base import CheckpointLedger, CoupleDirectory, LocationStore
from lovestory.storage.jsonl import JsonCoupleDirectory, JsonlCheckpointLedger, JsonlLocationStore
from lovestory.storage.memory import MemoryCheckpointLedger, MemoryCoupleDirectory, MemoryLocationStore

logger = logging.getLogger(__name__)


def _validate_coordinates(lat: float, lon: float) -> tuple[float, float]:
    try:
        lat_f, lon_f = float(lat), float(lon)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"coordinates must be numbers, got ({lat!r}, {lon!r})") from e
    if not (-90.0 <= lat_f <= 90.0) or not (-180.0 <= lon_f <= 180.0):
        raise InvalidInput(f"coordinates out of range: ({lat_f}, {lon_f})")
    return lat_f, lon_f


class GeoService:
    def __init__(
        self,
        *,
        locations: LocationStore,
        ledger: CheckpointLedger,
        directory: CoupleDirectory,
        timezone: str,
        clock: Callable[[], datetime] | None = None,
        max_sample_age: timedelta | None = None,
    ):
        self.locations = locations
        self.ledger = ledger
        self.directory = directory
        self.timezone = timezone
        self._clock = clock or (lambda: now_in(timezone))
        self.detector = ProximityDetector(
            directory=directory,
            locations=locations,
            ledger=ledger,
            clock=self._clock,
            max_sample_age=max_sample_age,
        )

    def record_location(
        self, user_id: str, lat: float, lon: float, captured_at: datetime | None = None
    ) -> LocationSample:
        if not user_id:
            raise InvalidInput("user_id is required")
        lat_f, lon_f = _validate_coordinates(lat, lon)
        when = ensure_tz(captured_at, self.timezone) if captured_at is not None else self._clock()
        sample = self.locations.append(user_id, lat_f, lon_f, when)
        logger.debug("Recorded location user=%s seq=%d", user_id, sample.seq)
        return sample

    def recent_locations(self, user_id: str, limit: int = 100) -> list[LocationSample]:
        if limit < 1:
            raise InvalidInput("limit must be >= 1")
        return self.locations.recent(user_id, limit)

    def check_nearby(self, couple_id: str) -> NearbyResult:
        return self.detector.check(couple_id)

    def cluster_day(self, couple_id: str, day: str) -> ClusterDayResult:
        return engine.cluster_day(self.ledger, couple_id, parse_day(day), self.timezone)

    def dates_with_checkpoints(self, couple_id: str, year_month: str) -> list[int]:
        year, month = parse_year_month(year_month)
        return engine.dates_with_checkpoints(self.ledger, couple_id, year, month, self.timezone)

    def register_couple(self, couple_id: str, user_a: str, user_b: str) -> Couple:
        try:
            couple = Couple(couple_id=couple_id, user_a=user_a, user_b=user_b)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        return self.directory.register(couple)

    def delete_couple(self, couple_id: str) -> dict[str, int]:
        """Remove the couple record and purge both members' samples and the couple's checkpoints."""
        user_a, user_b = self.directory.get_couple_members(couple_id)
        purged = {
            "checkpoints": self.ledger.purge_couple(couple_id),
            "samples": self.locations.purge_owner(user_a) + self.locations.purge_owner(user_b),
        }
        self.directory.remove(couple_id)
        self.detector.forget(couple_id)
        logger.info("Deleted couple=%s purged=%s", couple_id, purged)
        return purged


def build_service(settings: Settings, *, clock: Callable[[], datetime] | None = None) -> GeoService:
    """Create a `GeoService` backed by the configured storage backend."""
    if settings.storage.backend == "jsonl":
        base_dir = resolve_home_path(settings.storage.dir)
        locations: LocationStore = JsonlLocationStore(base_dir)
        ledger: CheckpointLedger = JsonlCheckpointLedger(base_dir)
        directory: CoupleDirectory = JsonCoupleDirectory(base_dir)
    else:
        locations = MemoryLocationStore()
        ledger = MemoryCheckpointLedger()
        directory = MemoryCoupleDirectory()

    max_age = settings.proximity.max_sample_age_seconds
    return GeoService(
        locations=locations,
        ledger=ledger,
        directory=directory,
        timezone=settings.app.timezone,
        clock=clock,
        max_sample_age=timedelta(seconds=max_age) if max_age else None,
    )

