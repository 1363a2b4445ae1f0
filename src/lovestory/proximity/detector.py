from __future__ import annotations

# Proximity detection for one couple.
#
# Flow per check:
# - resolve both members through the couple directory
# - read each member's latest sample (a derived query over the append-only store)
# - haversine distance, nearby when <= PROXIMITY_THRESHOLD_M
# - when nearby, append at most one checkpoint per DEDUP_WINDOW
#
# "No data yet" is a result, not an error. Only read-side storage faults propagate.

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from lovestory.core.errors import DataUnavailable, NotFound, StorageUnavailable
from lovestory.core.geo import distance_m
from lovestory.domain.models import LocationSample, NearbyResult
from lovestory.storage.base import CheckpointLedger, CoupleDirectory, LocationStore

logger = logging.getLogger(__name__)

PROXIMITY_THRESHOLD_M = 100.0
DEDUP_WINDOW = timedelta(seconds=60)


class _KeyedLocks:
    """One lock per key, created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def discard(self, key: str) -> None:
        with self._guard:
            self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ProximityDetector:
    def __init__(
        self,
        *,
        directory: CoupleDirectory,
        locations: LocationStore,
        ledger: CheckpointLedger,
        clock: Callable[[], datetime],
        max_sample_age: timedelta | None = None,
    ):
        self._directory = directory
        self._locations = locations
        self._ledger = ledger
        self._clock = clock
        self._max_sample_age = max_sample_age
        self._couple_locks = _KeyedLocks()

    def forget(self, couple_id: str) -> None:
        """Drop per-couple state once the couple is deleted."""
        self._couple_locks.discard(couple_id)

    def _latest_usable(self, user_id: str, now: datetime) -> LocationSample:
        try:
            sample = self._locations.latest(user_id)
        except NotFound as e:
            raise DataUnavailable(f"user {user_id!r} has no location yet") from e
        if self._max_sample_age is not None and sample.captured_at < now - self._max_sample_age:
            raise DataUnavailable(f"latest location of user {user_id!r} is stale")
        return sample

    def check(self, couple_id: str) -> NearbyResult:
        """Classify the couple as nearby or not, recording a checkpoint when they are."""
        now = self._clock()
        try:
            user_a, user_b = self._directory.get_couple_members(couple_id)
            sample_a = self._latest_usable(user_a, now)
            sample_b = self._latest_usable(user_b, now)
        except (NotFound, DataUnavailable) as e:
            logger.info("Nearby check couple=%s: %s", couple_id, e)
            return NearbyResult(status="data_unavailable")

        distance = distance_m(
            sample_a.latitude, sample_a.longitude, sample_b.latitude, sample_b.longitude
        )
        is_nearby = distance <= PROXIMITY_THRESHOLD_M

        outcome = "not_nearby"
        if is_nearby:
            outcome = self._record_checkpoint(couple_id, sample_a, now)

        logger.info(
            "Nearby check couple=%s is_nearby=%s distance_m=%.1f checkpoint=%s",
            couple_id,
            is_nearby,
            distance,
            outcome,
        )
        return NearbyResult(status="ok", is_nearby=is_nearby, distance_m=distance, checkpoint=outcome)

    def _record_checkpoint(self, couple_id: str, anchor: LocationSample, now: datetime) -> str:
        # Read-then-append must not interleave for the same couple.
        with self._couple_locks.get(couple_id):
            try:
                last = self._ledger.most_recent(couple_id)
            except NotFound:
                last = None
            except StorageUnavailable:
                logger.exception("Checkpoint lookup failed for couple=%s", couple_id)
                return "failed"

            if last is not None and last.captured_at >= now - DEDUP_WINDOW:
                logger.debug(
                    "Checkpoint suppressed couple=%s last=%s", couple_id, last.captured_at.isoformat()
                )
                return "suppressed"

            try:
                self._ledger.append_checkpoint(couple_id, anchor.latitude, anchor.longitude, now)
            except StorageUnavailable:
                logger.exception("Checkpoint write failed for couple=%s", couple_id)
                return "failed"
        return "written"
