"""
Storage contracts.

Three collections back the geo core:
- `location_samples`: append-only raw GPS fixes, keyed by (owner_user_id, captured_at)
- `colocation_checkpoints`: append-only couple-level checkpoints, keyed by (couple_id, captured_at)
- `couples`: the directory seam standing in for the external pairing service

Backends implement these protocols (`memory`, `jsonl`). Reads return records ordered by
`(captured_at, seq)`; `seq` is the insertion counter and breaks timestamp ties (last write wins).
Backend faults surface as `StorageUnavailable`; empty lookups as `NotFound`.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Protocol

from lovestory.core.time import day_bounds
from lovestory.domain.models import CoLocationCheckpoint, Couple, LocationSample


class LocationStore(Protocol):
    def append(
        self, owner_user_id: str, lat: float, lon: float, captured_at: datetime
    ) -> LocationSample: ...

    def latest(self, owner_user_id: str) -> LocationSample: ...

    def range(
        self, owner_user_ids: Iterable[str], start: datetime, end: datetime
    ) -> list[LocationSample]: ...

    def recent(self, owner_user_id: str, limit: int = 100) -> list[LocationSample]: ...

    def purge_owner(self, owner_user_id: str) -> int: ...


class CheckpointLedger(Protocol):
    def append_checkpoint(
        self, couple_id: str, lat: float, lon: float, captured_at: datetime
    ) -> CoLocationCheckpoint: ...

    def most_recent(self, couple_id: str) -> CoLocationCheckpoint: ...

    def between(
        self, couple_id: str, start: datetime, end: datetime
    ) -> list[CoLocationCheckpoint]: ...

    def purge_couple(self, couple_id: str) -> int: ...


class CoupleDirectory(Protocol):
    def get_couple_members(self, couple_id: str) -> tuple[str, str]: ...

    def register(self, couple: Couple) -> Couple: ...

    def remove(self, couple_id: str) -> Couple: ...


def sort_key(record: LocationSample | CoLocationCheckpoint) -> tuple[datetime, int]:
    return record.captured_at, record.seq


def for_day(
    ledger: CheckpointLedger, couple_id: str, day: date, timezone: str
) -> list[CoLocationCheckpoint]:
    """Checkpoints of one calendar day `[00:00, 24:00)` in `timezone`, ascending."""
    start, end = day_bounds(day, timezone)
    return ledger.between(couple_id, start, end)
