"""
In-process storage backend.

Records live in per-owner lists guarded by one lock per store. Used by tests, demos and
single-process deployments that do not need persistence across restarts.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterable
from datetime import datetime

from lovestory.core.errors import NotFound
from lovestory.domain.models import CoLocationCheckpoint, Couple, LocationSample
from lovestory.storage.base import sort_key


class MemoryLocationStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._by_owner: dict[str, list[LocationSample]] = {}

    def append(
        self, owner_user_id: str, lat: float, lon: float, captured_at: datetime
    ) -> LocationSample:
        with self._lock:
            sample = LocationSample(
                owner_user_id=owner_user_id,
                latitude=lat,
                longitude=lon,
                captured_at=captured_at,
                seq=next(self._seq),
            )
            self._by_owner.setdefault(owner_user_id, []).append(sample)
        return sample

    def latest(self, owner_user_id: str) -> LocationSample:
        with self._lock:
            samples = list(self._by_owner.get(owner_user_id, ()))
        if not samples:
            raise NotFound(f"no location sample for user {owner_user_id!r}")
        return max(samples, key=sort_key)

    def range(
        self, owner_user_ids: Iterable[str], start: datetime, end: datetime
    ) -> list[LocationSample]:
        with self._lock:
            out = [
                s
                for owner in set(owner_user_ids)
                for s in self._by_owner.get(owner, ())
                if start <= s.captured_at < end
            ]
        return sorted(out, key=sort_key)

    def recent(self, owner_user_id: str, limit: int = 100) -> list[LocationSample]:
        with self._lock:
            samples = list(self._by_owner.get(owner_user_id, ()))
        return sorted(samples, key=sort_key, reverse=True)[: max(0, int(limit))]

    def purge_owner(self, owner_user_id: str) -> int:
        with self._lock:
            return len(self._by_owner.pop(owner_user_id, []))


class MemoryCheckpointLedger:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._by_couple: dict[str, list[CoLocationCheckpoint]] = {}

    def append_checkpoint(
        self, couple_id: str, lat: float, lon: float, captured_at: datetime
    ) -> CoLocationCheckpoint:
        with self._lock:
            checkpoint = CoLocationCheckpoint(
                couple_id=couple_id,
                latitude=lat,
                longitude=lon,
                captured_at=captured_at,
                seq=next(self._seq),
            )
            self._by_couple.setdefault(couple_id, []).append(checkpoint)
        return checkpoint

    def most_recent(self, couple_id: str) -> CoLocationCheckpoint:
        with self._lock:
            checkpoints = list(self._by_couple.get(couple_id, ()))
        if not checkpoints:
            raise NotFound(f"no checkpoint for couple {couple_id!r}")
        return max(checkpoints, key=sort_key)

    def between(
        self, couple_id: str, start: datetime, end: datetime
    ) -> list[CoLocationCheckpoint]:
        with self._lock:
            out = [c for c in self._by_couple.get(couple_id, ()) if start <= c.captured_at < end]
        return sorted(out, key=sort_key)

    def purge_couple(self, couple_id: str) -> int:
        with self._lock:
            return len(self._by_couple.pop(couple_id, []))


class MemoryCoupleDirectory:
    def __init__(self, couples: Iterable[Couple] = ()) -> None:
        self._lock = threading.Lock()
        self._couples: dict[str, Couple] = {c.couple_id: c for c in couples}

    def get_couple_members(self, couple_id: str) -> tuple[str, str]:
        with self._lock:
            couple = self._couples.get(couple_id)
        if couple is None:
            raise NotFound(f"unknown couple {couple_id!r}")
        return couple.user_a, couple.user_b

    def register(self, couple: Couple) -> Couple:
        with self._lock:
            self._couples[couple.couple_id] = couple
        return couple

    def remove(self, couple_id: str) -> Couple:
        with self._lock:
            couple = self._couples.pop(couple_id, None)
        if couple is None:
            raise NotFound(f"unknown couple {couple_id!r}")
        return couple
