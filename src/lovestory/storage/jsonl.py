"""
JSON-lines storage backend.

Each collection is one `.jsonl` file under the configured storage directory:
- `location_samples.jsonl`
- `colocation_checkpoints.jsonl`
- `couples.json` (small mapping, rewritten on change)

Appends are a single `write()` of one line. Purges rewrite the file through a temp file and
`Path.replace`, so readers never observe a half-written collection. The insertion counter is
recovered from the file on startup so `seq` stays monotonic across restarts.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from lovestory.core.errors import NotFound, StorageUnavailable
from lovestory.domain.models import CoLocationCheckpoint, Couple, LocationSample
from lovestory.storage.base import sort_key

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

SAMPLES_FILE = "location_samples.jsonl"
CHECKPOINTS_FILE = "colocation_checkpoints.jsonl"
COUPLES_FILE = "couples.json"


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)


def _load_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise StorageUnavailable(f"cannot read {path}: {e}") from e


class _JsonlCollection:
    """Append-only JSON-lines file of one record type."""

    def __init__(self, path: Path, model: type[R]):
        self._path = path
        self._model = model
        self._lock = threading.Lock()
        self._seq = max((r.seq for r in self._iter_records()), default=0)

    @property
    def path(self) -> Path:
        return self._path

    def _iter_records(self) -> Iterator[Any]:
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                for lineno, line in enumerate(fh, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield self._model.model_validate_json(line)
                    except ValidationError:
                        # A torn last line after a crash; keep the rest readable.
                        logger.warning("Skipping unreadable record %s:%d", self._path, lineno)
        except OSError as e:
            raise StorageUnavailable(f"cannot read {self._path}: {e}") from e

    def append(self, **fields: Any) -> Any:
        with self._lock:
            record = self._model(seq=self._seq + 1, **fields)
            line = record.model_dump_json() + "\n"
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as fh:
                    fh.write(line)
            except OSError as e:
                raise StorageUnavailable(f"cannot append to {self._path}: {e}") from e
            self._seq = record.seq
        return record

    def select(self, predicate: Callable[[Any], bool]) -> list[Any]:
        with self._lock:
            return sorted((r for r in self._iter_records() if predicate(r)), key=sort_key)

    def delete_where(self, predicate: Callable[[Any], bool]) -> int:
        with self._lock:
            records = list(self._iter_records())
            keep = [r for r in records if not predicate(r)]
            removed = len(records) - len(keep)
            if not removed:
                return 0
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            try:
                tmp.write_text("".join(r.model_dump_json() + "\n" for r in keep), encoding="utf-8")
                tmp.replace(self._path)
            except OSError as e:
                raise StorageUnavailable(f"cannot rewrite {self._path}: {e}") from e
            return removed


class JsonlLocationStore:
    def __init__(self, base_dir: Path):
        self._records = _JsonlCollection(Path(base_dir) / SAMPLES_FILE, LocationSample)

    def append(
        self, owner_user_id: str, lat: float, lon: float, captured_at: datetime
    ) -> LocationSample:
        return self._records.append(
            owner_user_id=owner_user_id, latitude=lat, longitude=lon, captured_at=captured_at
        )

    def latest(self, owner_user_id: str) -> LocationSample:
        samples = self._records.select(lambda s: s.owner_user_id == owner_user_id)
        if not samples:
            raise NotFound(f"no location sample for user {owner_user_id!r}")
        return samples[-1]

    def range(
        self, owner_user_ids: Iterable[str], start: datetime, end: datetime
    ) -> list[LocationSample]:
        owners = set(owner_user_ids)
        return self._records.select(
            lambda s: s.owner_user_id in owners and start <= s.captured_at < end
        )

    def recent(self, owner_user_id: str, limit: int = 100) -> list[LocationSample]:
        samples = self._records.select(lambda s: s.owner_user_id == owner_user_id)
        return samples[::-1][: max(0, int(limit))]

    def purge_owner(self, owner_user_id: str) -> int:
        return self._records.delete_where(lambda s: s.owner_user_id == owner_user_id)


class JsonlCheckpointLedger:
    def __init__(self, base_dir: Path):
        self._records = _JsonlCollection(Path(base_dir) / CHECKPOINTS_FILE, CoLocationCheckpoint)

    def append_checkpoint(
        self, couple_id: str, lat: float, lon: float, captured_at: datetime
    ) -> CoLocationCheckpoint:
        return self._records.append(
            couple_id=couple_id, latitude=lat, longitude=lon, captured_at=captured_at
        )

    def most_recent(self, couple_id: str) -> CoLocationCheckpoint:
        checkpoints = self._records.select(lambda c: c.couple_id == couple_id)
        if not checkpoints:
            raise NotFound(f"no checkpoint for couple {couple_id!r}")
        return checkpoints[-1]

    def between(
        self, couple_id: str, start: datetime, end: datetime
    ) -> list[CoLocationCheckpoint]:
        return self._records.select(
            lambda c: c.couple_id == couple_id and start <= c.captured_at < end
        )

    def purge_couple(self, couple_id: str) -> int:
        return self._records.delete_where(lambda c: c.couple_id == couple_id)


class JsonCoupleDirectory:
    def __init__(self, base_dir: Path):
        self._path = Path(base_dir) / COUPLES_FILE
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Couple]:
        payload = _load_json(self._path, default={})
        if not isinstance(payload, dict):
            raise StorageUnavailable(f"invalid couples file {self._path}")
        try:
            return {cid: Couple.model_validate(raw) for cid, raw in payload.items()}
        except ValidationError as e:
            raise StorageUnavailable(f"invalid couple record in {self._path}: {e}") from e

    def _save(self, couples: dict[str, Couple]) -> None:
        try:
            _write_json(self._path, {cid: c.model_dump(mode="json") for cid, c in couples.items()})
        except OSError as e:
            raise StorageUnavailable(f"cannot write {self._path}: {e}") from e

    def get_couple_members(self, couple_id: str) -> tuple[str, str]:
        with self._lock:
            couple = self._load().get(couple_id)
        if couple is None:
            raise NotFound(f"unknown couple {couple_id!r}")
        return couple.user_a, couple.user_b

    def register(self, couple: Couple) -> Couple:
        with self._lock:
            couples = self._load()
            couples[couple.couple_id] = couple
            self._save(couples)
        return couple

    def remove(self, couple_id: str) -> Couple:
        with self._lock:
            couples = self._load()
            couple = couples.pop(couple_id, None)
            if couple is None:
                raise NotFound(f"unknown couple {couple_id!r}")
            self._save(couples)
        return couple
