"""Storage port for shift records and its adapters.

The ingestion pipeline and the record service only talk to ``RepositoryPort``.
Adapters decide insert vs. update per identity, stamp ``created_at`` /
``updated_at`` and map records to whatever their store needs (document ids,
etags).

Adapters:
    InMemoryRepository: dict-backed, for tests and embedding.
    JsonFileRepository: one JSON file holding all documents, written
        atomically under a lock file with a content etag check against
        concurrent writers.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from turnos_core.exceptions import RepositoryConflictError, RepositoryError
from turnos_core.records import Shift, ShiftRecord, record_id

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Seconds a writer waits for the store lock file
DEFAULT_LOCK_TIMEOUT = 10.0
LOCK_POLL_INTERVAL = 0.01


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UpsertResult:
    """Stored record plus whether the identity was new."""

    record: ShiftRecord
    was_insert: bool


@dataclass
class BulkUpsertResult:
    """Per-item results of a bulk upsert, in input order."""

    per_item: list[UpsertResult] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(1 for r in self.per_item if r.was_insert)

    @property
    def updated(self) -> int:
        return sum(1 for r in self.per_item if not r.was_insert)


@dataclass
class ShiftStats:
    """Aggregate counts over a set of records.

    Attributes:
        total: Number of records.
        per_shift: Count per shift label; every shift is present.
        vacation_count: Number of records flagged as vacation.

    """

    total: int
    per_shift: dict[str, int]
    vacation_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "perShift": dict(self.per_shift),
            "vacationCount": self.vacation_count,
        }


def compute_stats(records: Iterable[ShiftRecord]) -> ShiftStats:
    """Count records per shift and vacation days."""
    df = pd.DataFrame(
        [{"shift": r.shift.value if r.shift else None, "is_vacation": r.is_vacation} for r in records],
        columns=["shift", "is_vacation"],
    )
    counts = df["shift"].value_counts()
    return ShiftStats(
        total=len(df),
        per_shift={s.value: int(counts.get(s.value, 0)) for s in Shift},
        vacation_count=int(df["is_vacation"].astype(bool).sum()),
    )


def in_range(date: str, date_from: str | None, date_to: str | None) -> bool:
    """Inclusive range check on YYYY-MM-DD strings; None bounds are open."""
    if date_from is not None and date < date_from:
        return False
    if date_to is not None and date > date_to:
        return False
    return True


def select_records(
    records: Iterable[ShiftRecord],
    date_from: str | None,
    date_to: str | None,
    person_id: str | None,
) -> list[ShiftRecord]:
    """Filter records by inclusive date bounds and, if given, person."""
    return [
        r
        for r in records
        if in_range(r.date, date_from, date_to) and (person_id is None or r.person_id == person_id)
    ]


def merge_record(existing: ShiftRecord | None, incoming: ShiftRecord, now: datetime) -> ShiftRecord:
    """Apply an upsert: keep created_at of an existing record, refresh updated_at."""
    created_at = existing.created_at if existing is not None and existing.created_at else now
    return replace(incoming, created_at=created_at, updated_at=now)


class RepositoryPort(ABC):
    """Abstract document store for shift records.

    Identity is (date, person_id); ``person_id=None`` is its own identity in
    point operations and means "any person" in range and stats reads.
    """

    @abstractmethod
    def find_by_identity(self, date: str, person_id: str | None = None) -> ShiftRecord | None:
        """Return the record for an identity, or None."""

    @abstractmethod
    def find_by_range(
        self,
        date_from: str,
        date_to: str,
        person_id: str | None = None,
    ) -> list[ShiftRecord]:
        """Return records with date_from <= date <= date_to, ordered by date."""

    @abstractmethod
    def upsert(self, record: ShiftRecord) -> UpsertResult:
        """Insert or update one record keyed by its identity."""

    @abstractmethod
    def bulk_upsert(self, records: Sequence[ShiftRecord]) -> BulkUpsertResult:
        """Insert or update many records as one write, applied in order."""

    @abstractmethod
    def stats(
        self,
        date_from: str | None = None,
        date_to: str | None = None,
        person_id: str | None = None,
    ) -> ShiftStats:
        """Aggregate counts over the store, optionally bounded."""


def _sort_key(record: ShiftRecord) -> tuple[str, str]:
    return (record.date, record.person_id or "")


class InMemoryRepository(RepositoryPort):
    """Dict-backed repository keyed by document id.

    Example:
        >>> repo = InMemoryRepository()
        >>> repo.upsert(ShiftRecord(date="2025-09-03", shift=Shift.MORNING)).was_insert
        True

    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now
        self._docs: dict[str, ShiftRecord] = {}

    def __len__(self) -> int:
        return len(self._docs)

    def find_by_identity(self, date: str, person_id: str | None = None) -> ShiftRecord | None:
        return self._docs.get(record_id(date, person_id))

    def find_by_range(
        self,
        date_from: str,
        date_to: str,
        person_id: str | None = None,
    ) -> list[ShiftRecord]:
        selected = select_records(self._docs.values(), date_from, date_to, person_id)
        return sorted(selected, key=_sort_key)

    def upsert(self, record: ShiftRecord) -> UpsertResult:
        key = record.record_id
        existing = self._docs.get(key)
        stored = merge_record(existing, record, self._clock())
        self._docs[key] = stored
        return UpsertResult(record=stored, was_insert=existing is None)

    def bulk_upsert(self, records: Sequence[ShiftRecord]) -> BulkUpsertResult:
        return BulkUpsertResult(per_item=[self.upsert(r) for r in records])

    def stats(
        self,
        date_from: str | None = None,
        date_to: str | None = None,
        person_id: str | None = None,
    ) -> ShiftStats:
        return compute_stats(select_records(self._docs.values(), date_from, date_to, person_id))


class JsonFileRepository(RepositoryPort):
    """Repository persisting all documents in one JSON file.

    File layout::

        {
          "2025-09-03": {"id": "2025-09-03", "date": "2025-09-03", "shift": "mañana", ...},
          "2025-09-03_ana": {...}
        }

    Writes go to a uniquely named temporary file that replaces the store.
    The replace happens while holding ``<store>.lock``, a sidecar file
    created exclusively. Under the lock the current file content is hashed
    and compared with the hash seen when it was loaded; a mismatch means
    another writer got there first and raises RepositoryConflictError, as
    does failing to take the lock within ``lock_timeout`` seconds. There is
    no retry.
    """

    def __init__(
        self,
        path: str | Path,
        clock: Clock | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------
    def _read_bytes(self) -> bytes | None:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise RepositoryError(f"Cannot read store {self.path}: {exc}") from exc

    @staticmethod
    def _etag(raw: bytes | None) -> str | None:
        return hashlib.sha256(raw).hexdigest() if raw is not None else None

    def _load(self) -> tuple[dict[str, ShiftRecord], str | None]:
        raw = self._read_bytes()
        if raw is None or not raw.strip():
            return {}, self._etag(raw)
        try:
            data = json.loads(raw.decode("utf-8"))
            docs = {key: ShiftRecord.from_dict(doc) for key, doc in data.items()}
        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError, KeyError, ValueError) as exc:
            raise RepositoryError(f"Corrupted store {self.path}: {exc}") from exc
        return docs, self._etag(raw)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                break
            except FileExistsError:
                if time.monotonic() >= deadline:
                    raise RepositoryConflictError(
                        f"Store {self.path} is locked by another writer ({self.lock_path})"
                    ) from None
                time.sleep(LOCK_POLL_INTERVAL)
            except OSError as exc:
                raise RepositoryError(f"Cannot lock store {self.path}: {exc}") from exc
        os.close(fd)
        try:
            yield
        finally:
            self.lock_path.unlink(missing_ok=True)

    def _save(self, docs: dict[str, ShiftRecord], etag: str | None) -> None:
        payload = {key: {"id": key, **rec.to_dict()} for key, rec in sorted(docs.items())}
        text = json.dumps(payload, ensure_ascii=False, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RepositoryError(f"Cannot create store directory {self.path.parent}: {exc}") from exc

        with self._locked():
            if self._etag(self._read_bytes()) != etag:
                raise RepositoryConflictError(
                    f"Store {self.path} was modified by another writer; reload and try again"
                )
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name + ".", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(text)
                os.replace(tmp_name, self.path)
            except OSError as exc:
                Path(tmp_name).unlink(missing_ok=True)
                raise RepositoryError(f"Cannot write store {self.path}: {exc}") from exc
        logger.debug("Saved %d documents to %s", len(docs), self.path)

    # ------------------------------------------------------------------
    # RepositoryPort
    # ------------------------------------------------------------------
    def find_by_identity(self, date: str, person_id: str | None = None) -> ShiftRecord | None:
        docs, _ = self._load()
        return docs.get(record_id(date, person_id))

    def find_by_range(
        self,
        date_from: str,
        date_to: str,
        person_id: str | None = None,
    ) -> list[ShiftRecord]:
        docs, _ = self._load()
        selected = select_records(docs.values(), date_from, date_to, person_id)
        return sorted(selected, key=_sort_key)

    def upsert(self, record: ShiftRecord) -> UpsertResult:
        return self.bulk_upsert([record]).per_item[0]

    def bulk_upsert(self, records: Sequence[ShiftRecord]) -> BulkUpsertResult:
        docs, etag = self._load()
        now = self._clock()
        result = BulkUpsertResult()
        for record in records:
            key = record.record_id
            existing = docs.get(key)
            stored = merge_record(existing, record, now)
            docs[key] = stored
            result.per_item.append(UpsertResult(record=stored, was_insert=existing is None))
        self._save(docs, etag)
        return result

    def stats(
        self,
        date_from: str | None = None,
        date_to: str | None = None,
        person_id: str | None = None,
    ) -> ShiftStats:
        docs, _ = self._load()
        return compute_stats(select_records(docs.values(), date_from, date_to, person_id))
