"""Tests for the in-memory and JSON-file repositories."""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from turnos_core.exceptions import RepositoryConflictError, RepositoryError
from turnos_core.records import Shift, ShiftRecord
from turnos_core.repository import (
    InMemoryRepository,
    JsonFileRepository,
    RepositoryPort,
    compute_stats,
    in_range,
)


@pytest.fixture(params=["memory", "json"])
def any_repo(request, tmp_path: Path, clock) -> RepositoryPort:
    if request.param == "memory":
        return InMemoryRepository(clock=clock)
    return JsonFileRepository(tmp_path / "store" / "turnos.json", clock=clock)


class TestRepositoryContract:
    def test_first_upsert_inserts(self, any_repo: RepositoryPort) -> None:
        result = any_repo.upsert(ShiftRecord(date="2025-09-03", shift=Shift.MORNING))
        assert result.was_insert is True
        assert result.record.created_at == result.record.updated_at
        assert any_repo.find_by_identity("2025-09-03") == result.record

    def test_second_upsert_updates(self, any_repo: RepositoryPort) -> None:
        first = any_repo.upsert(ShiftRecord(date="2025-09-03", shift=Shift.MORNING)).record
        result = any_repo.upsert(ShiftRecord(date="2025-09-03", is_vacation=True, notes="playa"))
        assert result.was_insert is False
        assert result.record.created_at == first.created_at
        assert result.record.updated_at > first.updated_at
        assert result.record.shift is None
        assert result.record.is_vacation is True
        assert result.record.notes == "playa"

    def test_bulk_upsert_reports_per_item(self, any_repo: RepositoryPort) -> None:
        any_repo.upsert(ShiftRecord(date="2025-09-01", shift=Shift.NIGHT))
        result = any_repo.bulk_upsert(
            [
                ShiftRecord(date="2025-09-01", shift=Shift.MORNING),
                ShiftRecord(date="2025-09-02", shift=Shift.AFTERNOON),
                ShiftRecord(date="2025-09-02", shift=Shift.AFTERNOON, person_id="ana"),
            ]
        )
        assert [item.was_insert for item in result.per_item] == [False, True, True]
        assert (result.inserted, result.updated) == (2, 1)

    def test_find_by_range_is_ordered(self, any_repo: RepositoryPort) -> None:
        any_repo.bulk_upsert(
            [
                ShiftRecord(date="2025-09-05", shift=Shift.NIGHT),
                ShiftRecord(date="2025-09-01", shift=Shift.MORNING, person_id="luis"),
                ShiftRecord(date="2025-09-01", shift=Shift.MORNING, person_id="ana"),
            ]
        )
        records = any_repo.find_by_range("2025-09-01", "2025-09-30")
        assert [(r.date, r.person_id) for r in records] == [
            ("2025-09-01", "ana"),
            ("2025-09-01", "luis"),
            ("2025-09-05", None),
        ]

    def test_stats(self, any_repo: RepositoryPort) -> None:
        any_repo.bulk_upsert(
            [
                ShiftRecord(date="2025-09-01", shift=Shift.MORNING),
                ShiftRecord(date="2025-09-02", shift=Shift.MORNING, is_vacation=True),
                ShiftRecord(date="2025-09-03", is_vacation=True, person_id="ana"),
            ]
        )
        stats = any_repo.stats()
        assert stats.total == 3
        assert stats.per_shift["mañana"] == 2
        assert stats.vacation_count == 2
        assert any_repo.stats(person_id="ana").total == 1


class TestJsonFileRepository:
    def test_documents_survive_a_new_instance(self, tmp_path: Path, clock) -> None:
        path = tmp_path / "turnos.json"
        JsonFileRepository(path, clock=clock).upsert(
            ShiftRecord(date="2025-09-03", shift=Shift.AFTERNOON, notes="Cobertura", person_id="ana")
        )
        record = JsonFileRepository(path).find_by_identity("2025-09-03", "ana")
        assert record is not None
        assert record.shift is Shift.AFTERNOON
        assert record.notes == "Cobertura"
        assert record.created_at == datetime(2025, 9, 1, 8, 0, tzinfo=timezone.utc)

    def test_file_layout_uses_document_ids(self, tmp_path: Path) -> None:
        path = tmp_path / "turnos.json"
        JsonFileRepository(path).upsert(ShiftRecord(date="2025-09-03", shift=Shift.MORNING, person_id="ana"))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert list(data) == ["2025-09-03_ana"]
        doc = data["2025-09-03_ana"]
        assert doc["id"] == "2025-09-03_ana"
        assert doc["shift"] == "mañana"
        assert doc["personId"] == "ana"
        assert doc["isVacation"] is False

    def test_missing_file_reads_as_empty(self, tmp_path: Path) -> None:
        repo = JsonFileRepository(tmp_path / "absent.json")
        assert repo.find_by_identity("2025-09-03") is None
        assert repo.stats().total == 0

    def test_corrupted_file_raises_repository_error(self, tmp_path: Path) -> None:
        path = tmp_path / "turnos.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RepositoryError) as exc_info:
            JsonFileRepository(path).find_by_identity("2025-09-03")
        assert exc_info.value.__cause__ is not None

    def test_concurrent_modification_raises_conflict(self, tmp_path: Path, monkeypatch) -> None:
        path = tmp_path / "turnos.json"
        repo = JsonFileRepository(path)
        repo.upsert(ShiftRecord(date="2025-09-01", shift=Shift.MORNING))

        original_load = repo._load

        def load_then_race():
            docs, etag = original_load()
            JsonFileRepository(path).upsert(ShiftRecord(date="2025-09-02", shift=Shift.NIGHT))
            return docs, etag

        monkeypatch.setattr(repo, "_load", load_then_race)
        with pytest.raises(RepositoryConflictError):
            repo.upsert(ShiftRecord(date="2025-09-03", shift=Shift.AFTERNOON))
        assert JsonFileRepository(path).find_by_identity("2025-09-03") is None

    def test_parallel_writers_never_corrupt_the_store(self, tmp_path: Path) -> None:
        path = tmp_path / "turnos.json"
        stored: list[str] = []
        unexpected: list[Exception] = []

        def writer(person: str) -> None:
            repo = JsonFileRepository(path)
            for day in range(1, 31):
                date = f"2025-09-{day:02d}"
                try:
                    repo.upsert(ShiftRecord(date=date, shift=Shift.NIGHT, person_id=person))
                    stored.append(f"{date}_{person}")
                except RepositoryConflictError:
                    continue
                except Exception as exc:
                    unexpected.append(exc)

        threads = [threading.Thread(target=writer, args=(f"p{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert unexpected == []
        assert stored
        records = JsonFileRepository(path).find_by_range("2025-09-01", "2025-09-30")
        assert {r.record_id for r in records} == set(stored)
        assert not path.with_name(path.name + ".lock").exists()
        assert list(tmp_path.glob("*.tmp")) == []

    def test_held_lock_raises_conflict_after_timeout(self, tmp_path: Path) -> None:
        path = tmp_path / "turnos.json"
        repo = JsonFileRepository(path, lock_timeout=0.05)
        repo.lock_path.write_text("", encoding="utf-8")
        with pytest.raises(RepositoryConflictError, match="locked"):
            repo.upsert(ShiftRecord(date="2025-09-03", shift=Shift.MORNING))
        assert not path.exists()


class TestHelpers:
    def test_in_range(self) -> None:
        assert in_range("2025-09-03", "2025-09-01", "2025-09-30")
        assert in_range("2025-09-01", "2025-09-01", "2025-09-01")
        assert not in_range("2025-10-01", None, "2025-09-30")
        assert in_range("1999-01-01", None, None)

    def test_compute_stats_empty(self) -> None:
        stats = compute_stats([])
        assert stats.total == 0
        assert stats.per_shift == {"mañana": 0, "tarde": 0, "noche": 0}
        assert stats.vacation_count == 0

    def test_in_memory_len(self) -> None:
        repo = InMemoryRepository()
        repo.upsert(ShiftRecord(date="2025-09-03"))
        repo.upsert(ShiftRecord(date="2025-09-03"))
        assert len(repo) == 1
