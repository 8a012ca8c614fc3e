"""Tests for the bulk ingestion pipeline and its batch reports."""

import unicodedata

import pytest

from turnos_core.exceptions import RepositoryError
from turnos_core.ingest import BatchReport, IngestionPipeline, ingest_rows
from turnos_core.records import Shift
from turnos_core.repository import InMemoryRepository


def _record_bulk_calls(repo: InMemoryRepository, monkeypatch) -> list[list]:
    """Wrap repo.bulk_upsert, recording the records passed to each call."""
    calls: list[list] = []
    original = repo.bulk_upsert

    def recording_bulk_upsert(records):
        calls.append(list(records))
        return original(records)

    monkeypatch.setattr(repo, "bulk_upsert", recording_bulk_upsert)
    return calls


class TestIngestScenarios:
    def test_valid_row_on_empty_store_is_inserted(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest(
            [{"date": "2025-09-03", "shift": "mañana", "vacation": False}]
        )
        assert (report.inserted, report.updated, report.skipped) == (1, 0, 0)
        assert report.warnings == []
        assert repo.find_by_identity("2025-09-03").shift is Shift.MORNING

    def test_shift_with_vacation_is_stored_with_warning(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest(
            [{"date": "2025-09-03", "shift": "mañana", "vacation": True}]
        )
        assert report.skipped == 0
        assert report.inserted == 1
        assert len(report.warnings) == 1
        assert "shift and vacation specified simultaneously" in report.warnings[0]
        stored = repo.find_by_identity("2025-09-03")
        assert stored.is_vacation is True
        assert stored.shift is Shift.MORNING

    def test_invalid_date_is_skipped_with_warning(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest(
            [{"date": "invalid-date", "shift": "mañana", "vacation": False}]
        )
        assert report.inserted == 0
        assert report.skipped == 1
        assert len(report.warnings) == 1
        assert "date format" in report.warnings[0]
        assert report.warnings[0].startswith("Row 1: ")
        assert len(repo) == 0


class TestIngestBatches:
    def test_existing_identities_are_updated(self, repo: InMemoryRepository) -> None:
        pipeline = IngestionPipeline(repo)
        pipeline.ingest([{"fecha": "2025-09-03", "turno": "mañana"}])
        report = pipeline.ingest(
            [
                {"fecha": "3/9/2025", "turno": "tarde"},
                {"fecha": "4/9/2025", "turno": "noche"},
            ]
        )
        assert (report.inserted, report.updated, report.skipped) == (1, 1, 0)
        assert repo.find_by_identity("2025-09-03").shift is Shift.AFTERNOON

    def test_update_preserves_created_at(self, repo: InMemoryRepository) -> None:
        pipeline = IngestionPipeline(repo)
        first = pipeline.ingest([{"fecha": "2025-09-03", "turno": "mañana"}]).items[0]
        second = pipeline.ingest([{"fecha": "2025-09-03", "turno": "noche"}]).items[0]
        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at

    def test_failed_rows_do_not_affect_later_rows(self, repo: InMemoryRepository) -> None:
        rows = [
            {"fecha": "2025-09-01", "turno": "mañana"},
            {"fecha": "nope", "turno": "mañana"},
            {"fecha": "2025-09-03", "turno": "madrugada"},
            {"fecha": "2025-09-04", "turno": "noche", "vacaciones": "sí"},
            {"fecha": "2025-09-05", "vacaciones": 1},
        ]
        report = IngestionPipeline(repo).ingest(rows)
        assert report.inserted == 3
        assert report.skipped == 2
        assert report.total == len(rows)
        assert [w.split(":")[0] for w in report.warnings] == ["Row 2", "Row 3", "Row 4"]
        assert [r.date for r in report.items] == ["2025-09-01", "2025-09-04", "2025-09-05"]

    def test_all_rows_skipped_is_a_valid_report(self, repo: InMemoryRepository, monkeypatch) -> None:
        calls = _record_bulk_calls(repo, monkeypatch)
        report = IngestionPipeline(repo).ingest([{"fecha": "x"}, {"turno": "noche"}])
        assert (report.inserted, report.updated, report.skipped) == (0, 0, 2)
        assert len(report.warnings) == 2
        assert report.items == []
        assert calls == []

    def test_valid_rows_are_stored_with_one_bulk_call(self, repo: InMemoryRepository, monkeypatch) -> None:
        calls = _record_bulk_calls(repo, monkeypatch)
        rows = [{"fecha": f"2025-09-{d:02d}", "turno": "tarde"} for d in range(1, 8)]
        report = IngestionPipeline(repo).ingest(rows)
        assert len(calls) == 1
        assert len(calls[0]) == 7
        assert report.inserted == 7

    def test_messages_follow_rule_order_within_a_row(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest(
            [{"fecha": "2025-02-30", "turno": "noche", "vacaciones": "si"}]
        )
        assert report.skipped == 1
        assert len(report.warnings) == 2
        assert "not a calendar date" in report.warnings[0]
        assert "simultaneously" in report.warnings[1]

    def test_decomposed_shift_labels_are_accepted(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest(
            [{"fecha": "2025-09-03", "turno": unicodedata.normalize("NFD", "Mañana")}]
        )
        assert (report.inserted, report.skipped) == (1, 0)
        assert report.warnings == []
        assert repo.find_by_identity("2025-09-03").shift is Shift.MORNING

    def test_custom_row_numbers_label_warnings(self, repo: InMemoryRepository) -> None:
        rows = [{"fecha": "2025-09-01", "turno": "tarde"}, {"fecha": "nope"}]
        report = IngestionPipeline(repo).ingest(rows, row_numbers=[2, 7])
        assert report.warnings[0].startswith("Row 7: ")

    def test_row_numbers_must_match_rows(self, repo: InMemoryRepository) -> None:
        with pytest.raises(ValueError):
            IngestionPipeline(repo).ingest([{"fecha": "2025-09-01"}], row_numbers=[1, 2])

    def test_duplicate_identities_in_one_batch_last_write_wins(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest(
            [
                {"fecha": "2025-09-03", "turno": "mañana"},
                {"fecha": "03/09/2025", "turno": "noche"},
            ]
        )
        assert (report.inserted, report.updated) == (1, 1)
        assert repo.find_by_identity("2025-09-03").shift is Shift.NIGHT

    def test_person_id_is_part_of_identity(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest(
            [
                {"fecha": "2025-09-03", "turno": "mañana", "personaId": "ana"},
                {"fecha": "2025-09-03", "turno": "noche", "personaId": "luis"},
                {"fecha": "2025-09-03", "turno": "tarde"},
            ]
        )
        assert report.inserted == 3
        assert repo.find_by_identity("2025-09-03", "ana").shift is Shift.MORNING
        assert repo.find_by_identity("2025-09-03").shift is Shift.AFTERNOON

    @pytest.mark.parametrize("n_rows", [0, 1, 10])
    def test_counts_always_sum_to_row_count(self, repo: InMemoryRepository, n_rows: int) -> None:
        rows = [
            {"fecha": "bad" if i % 3 == 0 else f"{i}/9/2025", "turno": "tarde"}
            for i in range(1, n_rows + 1)
        ]
        report = ingest_rows(rows, repo)
        assert report.inserted + report.updated + report.skipped == n_rows


class TestIngestErrors:
    def test_repository_errors_propagate(self, repo: InMemoryRepository, monkeypatch) -> None:
        def failing_bulk_upsert(records):
            raise RepositoryError("store down")

        monkeypatch.setattr(repo, "bulk_upsert", failing_bulk_upsert)
        with pytest.raises(RepositoryError, match="store down"):
            IngestionPipeline(repo).ingest([{"fecha": "2025-09-03", "turno": "tarde"}])


class TestBatchReport:
    def test_to_dict(self, repo: InMemoryRepository) -> None:
        report = IngestionPipeline(repo).ingest([{"fecha": "2025-09-03", "turno": "tarde", "notas": "ok"}])
        data = report.to_dict()
        assert data["inserted"] == 1
        assert data["items"][0]["shift"] == "tarde"
        assert data["items"][0]["notes"] == "ok"
        assert data["items"][0]["createdAt"] is not None

    def test_empty_report(self) -> None:
        report = BatchReport()
        assert report.total == 0
        assert report.to_dict() == {
            "inserted": 0,
            "updated": 0,
            "skipped": 0,
            "warnings": [],
            "items": [],
        }
