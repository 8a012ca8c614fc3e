"""Bulk ingestion of shift rows.

Pipeline shape:
- normalize each raw row -> candidate record
- validate each candidate in LENIENT mode
- store every passing record with one bulk upsert
- merge storage results and row rejections into a BatchReport

A failing row never aborts the batch: it is counted as skipped and its
messages are reported as warnings. Storage failures (RepositoryError) are not
caught here.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from turnos_core.exceptions import NormalizationError
from turnos_core.normalize import normalize_row
from turnos_core.records import ShiftRecord
from turnos_core.repository import RepositoryPort
from turnos_core.rules import ValidationMode, validate

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Outcome of one ingestion call.

    Attributes:
        inserted: Rows whose identity did not exist before.
        updated: Rows that replaced an existing record.
        skipped: Rows rejected before storage.
        warnings: Messages in row order, prefixed "Row N: ".
        items: Stored records, in input order.

    """

    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    warnings: list[str] = field(default_factory=list)
    items: list[ShiftRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.skipped

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "warnings": list(self.warnings),
            "items": [r.to_dict() for r in self.items],
        }


def _row_message(row_number: int, message: str) -> str:
    return f"Row {row_number}: {message}"


class IngestionPipeline:
    """Normalize, validate and bulk-upsert batches of raw rows.

    Example:
        >>> from turnos_core.repository import InMemoryRepository
        >>> pipeline = IngestionPipeline(InMemoryRepository())
        >>> report = pipeline.ingest([{"fecha": "3/9/2025", "turno": "mañana"}])
        >>> (report.inserted, report.updated, report.skipped)
        (1, 0, 0)

    """

    def __init__(self, repository: RepositoryPort) -> None:
        self.repository = repository

    def ingest(
        self,
        rows: Sequence[Mapping[str, Any]],
        row_numbers: Sequence[int] | None = None,
    ) -> BatchReport:
        """Ingest a batch of raw rows.

        Args:
            rows: Decoded rows, each a mapping of column name to value.
            row_numbers: Label used for each row in "Row N:" messages, such
                as its spreadsheet row. Defaults to the 1-based position.

        Returns:
            BatchReport where inserted + updated + skipped == len(rows).

        Raises:
            ValueError: If row_numbers and rows differ in length.
            RepositoryError: If the bulk upsert fails.

        """
        if row_numbers is None:
            row_numbers = range(1, len(rows) + 1)
        elif len(row_numbers) != len(rows):
            raise ValueError(f"got {len(row_numbers)} row numbers for {len(rows)} rows")

        report = BatchReport()
        # (row number, message) pairs, sorted back into row order at the end
        messages: list[tuple[int, str]] = []
        to_store: list[ShiftRecord] = []

        for row_number, raw in zip(row_numbers, rows):
            try:
                candidate = normalize_row(raw)
            except NormalizationError as exc:
                logger.warning("Skipping row %d: %s", row_number, exc)
                report.skipped += 1
                messages.append((row_number, _row_message(row_number, str(exc))))
                continue

            result = validate(candidate, ValidationMode.LENIENT)
            messages.extend((row_number, _row_message(row_number, m)) for m in result.messages)
            if not result.ok:
                logger.warning("Skipping row %d: %s", row_number, "; ".join(result.errors))
                report.skipped += 1
                continue

            to_store.append(result.record)  # type: ignore[arg-type]

        if to_store:
            outcome = self.repository.bulk_upsert(to_store)
            report.inserted = outcome.inserted
            report.updated = outcome.updated
            report.items = [item.record for item in outcome.per_item]
        else:
            logger.debug("No valid rows to store")

        messages.sort(key=lambda m: m[0])
        report.warnings = [msg for _, msg in messages]

        logger.info(
            "Ingested %d rows: %d inserted, %d updated, %d skipped, %d warnings",
            len(rows),
            report.inserted,
            report.updated,
            report.skipped,
            len(report.warnings),
        )
        return report


def ingest_rows(
    rows: Sequence[Mapping[str, Any]],
    repository: RepositoryPort,
    row_numbers: Sequence[int] | None = None,
) -> BatchReport:
    """Convenience wrapper around ``IngestionPipeline(repository).ingest(rows)``."""
    return IngestionPipeline(repository).ingest(rows, row_numbers)
