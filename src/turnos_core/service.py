"""Single-record read/write operations on shift records.

Unlike the bulk pipeline, writes here are STRICT: a shift together with a
vacation flag is rejected instead of stored with a warning. Errors are not
caught; they propagate to the caller (an API route, the CLI), which maps them
to its own status codes.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Union

from turnos_core.exceptions import InvalidRangeError, ValidationError
from turnos_core.normalize import normalize_row
from turnos_core.records import CandidateRecord, ShiftRecord
from turnos_core.repository import RepositoryPort, ShiftStats
from turnos_core.rules import ValidationMode, is_iso_date, validate_or_raise

logger = logging.getLogger(__name__)

RecordInput = Union[Mapping[str, Any], CandidateRecord]


def _check_date(name: str, value: str) -> None:
    if not is_iso_date(value):
        raise ValidationError([f"invalid date format for '{name}': {value!r} (expected YYYY-MM-DD)"])


def _check_range(date_from: str | None, date_to: str | None) -> None:
    if date_from is not None:
        _check_date("from", date_from)
    if date_to is not None:
        _check_date("to", date_to)
    if date_from is not None and date_to is not None and date_from > date_to:
        raise InvalidRangeError(date_from, date_to)


class SingleRecordService:
    """Read and write individual shift records.

    Example:
        >>> from turnos_core.repository import InMemoryRepository
        >>> service = SingleRecordService(InMemoryRepository())
        >>> service.upsert_one({"date": "2025-09-03", "shift": "tarde"}).shift
        <Shift.AFTERNOON: 'tarde'>
        >>> service.get_by_date("2025-09-03").notes
        ''

    """

    def __init__(self, repository: RepositoryPort) -> None:
        self.repository = repository

    def get_by_date(self, date: str, person_id: str | None = None) -> ShiftRecord | None:
        """Return the record for a date (and person), or None if absent.

        Raises:
            ValidationError: If date is not YYYY-MM-DD.

        """
        _check_date("date", date)
        return self.repository.find_by_identity(date, person_id)

    def get_by_range(
        self,
        date_from: str,
        date_to: str,
        person_id: str | None = None,
    ) -> list[ShiftRecord]:
        """Return records between two dates (inclusive), sorted by date.

        Raises:
            ValidationError: If a bound is not YYYY-MM-DD.
            InvalidRangeError: If date_from is after date_to.

        """
        _check_range(date_from, date_to)
        records = self.repository.find_by_range(date_from, date_to, person_id)
        return sorted(records, key=lambda r: (r.date, r.person_id or ""))

    def upsert_one(self, data: RecordInput) -> ShiftRecord:
        """Validate strictly and store one record.

        Args:
            data: A raw mapping (normalized first) or a CandidateRecord.

        Returns:
            The stored record, with created_at/updated_at set.

        Raises:
            NormalizationError: If a raw field cannot be parsed.
            ValidationError: With all violation messages, if a rule fails.
            RepositoryError: If the store fails.

        """
        candidate = data if isinstance(data, CandidateRecord) else normalize_row(data)
        record = validate_or_raise(candidate, ValidationMode.STRICT)
        result = self.repository.upsert(record)
        logger.info(
            "%s record %s",
            "Inserted" if result.was_insert else "Updated",
            result.record.record_id,
        )
        return result.record

    def get_stats(
        self,
        date_from: str | None = None,
        date_to: str | None = None,
        person_id: str | None = None,
    ) -> ShiftStats:
        """Aggregate counts, over the whole store when no bounds are given.

        Raises:
            ValidationError: If a bound is not YYYY-MM-DD.
            InvalidRangeError: If date_from is after date_to.

        """
        _check_range(date_from, date_to)
        return self.repository.stats(date_from, date_to, person_id)
