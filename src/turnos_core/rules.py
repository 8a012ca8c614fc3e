"""Business rules for shift records.

Rules are evaluated in a fixed order and all applicable violations are
collected:

1. The date must be a real calendar date in YYYY-MM-DD format.
2. A shift and a vacation flag must not be set at the same time.
3. The shift, if present, must be a known shift label.

The same rules serve both write paths. ``ValidationMode`` only changes the
severity of rule 2: bulk imports (LENIENT) store the row and report a
warning, single-record writes (STRICT) reject it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from turnos_core.cleaning import remove_accents, strip_invisibles
from turnos_core.exceptions import ValidationError
from turnos_core.normalize import ISO_DATE_RE
from turnos_core.records import CandidateRecord, Shift, ShiftRecord

logger = logging.getLogger(__name__)

# Accepted labels, lower-cased and without accents -> shift
SHIFT_ALIASES: dict[str, Shift] = {
    "manana": Shift.MORNING,
    "morning": Shift.MORNING,
    "tarde": Shift.AFTERNOON,
    "afternoon": Shift.AFTERNOON,
    "noche": Shift.NIGHT,
    "night": Shift.NIGHT,
}

SHIFT_AND_VACATION_MSG = "shift and vacation specified simultaneously"


class ValidationMode(str, Enum):
    """How strictly rule 2 (shift vs. vacation) is enforced."""

    LENIENT = "lenient"
    STRICT = "strict"


@dataclass
class ValidationResult:
    """Outcome of validating one candidate record.

    Attributes:
        record: The validated record, or None when there are errors.
        errors: Hard violations; the record must not be stored.
        warnings: Soft violations; the record may be stored.
        messages: Errors and warnings together, in rule evaluation order.

    """

    record: ShiftRecord | None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def is_iso_date(value: str) -> bool:
    """Return True if value is a real calendar date written as YYYY-MM-DD.

    Examples:
        >>> is_iso_date("2025-09-03")
        True
        >>> is_iso_date("2025-02-30")
        False

    """
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def parse_shift(label: str | None) -> Shift | None:
    """Resolve a shift label, returning None for unknown labels.

    Case, surrounding whitespace and accents are ignored, so "Mañana",
    "MANANA" and a decomposed "man" + U+0303 + "ana" all resolve to Shift.MORNING.
    """
    if label is None:
        return None
    return SHIFT_ALIASES.get(remove_accents(strip_invisibles(label) or "").lower())


def validate(
    candidate: CandidateRecord,
    mode: ValidationMode = ValidationMode.LENIENT,
) -> ValidationResult:
    """Apply the business rules to a candidate record.

    Args:
        candidate: Normalized record.
        mode: LENIENT for bulk imports, STRICT for single-record writes.

    Returns:
        ValidationResult with the record (when valid) and ordered messages.

    """
    errors: list[str] = []
    warnings: list[str] = []
    messages: list[str] = []

    def fail(msg: str) -> None:
        errors.append(msg)
        messages.append(msg)

    def warn(msg: str) -> None:
        warnings.append(msg)
        messages.append(msg)

    # Rule 1
    if not ISO_DATE_RE.match(candidate.date or ""):
        fail(f"invalid date format: {candidate.date!r} (expected YYYY-MM-DD)")
    elif not is_iso_date(candidate.date):
        fail(f"invalid date: {candidate.date!r} is not a calendar date")

    # Rule 2
    if candidate.shift and candidate.is_vacation:
        msg = f"{SHIFT_AND_VACATION_MSG} (shift {candidate.shift!r})"
        if mode is ValidationMode.STRICT:
            fail(msg)
        else:
            warn(msg)

    # Rule 3
    shift = parse_shift(candidate.shift)
    if candidate.shift and shift is None:
        known = ", ".join(s.value for s in Shift)
        fail(f"unrecognized shift {candidate.shift!r} (expected one of: {known})")

    if errors:
        logger.debug("Rejected %r (%s): %s", candidate, mode.value, errors)
        return ValidationResult(record=None, errors=errors, warnings=warnings, messages=messages)

    record = ShiftRecord(
        date=candidate.date,
        shift=shift,
        is_vacation=candidate.is_vacation,
        notes=candidate.notes,
        person_id=candidate.person_id,
    )
    return ValidationResult(record=record, errors=errors, warnings=warnings, messages=messages)


def validate_or_raise(
    candidate: CandidateRecord,
    mode: ValidationMode = ValidationMode.STRICT,
) -> ShiftRecord:
    """Validate a candidate and return the record.

    Raises:
        ValidationError: With every violation message, if any rule fails.

    """
    result = validate(candidate, mode)
    if not result.ok:
        raise ValidationError(result.errors)
    return result.record  # type: ignore[return-value]
