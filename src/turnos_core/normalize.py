"""Row normalization: raw spreadsheet/API rows -> candidate records.

Each field has its own small normalization function. Every branch states the
shapes it accepts; anything else raises NormalizationError instead of being
silently coerced. Business rules (shift vs. vacation, known shift labels) are
not checked here, see ``turnos_core.rules``.

Accepted dates:
    2025-09-03      ISO, passed through unchanged
    3/9/2025        day/month/year, "/" separated
    03-09-2025      day/month/year, "-" separated
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from turnos_core.cleaning import canonical_key, strip_invisibles, to_native
from turnos_core.exceptions import NormalizationError
from turnos_core.records import CandidateRecord

logger = logging.getLogger(__name__)

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DMY_DATE_RE = re.compile(r"^(?P<day>\d{1,2})[/\-](?P<month>\d{1,2})[/\-](?P<year>\d{4})$")

TRUTHY_STRINGS = frozenset({"sí", "si", "true", "1"})

# Canonical field name -> accepted column keys (compared via canonical_key)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("date", "fecha"),
    "shift": ("shift", "turno"),
    "vacation": ("vacation", "vacaciones", "isVacation", "is_vacation", "esVacaciones"),
    "notes": ("notes", "notas"),
    "person_id": ("personId", "person_id", "personaId", "persona_id"),
}

_KEY_TO_FIELD = {
    canonical_key(alias): field for field, aliases in FIELD_ALIASES.items() for alias in aliases
}


def normalize_date(value: Any) -> str:
    """Normalize a date value to YYYY-MM-DD.

    Raises:
        NormalizationError: If the value is missing or has an unknown shape.

    Examples:
        >>> normalize_date("3/9/2025")
        '2025-09-03'
        >>> normalize_date("2025-09-03")
        '2025-09-03'

    """
    value = to_native(value)
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        s = strip_invisibles(value) or ""
        if ISO_DATE_RE.match(s):
            return s
        m = DMY_DATE_RE.match(s)
        if m:
            return f"{m.group('year')}-{int(m.group('month')):02d}-{int(m.group('day')):02d}"
        raise NormalizationError(
            "date",
            value,
            f"invalid date format: {value!r} (expected YYYY-MM-DD, D/M/YYYY or D-M-YYYY)",
        )
    if value is None:
        raise NormalizationError("date", value, "missing date (expected YYYY-MM-DD)")
    raise NormalizationError(
        "date",
        value,
        f"invalid date format: {value!r} is a {type(value).__name__}, expected a date string",
    )


def normalize_shift(value: Any) -> str | None:
    """Trim and lower-case a shift label; empty or absent stays None."""
    value = to_native(value)
    if value is None:
        return None
    if isinstance(value, str):
        s = (strip_invisibles(value) or "").lower()
        return s or None
    raise NormalizationError("shift", value, f"invalid shift label: {value!r} is not text")


def normalize_vacation(value: Any) -> bool:
    """Interpret a loosely typed vacation flag.

    - bool: as-is
    - number: True only for 1
    - string: True for "sí", "si", "true", "1" (any case, trimmed)
    - absent: False

    Examples:
        >>> normalize_vacation(" SI ")
        True
        >>> normalize_vacation(2)
        False

    """
    value = to_native(value)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return (strip_invisibles(value) or "").lower() in TRUTHY_STRINGS
    raise NormalizationError(
        "vacation", value, f"invalid vacation flag: {value!r} is a {type(value).__name__}"
    )


def normalize_notes(value: Any) -> str:
    """Trim free text notes; absent becomes an empty string."""
    value = to_native(value)
    if value is None:
        return ""
    return str(value).strip()


def normalize_person_id(value: Any) -> str | None:
    """Return the person identifier as text, or None when empty."""
    value = to_native(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    s = strip_invisibles(value)
    return s or None


def canonical_fields(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map the row's column names onto canonical field names.

    Unknown columns are ignored. When two columns map to the same field,
    the first non-missing one wins.
    """
    out: dict[str, Any] = {}
    for key, value in raw.items():
        field = _KEY_TO_FIELD.get(canonical_key(key))
        if field is None:
            continue
        if out.get(field) is None:
            out[field] = value
    return out


def normalize_row(raw: Mapping[str, Any]) -> CandidateRecord:
    """Normalize one raw row into a CandidateRecord.

    Args:
        raw: Mapping of column name to a string, number, boolean or date.

    Returns:
        CandidateRecord with a canonical date and cleaned fields.

    Raises:
        NormalizationError: If a field has an unparseable shape.

    Examples:
        >>> normalize_row({"fecha": "3/9/2025", "turno": " Mañana ", "vacaciones": "no"})
        CandidateRecord(date='2025-09-03', shift='mañana', is_vacation=False, notes='', person_id=None)

    """
    fields = canonical_fields(raw)
    candidate = CandidateRecord(
        date=normalize_date(fields.get("date")),
        shift=normalize_shift(fields.get("shift")),
        is_vacation=normalize_vacation(fields.get("vacation")),
        notes=normalize_notes(fields.get("notes")),
        person_id=normalize_person_id(fields.get("person_id")),
    )
    logger.debug("Normalized row %r -> %r", dict(raw), candidate)
    return candidate
