"""Shift record types.

A shift record ("turno") assigns one shift, or a vacation day, to a calendar
date for an optional person. The identity of a record is its date alone, or
the pair (date, person_id) when a person is given.

Wire names follow the document store layout:
    date, personId, shift, isVacation, notes, createdAt, updatedAt
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class Shift(str, Enum):
    """Work shift of a day. Values are the labels stored in the document store."""

    MORNING = "mañana"
    AFTERNOON = "tarde"
    NIGHT = "noche"


def record_id(date: str, person_id: str | None = None) -> str:
    """Build the document id for an identity.

    Examples:
        >>> record_id("2025-09-03")
        '2025-09-03'
        >>> record_id("2025-09-03", "ana")
        '2025-09-03_ana'

    """
    return f"{date}_{person_id}" if person_id else date


@dataclass(frozen=True)
class CandidateRecord:
    """A normalized, not yet validated row.

    The shift is kept as the cleaned label so that the rule layer can decide
    whether it names a known shift.
    """

    date: str
    shift: str | None = None
    is_vacation: bool = False
    notes: str = ""
    person_id: str | None = None


@dataclass(frozen=True)
class ShiftRecord:
    """A validated shift record, as stored.

    Attributes:
        date: Calendar date in YYYY-MM-DD format.
        shift: Assigned shift, or None.
        is_vacation: True when the day is a vacation day.
        notes: Free text, empty by default.
        person_id: Optional person identifier, part of the identity.
        created_at: Set by the repository on first insert.
        updated_at: Set by the repository on every write.

    """

    date: str
    shift: Shift | None = None
    is_vacation: bool = False
    notes: str = ""
    person_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def record_id(self) -> str:
        return record_id(self.date, self.person_id)

    @property
    def identity(self) -> tuple[str, str | None]:
        return (self.date, self.person_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a JSON-serializable dictionary."""
        data: dict[str, Any] = {
            "date": self.date,
            "shift": self.shift.value if self.shift is not None else None,
            "isVacation": self.is_vacation,
            "notes": self.notes,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.person_id is not None:
            data["personId"] = self.person_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShiftRecord:
        """Create a record from its dictionary form (see ``to_dict``)."""
        shift = data.get("shift")
        created_at = data.get("createdAt")
        updated_at = data.get("updatedAt")
        return cls(
            date=data["date"],
            shift=Shift(shift) if shift else None,
            is_vacation=bool(data.get("isVacation", False)),
            notes=data.get("notes") or "",
            person_id=data.get("personId"),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
