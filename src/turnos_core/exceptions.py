"""Domain-specific exceptions for Turnos Core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from TurnosAPIError for easy catching.
"""

from __future__ import annotations

from typing import Any, Sequence


class TurnosAPIError(Exception):
    """Base exception for all Turnos Core errors.

    Callers (an HTTP route, the CLI) can catch this exception to handle any
    domain error and map it to their own status codes.
    """

    pass


class ConfigError(TurnosAPIError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid configuration values are provided
    - Environment variables cannot be parsed
    """

    pass


class NormalizationError(TurnosAPIError):
    """Raised when a raw row cannot be parsed into a candidate record.

    Attributes:
        field: Name of the offending field ("date", "shift", ...).
        value: The raw value as received.
    """

    def __init__(self, field: str, value: Any, message: str | None = None) -> None:
        self.field = field
        self.value = value
        if message is None:
            message = f"invalid {field}: {value!r}"
        super().__init__(message)


class ValidationError(TurnosAPIError):
    """Raised when a record violates one or more business rules.

    Attributes:
        messages: Ordered list of violation messages.
    """

    def __init__(self, messages: Sequence[str]) -> None:
        self.messages = list(messages)
        super().__init__("; ".join(self.messages) or "validation failed")


class InvalidRangeError(TurnosAPIError):
    """Raised when a range read has its start after its end."""

    def __init__(self, date_from: str, date_to: str) -> None:
        self.date_from = date_from
        self.date_to = date_to
        super().__init__(
            f"invalid date range: 'from' ({date_from}) is after 'to' ({date_to})"
        )


class RepositoryError(TurnosAPIError):
    """Raised when the storage layer fails.

    The underlying cause is preserved as ``__cause__``.
    """

    pass


class RepositoryConflictError(RepositoryError):
    """Raised when a conditional write loses against a concurrent writer."""

    pass


class UploadError(TurnosAPIError):
    """Raised when an uploaded spreadsheet fails the file checks.

    Attributes:
        errors: Human-readable reasons the file was rejected.
    """

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("invalid upload file: " + "; ".join(self.errors))
