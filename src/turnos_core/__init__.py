"""Turnos Core - daily shift records with spreadsheet bulk import.

This package records one shift ("turno": mañana, tarde, noche) or a vacation
day per calendar date and optional person, and imports such records in bulk
from loosely formatted spreadsheet rows.

Module Structure:
    turnos_core.normalize: raw rows -> candidate records
    turnos_core.rules: business rules (LENIENT for bulk, STRICT for single writes)
    turnos_core.repository: storage port, in-memory and JSON-file adapters
    turnos_core.ingest: bulk ingestion pipeline and batch reports
    turnos_core.service: single-record reads, writes and stats
    turnos_core.upload: spreadsheet file checks and row decoding
    turnos_core.config: TurnosConfig settings

Quick Start:
    >>> from turnos_core import IngestionPipeline, InMemoryRepository, SingleRecordService
    >>>
    >>> repo = InMemoryRepository()
    >>> report = IngestionPipeline(repo).ingest([
    ...     {"fecha": "3/9/2025", "turno": "mañana", "vacaciones": "no"},
    ...     {"fecha": "4/9/2025", "vacaciones": "sí"},
    ... ])
    >>> report.inserted, report.skipped
    (2, 0)
    >>>
    >>> service = SingleRecordService(repo)
    >>> service.get_stats().to_dict()
    {'total': 2, 'perShift': {'mañana': 1, 'tarde': 0, 'noche': 0}, 'vacationCount': 1}
"""

__version__ = "0.1.0"

from turnos_core.config import TurnosConfig
from turnos_core.exceptions import (
    ConfigError,
    InvalidRangeError,
    NormalizationError,
    RepositoryConflictError,
    RepositoryError,
    TurnosAPIError,
    UploadError,
    ValidationError,
)
from turnos_core.ingest import BatchReport, IngestionPipeline, ingest_rows
from turnos_core.records import CandidateRecord, Shift, ShiftRecord
from turnos_core.repository import (
    InMemoryRepository,
    JsonFileRepository,
    RepositoryPort,
    ShiftStats,
)
from turnos_core.rules import ValidationMode
from turnos_core.service import SingleRecordService
from turnos_core.upload import ingest_file, validate_upload_file

__all__ = [
    "BatchReport",
    "CandidateRecord",
    "ConfigError",
    "InMemoryRepository",
    "IngestionPipeline",
    "InvalidRangeError",
    "JsonFileRepository",
    "NormalizationError",
    "RepositoryConflictError",
    "RepositoryError",
    "RepositoryPort",
    "Shift",
    "ShiftRecord",
    "ShiftStats",
    "SingleRecordService",
    "TurnosAPIError",
    "TurnosConfig",
    "UploadError",
    "ValidationError",
    "ValidationMode",
    "__version__",
    "ingest_file",
    "ingest_rows",
    "validate_upload_file",
]
