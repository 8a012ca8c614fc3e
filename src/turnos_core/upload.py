"""Spreadsheet uploads -> raw rows.

Reads a shift spreadsheet ("turnos" workbook) into plain dictionaries that
the ingestion pipeline can consume. Expected columns (any case, accents
optional):

    fecha | turno | vacaciones | notas | personaId

English names (date, shift, vacation, notes, personId) work too. Cells are
read as objects so that dates typed as text keep their day/month order.

Examples:
    >>> from turnos_core.repository import InMemoryRepository
    >>> report = ingest_file("turnos.xlsx", InMemoryRepository())
    >>> report.inserted
    31
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from turnos_core.cleaning import strip_invisibles, to_native
from turnos_core.config import TurnosConfig
from turnos_core.exceptions import UploadError
from turnos_core.ingest import BatchReport, IngestionPipeline
from turnos_core.repository import RepositoryPort

logger = logging.getLogger(__name__)


@dataclass
class UploadValidation:
    """Result of the file-level checks on an upload."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def validate_upload_file(path: Union[str, Path], config: Optional[TurnosConfig] = None) -> UploadValidation:
    """Check that an upload exists, is not empty, is small enough and has an allowed extension.

    Args:
        path: Uploaded file.
        config: Limits to apply (defaults from ``TurnosConfig()``).

    Returns:
        UploadValidation with every failed check listed.

    """
    config = config or TurnosConfig()
    path = Path(path)
    errors: list[str] = []

    if not path.is_file():
        return UploadValidation(valid=False, errors=[f"file not found: {path}"])

    size = path.stat().st_size
    if size == 0:
        errors.append("file is empty")
    elif size > config.max_upload_bytes:
        errors.append(f"file is too large ({size / (1024 * 1024):.1f}MB, max {config.max_upload_mb:g}MB)")

    if path.suffix.lower() not in config.allowed_extensions:
        allowed = ", ".join(config.allowed_extensions)
        errors.append(f"unsupported file type {path.suffix or '(none)'!r} (allowed: {allowed})")

    if errors:
        logger.warning("Rejected upload %s: %s", path, "; ".join(errors))
    return UploadValidation(valid=not errors, errors=errors)


def _clean_header(col: Any) -> str:
    return strip_invisibles(col) or ""


def numbered_rows(df: pd.DataFrame, header_row: int = 1) -> list[tuple[int, dict[str, Any]]]:
    """Convert a DataFrame of cells into (sheet row number, raw row) pairs.

    Missing cells are dropped from each row, numpy scalars become Python
    values, and rows with no values at all are skipped. Row numbers count the
    header as ``header_row``, so they match what a spreadsheet shows even
    when blank rows were skipped.
    """
    df = df.loc[:, [not str(c).startswith("Unnamed") for c in df.columns]].copy()
    df.columns = [_clean_header(c) for c in df.columns]

    rows: list[tuple[int, dict[str, Any]]] = []
    for position, record in enumerate(df.to_dict(orient="records")):
        row = {}
        for key, value in record.items():
            value = to_native(value)
            if isinstance(value, str):
                value = strip_invisibles(value)
            if value is None or value == "":
                continue
            row[key] = value
        if row:
            rows.append((header_row + 1 + position, row))
    return rows


def frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Like ``numbered_rows`` but without the row numbers."""
    return [row for _, row in numbered_rows(df)]


def read_upload_frame(path: Union[str, Path], sheet_name: Union[str, int] = 0) -> pd.DataFrame:
    """Read an .xlsx/.xls or .csv file into a DataFrame of object cells.

    Blank lines are kept so that row positions match the file.

    Raises:
        UploadError: If the file cannot be parsed as a spreadsheet.

    """
    path = Path(path)
    try:
        if path.suffix.lower() == ".csv":
            return pd.read_csv(path, dtype=object, encoding="utf-8-sig", skip_blank_lines=False)
        return pd.read_excel(path, sheet_name=sheet_name, dtype=object)
    except (ValueError, OSError, KeyError, zipfile.BadZipFile) as exc:
        raise UploadError([f"cannot read {path.name}: {exc}"]) from exc


def read_upload_rows(path: Union[str, Path], sheet_name: Union[str, int] = 0) -> list[dict[str, Any]]:
    """Read an .xlsx/.xls or .csv file into raw rows.

    Raises:
        UploadError: If the file cannot be parsed as a spreadsheet.

    """
    rows = frame_to_rows(read_upload_frame(path, sheet_name))
    logger.info("Read %d rows from %s", len(rows), path)
    return rows


def ingest_file(
    path: Union[str, Path],
    repository: RepositoryPort,
    config: Optional[TurnosConfig] = None,
) -> BatchReport:
    """Validate an uploaded spreadsheet, read it and ingest its rows.

    Warnings are labelled with spreadsheet row numbers (header = row 1).

    Raises:
        UploadError: If the file fails the checks or cannot be read.
        RepositoryError: If storing the rows fails.

    """
    config = config or TurnosConfig()
    check = validate_upload_file(path, config)
    if not check.valid:
        raise UploadError(check.errors)
    numbered = numbered_rows(read_upload_frame(path, sheet_name=config.sheet_name))
    logger.info("Read %d rows from %s", len(numbered), path)
    return IngestionPipeline(repository).ingest(
        [row for _, row in numbered],
        row_numbers=[number for number, _ in numbered],
    )
