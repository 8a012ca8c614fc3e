"""Unified configuration for Turnos Core.

This module provides a single, simple configuration class used by the upload
reader, the JSON-file store and the CLI.

Environment variables:
    TURNOS_STORE_PATH: Path of the JSON document store (default data/turnos.json).
    MAX_UPLOAD_MB: Maximum spreadsheet size in megabytes (default 5).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from turnos_core.exceptions import ConfigError

DEFAULT_STORE_PATH = Path("data") / "turnos.json"
DEFAULT_MAX_UPLOAD_MB = 5.0
DEFAULT_EXTENSIONS = (".xlsx",)


@dataclass
class TurnosConfig:
    """Settings for storage and spreadsheet uploads.

    Attributes:
        store_path: JSON file used by JsonFileRepository.
        max_upload_mb: Maximum accepted upload size in megabytes.
        allowed_extensions: Accepted upload file extensions (lowercase, with dot).
        sheet_name: Sheet to read from workbooks (name or 0-based index).

    """

    store_path: Path = DEFAULT_STORE_PATH
    max_upload_mb: float = DEFAULT_MAX_UPLOAD_MB
    allowed_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    sheet_name: Union[str, int] = 0

    def __post_init__(self) -> None:
        if isinstance(self.store_path, str):
            self.store_path = Path(self.store_path)
        if self.max_upload_mb <= 0:
            raise ConfigError(f"max_upload_mb must be positive, got {self.max_upload_mb}")
        self.allowed_extensions = tuple(ext.lower() for ext in self.allowed_extensions)

    @classmethod
    def from_root(
        cls,
        store_path: Union[str, Path],
        max_upload_mb: float = DEFAULT_MAX_UPLOAD_MB,
    ) -> TurnosConfig:
        """Create a config for a given store file.

        Examples:
            >>> TurnosConfig.from_root("data/turnos.json").store_path
            PosixPath('data/turnos.json')

        """
        return cls(store_path=Path(store_path), max_upload_mb=max_upload_mb)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> TurnosConfig:
        """Create a config from environment variables.

        Raises:
            ConfigError: If MAX_UPLOAD_MB is not a positive number.

        """
        env = os.environ if environ is None else environ
        store_path = env.get("TURNOS_STORE_PATH") or DEFAULT_STORE_PATH
        raw_mb = env.get("MAX_UPLOAD_MB")
        try:
            max_upload_mb = float(raw_mb) if raw_mb else DEFAULT_MAX_UPLOAD_MB
        except ValueError as exc:
            raise ConfigError(f"MAX_UPLOAD_MB must be a number, got {raw_mb!r}") from exc
        return cls(store_path=Path(store_path), max_upload_mb=max_upload_mb)

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)

    def ensure_dirs(self) -> None:
        """Create the directory holding the store file."""
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
