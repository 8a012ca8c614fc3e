"""Shared utilities for cleaning spreadsheet cell values.

Spreadsheet exports bring invisible characters, accented headers and
numpy/pandas scalar types into otherwise simple rows. These helpers turn such
values into plain Python values before normalization.

Examples:
    >>> strip_invisibles("  Sí  ")
    'Sí'
    >>> canonical_key("Es Vacaciones")
    'esvacaciones'
    >>> to_native(np.int64(1))
    1
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

# Unicode characters that should be stripped from text
NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters


def is_missing(x: Any) -> bool:
    """Return True for None, NaN and NaT cell values."""
    if x is None or x is pd.NaT:
        return True
    if isinstance(x, (float, np.floating)):
        return bool(np.isnan(x))
    return False


def strip_invisibles(x: Any) -> Optional[str]:
    """Remove invisible and problematic whitespace characters from text.

    Strips carriage returns, tabs, non-breaking and zero-width spaces,
    collapses runs of whitespace and trims the result. Decomposed accents
    ("n" + U+0303, as written by some macOS exports) are composed (NFC).

    Args:
        x: Value to clean (string, number, or None).

    Returns:
        Cleaned string or None if input is None/NaN.

    Examples:
        >>> strip_invisibles("  Hola mundo  ")
        'Hola mundo'
        >>> strip_invisibles(None)

    """
    if is_missing(x):
        return None
    s = str(x)
    s = s.replace("\r", "").replace("\t", " ").replace(NBSP, " ").replace(NNBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)
    s = re.sub(r"\s+", " ", s).strip()
    return unicodedata.normalize("NFC", s)


def remove_accents(s: str) -> str:
    """Remove accents and diacritics from a string.

    Examples:
        >>> remove_accents("mañana")
        'manana'

    """
    return "".join(c for c in unicodedata.normalize("NFD", s) if unicodedata.category(c) != "Mn")


def canonical_key(s: Any) -> str:
    """Reduce a column name to lowercase ASCII letters and digits.

    Used to match row keys regardless of case, accents, spaces and
    separators, so "Es Vacaciones", "es_vacaciones" and "esVacaciones"
    all map to the same key.

    Examples:
        >>> canonical_key("Fecha ")
        'fecha'
        >>> canonical_key("persona_id")
        'personaid'

    """
    s0 = strip_invisibles(s) or ""
    return re.sub(r"[^a-z0-9]", "", remove_accents(s0).lower())


def to_native(x: Any) -> Any:
    """Convert numpy/pandas scalars to plain Python values.

    - None, NaN and NaT become None
    - numpy booleans, integers and floats become bool, int and float
    - pandas Timestamps and numpy datetimes become datetime.date
    - everything else is returned unchanged

    Examples:
        >>> to_native(np.bool_(True))
        True
        >>> to_native(pd.Timestamp("2025-09-03 00:00:00"))
        datetime.date(2025, 9, 3)

    """
    if is_missing(x):
        return None
    if isinstance(x, np.bool_):
        return bool(x)
    if isinstance(x, np.integer):
        return int(x)
    if isinstance(x, np.floating):
        return float(x)
    if isinstance(x, np.datetime64):
        x = pd.Timestamp(x)
        if x is pd.NaT:
            return None
    if isinstance(x, datetime):
        return x.date()
    return x
