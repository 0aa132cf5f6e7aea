"""
Reusable parsers for dealer spreadsheet exports.

These parsers handle the messy reality of hand-maintained vehicle workbooks:
- Delivery dates stored as spreadsheet serials, dotted, slashed, Korean or
  compact text depending on who last edited the file
- Model names with and without brand prefixes, accents and drive-train
  spelling variations
- Cells that arrive as floats, ints, blanks or NaN for the same column
"""

import math
import re
import unicodedata
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd
from dateutil.parser import parse as parse_date_text


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def cell_text(value: Any) -> str:
    """
    Render a raw cell as trimmed text.

    Blank cells (None, NaN, NaT) become "" and integral floats drop their
    ".0", so a year typed as 2024 and read back as 2024.0 stays "2024".
    """
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _as_number(text: str) -> float | None:
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def column_to_index(column: str) -> int:
    """Spreadsheet column letters to a zero-based index (A=0, Z=25, AA=26)."""
    result = 0
    for char in column.strip().upper():
        if not "A" <= char <= "Z":
            raise ValueError(f"Invalid column letter in {column!r}")
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def index_to_column(index: int) -> str:
    """Zero-based index to spreadsheet column letters (0=A, 26=AA)."""
    if index < 0:
        raise ValueError("Column index must be non-negative")
    result = ""
    while index >= 0:
        result = chr(ord("A") + index % 26) + result
        index = index // 26 - 1
    return result


class DateNormalizer:
    """
    Coerces a delivery-date cell into canonical YYYY-MM-DD, or "".

    Rules are tried in order and the first match wins. Never raises:
    anything unparseable comes back as an empty string.

    Reusable: Yes - the same encodings show up in every dealer export.
    To extend: add a pattern and a branch in _normalize_text().
    """

    # Serial day 1 lands on the anchor; the -1 correction for serials past
    # the fictitious 1900-02-29 offsets the spreadsheet leap-year miscount.
    SERIAL_ANCHOR = date(1899, 12, 31)
    SERIAL_MIN = 1
    SERIAL_MAX = 73050  # roughly year 2100
    LEAP_BUG_SERIAL = 60

    EMPTY_MARKERS = {"undefined", "null"}

    # Two fixed fill-ins for free-text parsing; a part the text leaves out
    # comes back different between them
    FALLBACK_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

    ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
    DOTTED_PATTERN = re.compile(r"^(\d{4})\.(\d{1,2})\.(\d{1,2})$")
    SLASHED_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
    KOREAN_PATTERN = re.compile(r"(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일")
    COMPACT_PATTERN = re.compile(r"^\d{8}$")

    def __init__(self):
        self._cache: dict[str, str] = {}

    def normalize(self, value: Any) -> str:
        """Normalize a single cell value."""
        if _is_missing(value):
            return ""

        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()

        text = cell_text(value)
        if text in self._cache:
            return self._cache[text]

        result = self._normalize_text(text)
        self._cache[text] = result
        return result

    def _normalize_text(self, text: str) -> str:
        if not text or text in self.EMPTY_MARKERS:
            return ""

        number = _as_number(text)
        if number is not None:
            if self.SERIAL_MIN <= number <= self.SERIAL_MAX:
                return self.from_serial(number)
            if not self.COMPACT_PATTERN.match(text):
                return ""

        if self.ISO_PATTERN.match(text):
            return text

        match = self.DOTTED_PATTERN.match(text)
        if match:
            return self._format(*match.groups())

        match = self.SLASHED_PATTERN.match(text)
        if match:
            first, second, year = match.groups()
            # US ordering unless the first part cannot be a month
            if int(first) > 12 and int(second) <= 12:
                return self._format(year, second, first)
            return self._format(year, first, second)

        match = self.KOREAN_PATTERN.search(text)
        if match:
            return self._format(*match.groups())

        if self.COMPACT_PATTERN.match(text):
            return self._format(text[:4], text[4:6], text[6:8])

        return self._parse_free_text(text)

    def _parse_free_text(self, text: str) -> str:
        """
        Last resort via dateutil. Year and month must be in the text; a
        missing day means the 1st ("June 2024"). Times and weekdays alone
        give "".
        """
        try:
            first, second = (
                parse_date_text(text, default=default) for default in self.FALLBACK_DEFAULTS
            )
        except (ValueError, OverflowError):
            return ""

        if first.year != second.year or first.month != second.month:
            return ""
        if first.day != second.day:
            return date(first.year, first.month, 1).isoformat()
        return first.date().isoformat()

    def from_serial(self, serial: float) -> str:
        """Spreadsheet day serial to YYYY-MM-DD (fractions are dropped)."""
        days = int(serial)
        if days > self.LEAP_BUG_SERIAL:
            days -= 1
        return (self.SERIAL_ANCHOR + timedelta(days=days - 1)).isoformat()

    @staticmethod
    def _format(year: str, month: str, day: str) -> str:
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


_default_date_normalizer = DateNormalizer()


def normalize_date(value: Any) -> str:
    """Module-level shortcut using a shared DateNormalizer."""
    return _default_date_normalizer.normalize(value)


class VariantKeyNormalizer:
    """
    Builds the join key that matches logistics units to sales orders.

    Logistics and sales exports spell the same car differently:
    - "Mercedes-AMG G 63" vs "G 63"
    - "CLE 200 Coupé" vs "cle 200 coupe"
    - "E 300 4MATIC" vs "E 300 4M"
    - "Black" vs " black"

    Only the model name gets the heavy treatment; color, trim and year are
    just trimmed and lower-cased.

    Reusable: The normalization steps are reusable.
    Client-specific: The brand prefixes may need customization per importer.
    """

    DEFAULT_PREFIXES = ["mercedes-amg", "mercedes-maybach", "mercedes-benz", "mercedes"]

    # cabriolet / sedan / wagon / suv need no rewrite once lower-cased
    MODEL_REWRITES = [
        (re.compile(r"\b4matic\b"), "4m"),
        (re.compile(r"\bcoup[eé]\b"), "coupe"),
    ]

    def __init__(self, strip_prefixes: list[str] | None = None, separator: str = "_"):
        """
        Args:
            strip_prefixes: Brand prefixes to remove (defaults to Mercedes sub-brands)
            separator: Joins the four key parts
        """
        prefixes = [p.lower() for p in (strip_prefixes or self.DEFAULT_PREFIXES)]
        # Sub-brand forms are longer, so they are tried before the bare brand
        self._prefix_patterns = [
            re.compile(re.escape(p) + r"\s+")
            for p in sorted(prefixes, key=len, reverse=True)
        ]
        self.separator = separator
        self._model_cache: dict[str, str] = {}

    def normalize_model(self, model: Any) -> str:
        """Normalize a model description."""
        raw = cell_text(model)
        if raw in self._model_cache:
            return self._model_cache[raw]

        result = raw.lower()

        for pattern in self._prefix_patterns:
            match = pattern.match(result)
            if match:
                result = result[match.end():]
                break

        decomposed = unicodedata.normalize("NFD", result)
        result = unicodedata.normalize(
            "NFC", "".join(c for c in decomposed if not "\u0300" <= c <= "\u036f")
        )

        for pattern, replacement in self.MODEL_REWRITES:
            result = pattern.sub(replacement, result)

        result = " ".join(result.split())

        self._model_cache[raw] = result
        return result

    @staticmethod
    def normalize_attribute(value: Any) -> str:
        """Color, trim and year: trimmed, lower-cased text."""
        return cell_text(value).lower()

    def key(self, model: Any, color: Any, trim: Any, year: Any) -> str:
        parts = [
            self.normalize_model(model),
            self.normalize_attribute(color),
            self.normalize_attribute(trim),
            self.normalize_attribute(year),
        ]
        return self.separator.join(parts)

    def key_for(self, record) -> str:
        """Key for anything exposing the VariantFields attributes."""
        return self.key(
            record.model_description,
            record.exterior_color,
            record.trim,
            record.model_year,
        )


_default_key_normalizer = VariantKeyNormalizer()


def generate_variant_key(model: Any, color: Any, trim: Any, year: Any) -> str:
    """Module-level shortcut using the default VariantKeyNormalizer."""
    return _default_key_normalizer.key(model, color, trim, year)
