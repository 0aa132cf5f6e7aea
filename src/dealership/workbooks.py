"""
Workbook decoding for uploaded dealer files.

Turns upload bytes into plain row matrices (lists of cell values) so the
loaders never touch file formats. Blank cells come back as "".
"""

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import PurePath
from typing import Any
from zipfile import BadZipFile

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from core.config import Settings, get_settings
from core.errors import SheetNotFoundError, UploadValidationError, WorkbookReadError
from core.quality import DataQualityReport

Rows = list[list[Any]]


@dataclass
class Extraction:
    """Records pulled from one sheet plus the tally of what was skipped."""

    records: list
    report: DataQualityReport
    sheet_name: str | None = None
    layout: str | None = None
    notes: list[str] = field(default_factory=list)


def validate_upload(filename: str, size: int, settings: Settings | None = None):
    """Reject files by extension and size before they are decoded."""
    settings = settings or get_settings()

    extension = PurePath(filename or "").suffix.lower()
    if extension not in settings.allowed_extensions:
        allowed = ", ".join(settings.allowed_extensions)
        raise UploadValidationError(
            f"지원되지 않는 파일 형식입니다. Excel 파일({allowed})만 업로드 가능합니다."
        )

    if size > settings.max_upload_bytes:
        raise UploadValidationError(
            f"파일이 너무 큽니다. {settings.max_upload_mb}MB 이하의 파일을 업로드해주세요."
        )


class Workbook:
    """
    Lazily decoded spreadsheet workbook.

    Sheets are parsed on first access only; dealer exports often carry
    pivot or chart sheets nobody needs.
    """

    def __init__(self, file_bytes: bytes, source_name: str):
        self.source_name = source_name
        try:
            self._excel = pd.ExcelFile(BytesIO(file_bytes), engine="openpyxl")
        except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as e:
            raise WorkbookReadError(f"Cannot read {source_name} workbook: {e}") from e
        self._rows: dict[str, Rows] = {}

    @property
    def sheet_names(self) -> list[str]:
        return [str(name) for name in self._excel.sheet_names]

    def select_sheet(self, preferred: str | None = None) -> str:
        """`preferred` when the workbook has it, else the first sheet."""
        names = self.sheet_names
        if preferred and preferred in names:
            return preferred
        if not names:
            raise SheetNotFoundError(self.source_name, preferred)
        return names[0]

    def rows(self, sheet_name: str) -> Rows:
        if sheet_name not in self.sheet_names:
            raise SheetNotFoundError(self.source_name, sheet_name)

        if sheet_name not in self._rows:
            try:
                df = self._excel.parse(sheet_name, header=None, dtype=object)
            except (KeyError, ValueError) as e:
                raise WorkbookReadError(
                    f"Cannot parse sheet {sheet_name!r} of {self.source_name}: {e}"
                ) from e
            df = df.astype(object).where(df.notna(), "")
            self._rows[sheet_name] = df.values.tolist()

        return self._rows[sheet_name]


def decode_workbook(file_bytes: bytes, source_name: str = "workbook") -> dict[str, Rows]:
    """Every sheet of a workbook as {sheet name: row matrix}."""
    workbook = Workbook(file_bytes, source_name)
    return {name: workbook.rows(name) for name in workbook.sheet_names}
