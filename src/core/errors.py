"""
Error taxonomy for an analysis run.

Only structural problems are raised. Row-level defects (missing model,
unparseable date or year) are skipped by the loaders and counted in the
quality report instead.
"""


class ReconciliationError(Exception):
    """Base class for errors surfaced to the caller of an analysis run."""

    category = "analysis"


class WorkbookReadError(ReconciliationError):
    """Uploaded bytes could not be decoded as a spreadsheet workbook."""

    category = "unreadable"


class SheetNotFoundError(ReconciliationError):
    """The workbook has no sheet the loader can read."""

    category = "sheet_missing"

    def __init__(self, source_name: str, wanted: str | None = None):
        self.source_name = source_name
        self.wanted = wanted
        detail = f" (wanted {wanted!r})" if wanted else ""
        super().__init__(f"No readable sheet in {source_name} workbook{detail}")


class UploadValidationError(ReconciliationError):
    """File rejected at the upload boundary (type or size)."""

    category = "invalid_upload"


class AnalysisTimeoutError(ReconciliationError):
    """The run exceeded its wall-clock budget."""

    category = "timeout"

    def __init__(self, budget_seconds: float):
        self.budget_seconds = budget_seconds
        super().__init__(f"Analysis exceeded {budget_seconds:g}s budget")


class ExportError(ReconciliationError):
    """Nothing to export for the requested selection."""

    category = "export"


USER_MESSAGES = {
    "unreadable": "Excel 파일을 읽을 수 없습니다. 파일 형식을 확인해주세요.",
    "sheet_missing": "Excel 파일의 첫 번째 시트를 읽을 수 없습니다. 파일 형식을 확인해주세요.",
    "invalid_upload": "지원되지 않는 파일입니다. 10MB 이하의 Excel 파일(.xlsx, .xlsm)만 업로드 가능합니다.",
    "timeout": "처리 시간이 초과되었습니다. 파일 크기를 줄여서 다시 시도해주세요.",
    "export": "내보낼 데이터가 없습니다.",
    "analysis": "분석 중 오류가 발생했습니다.",
}


def user_message(exc: BaseException) -> str:
    """Short user-facing message for an error, without internal detail."""
    if isinstance(exc, UploadValidationError) and exc.args:
        # Validation messages are written for end users already
        return str(exc)
    category = getattr(exc, "category", "analysis")
    return USER_MESSAGES.get(category, USER_MESSAGES["analysis"])
