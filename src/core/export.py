"""
Excel and CSV export of reconciled variants.

Headers are in Korean because the files go straight to the sales team.
Writers return bytes so the dashboard can hand them to a download button.
"""

from datetime import date, datetime
from io import BytesIO
import math

import pandas as pd

from .analysis import FRAME_COLUMNS, STATUS_FIELDS, filter_variants, variants_to_frame
from .errors import ExportError
from .parsers import index_to_column
from .reconciliation import AnalysisResult, AnalysisSummary, ModelVariant

EXPORT_COLUMNS = [
    "모델명",
    "외장색상",
    "내장/트림",
    "연식",
    "인도예정일",
    "운송중",
    "배정완료",
    "배정대기",
    "총수량",
    "담당영업사원",
]

NO_DATE = "미정"
NO_SALESPEOPLE = "없음"

STATUS_SHEET_NAMES = {
    "all": "전체데이터",
    "in_transit": "운송중차량",
    "pending_assigned": "배정완료차량",
    "pending_unassigned": "배정대기차량",
}

DEFAULT_WIDTH = 12
COLUMN_WIDTHS = {"모델명": 25, "외장색상": 15, "내장/트림": 15, "담당영업사원": 20, "항목": 20, "값": 15}


def _percent(part: int, whole: int) -> int:
    """Rounded percentage, half up; 0 when whole is not positive."""
    if whole <= 0:
        return 0
    return math.floor(part / whole * 100 + 0.5)


def build_export_table(variants: list[ModelVariant]) -> pd.DataFrame:
    """Flat export table, one row per variant, with placeholders filled in."""
    table = variants_to_frame(variants)
    table["delivery_date"] = table["delivery_date"].map(lambda d: d or NO_DATE)
    table["salesmen"] = table["salesmen"].map(lambda names: ", ".join(names) or NO_SALESPEOPLE)
    return table.rename(columns=dict(zip(FRAME_COLUMNS, EXPORT_COLUMNS)))


def build_summary_table(summary: AnalysisSummary, generated_at: datetime | None = None) -> pd.DataFrame:
    generated_at = generated_at or datetime.now()
    orders = summary.pending_assigned + summary.pending_unassigned
    rows = [
        ("총 모델 수", summary.total_models),
        ("총 차량 수", summary.total_vehicles),
        ("운송중 차량", summary.in_transit),
        ("배정 완료 차량", summary.pending_assigned),
        ("배정 대기 차량", summary.pending_unassigned),
        ("미매치 모델", summary.unmatched_models),
        ("", ""),
        ("분석 일시", generated_at.strftime("%Y-%m-%d %H:%M:%S")),
        ("", ""),
        ("배정률 (%)", _percent(summary.pending_assigned, orders)),
        (
            "차량 가용률 (%)",
            _percent(summary.in_transit + summary.pending_assigned, summary.total_vehicles),
        ),
        (
            "데이터 매칭률 (%)",
            _percent(summary.total_models - summary.unmatched_models, summary.total_models),
        ),
    ]
    return pd.DataFrame(rows, columns=["항목", "값"])


def _detail_table(variants: list[ModelVariant]) -> pd.DataFrame:
    table = build_export_table(variants)
    table["배정률(%)"] = [
        _percent(v.assigned_count, v.assigned_count + v.unassigned_count) for v in variants
    ]
    table["가용률(%)"] = [
        _percent(
            v.in_transit_count + v.assigned_count,
            v.in_transit_count + v.assigned_count + v.unassigned_count,
        )
        for v in variants
    ]
    return table


def _write_sheet(writer: pd.ExcelWriter, df: pd.DataFrame, sheet_name: str):
    df.to_excel(writer, sheet_name=sheet_name, index=False)
    worksheet = writer.sheets[sheet_name]
    for idx, column in enumerate(df.columns):
        worksheet.column_dimensions[index_to_column(idx)].width = COLUMN_WIDTHS.get(
            column, DEFAULT_WIDTH
        )


def export_report_xlsx(result: AnalysisResult, generated_at: datetime | None = None) -> bytes:
    """
    Full report workbook.

    Sheets: 요약 (summary and rates), 상세데이터 (every variant), then
    운송중차량 / 배정대기차량 / 미매치모델 when they have rows.
    """
    variants = result.variants
    transit = [v for v in variants if v.in_transit_count > 0]
    unassigned = [v for v in variants if v.unassigned_count > 0]
    unmatched = [
        v for v in transit if v.assigned_count == 0 and v.unassigned_count == 0
    ]

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _write_sheet(writer, build_summary_table(result.summary, generated_at), "요약")
        _write_sheet(writer, _detail_table(variants), "상세데이터")

        if transit:
            table = build_export_table(transit)[
                ["모델명", "외장색상", "내장/트림", "연식", "인도예정일", "운송중"]
            ].rename(columns={"운송중": "운송중수량"})
            _write_sheet(writer, table, "운송중차량")

        if unassigned:
            table = build_export_table(unassigned)[
                ["모델명", "외장색상", "내장/트림", "연식", "배정대기", "담당영업사원"]
            ].rename(columns={"배정대기": "배정대기수량"})
            _write_sheet(writer, table, "배정대기차량")

        if unmatched:
            table = build_export_table(unmatched)[
                ["모델명", "외장색상", "내장/트림", "연식", "인도예정일", "운송중"]
            ].rename(columns={"운송중": "운송중수량"})
            table["상태"] = "판매데이터 없음"
            _write_sheet(writer, table, "미매치모델")

    return buffer.getvalue()


def export_filtered_xlsx(variants: list[ModelVariant], status: str = "all") -> bytes:
    """Single-sheet workbook of the variants with a non-zero `status` count."""
    if status not in STATUS_SHEET_NAMES:
        raise ValueError(f"status must be one of {sorted(STATUS_SHEET_NAMES)}, got {status!r}")

    selected = filter_variants(variants, status=status)
    if not selected:
        raise ExportError("No variants to export")

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _write_sheet(writer, build_export_table(selected), STATUS_SHEET_NAMES[status])
    return buffer.getvalue()


def export_csv(variants: list[ModelVariant]) -> bytes:
    """UTF-8 CSV with BOM so Excel opens Hangul correctly."""
    return build_export_table(variants).to_csv(index=False).encode("utf-8-sig")


def default_filename(kind: str = "report", extension: str = "xlsx", today: date | None = None) -> str:
    """
    Download file name carrying the date, e.g. 차량_대기_현황_2024-06-01.xlsx.

    `kind` is "report" or one of the status keys used by export_filtered_xlsx.
    """
    today = today or date.today()
    if kind in STATUS_FIELDS or kind == "all":
        prefix = STATUS_SHEET_NAMES[kind]
    else:
        prefix = "차량_대기_현황"
    return f"{prefix}_{today.isoformat()}.{extension}"
