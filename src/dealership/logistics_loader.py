"""
Logistics workbook loader for the importer's vehicle logistics export.

THIS FILE CONTAINS CLIENT-SPECIFIC HARDCODED LOGIC:
- Two known sheet layouts (an aggregated pivot and a one-row-per-car list)
- Fixed column positions for each layout
- Status vocabulary of the importer's logistics system (운송중, VPC입고)

To adapt for a new importer:
1. Update the column constants on LogisticsLoader
2. Adjust CLASS_TOKENS so classify_layout() recognises their pivot rows
3. Adjust is_accepted_status() to their status wording
"""

from enum import Enum
import re
from typing import Any

from core.observability import get_logger, with_run_context
from core.parsers import DateNormalizer, cell_text, index_to_column
from core.quality import RowTally
from core.records import LogisticsRecord

from .workbooks import Extraction, Rows, Workbook

logger = get_logger(__name__)


class LogisticsLayout(Enum):
    AGGREGATED = "aggregated"
    INDIVIDUAL = "individual"


# Vehicle class names found in column A of the aggregated pivot
CLASS_TOKENS = ("amg", "mercedes", "maybach")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_HEADER_NOISE = re.compile(r"[\s._\-]+")


def _cell(row: list[Any], index: int) -> Any:
    return row[index] if index < len(row) else ""


def _is_number(value: Any) -> bool:
    text = cell_text(value)
    if not text:
        return False
    try:
        float(text)
    except ValueError:
        return False
    return True


def _is_blank_row(row: list[Any]) -> bool:
    return all(not cell_text(c) for c in row)


def classify_layout(rows: Rows) -> LogisticsLayout:
    """
    Decide which layout a logistics sheet uses by probing its third row.

    Aggregated pivots have a vehicle class in A, a numeric model year in B,
    a model name in C and a numeric quantity in D or E. Anything else is
    treated as the per-vehicle list.
    """
    if len(rows) < 3 or len(rows[2]) < 5:
        return LogisticsLayout.INDIVIDUAL

    row = rows[2]
    vehicle_class = cell_text(row[0]).lower()
    if not any(token in vehicle_class for token in CLASS_TOKENS):
        return LogisticsLayout.INDIVIDUAL
    if not _is_number(row[1]) or not cell_text(row[2]):
        return LogisticsLayout.INDIVIDUAL
    if not (_is_number(row[3]) or _is_number(row[4])):
        return LogisticsLayout.INDIVIDUAL
    return LogisticsLayout.AGGREGATED


def parse_quantity(value: Any) -> int:
    """Leading integer of a quantity cell; negative or unreadable gives 0."""
    match = _LEADING_INT.match(cell_text(value))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def is_accepted_status(status: str) -> bool:
    """Only cars on their way count: 운송중, or VPC and 입고 anywhere in the text."""
    lowered = (status or "").lower()
    return "운송중" in lowered or ("vpc" in lowered and "입고" in lowered)


def find_delivery_column(header_rows: Rows) -> int | None:
    """Column whose header names a planned delivery date, searching row by row."""
    for header in header_rows:
        for idx, value in enumerate(header):
            text = _HEADER_NOISE.sub("", cell_text(value).lower())
            if (
                ("plan" in text and "deliv" in text)
                or "도착예정" in text
                or "배송예정" in text
                or ("delivery" in text and "date" in text)
            ):
                return idx
    return None


class LogisticsLoader:
    """
    Turns the logistics sheet into LogisticsRecord objects.

    Client-specific quirks handled:
    - The export is sometimes a pivot with quantities per (class, year,
      model), sometimes one row per vehicle
    - The pivot has two header rows and no color or trim
    - Delivery dates arrive as serials, dotted or Korean text
    - Cars still abroad (해외발송대기 etc.) are in the file but not counted
    """

    PREFERRED_SHEET = "Sheet 1"

    # Aggregated pivot, 0-based
    AGG_HEADER_ROWS = 2
    AGG_CLASS_COL = 0
    AGG_YEAR_COL = 1
    AGG_MODEL_COL = 2
    AGG_VPC_QTY_COL = 3
    AGG_TRANSIT_QTY_COL = 4

    # One row per vehicle, 0-based
    MODEL_COL = 4
    COLOR_COL = 7
    TRIM_COL = 8
    YEAR_COL = 12
    DELIVERY_COL = 15
    STATUS_COL = 18

    VPC_STATUS = "VPC입고"
    TRANSIT_STATUS = "운송중"

    def __init__(self, date_normalizer: DateNormalizer | None = None):
        self.date_normalizer = date_normalizer or DateNormalizer()

    def load(self, workbook: Workbook) -> Extraction:
        sheet_name = workbook.select_sheet(self.PREFERRED_SHEET)
        with with_run_context(source="logistics"):
            extraction = self.extract(workbook.rows(sheet_name))
        extraction.sheet_name = sheet_name
        return extraction

    def extract(self, rows: Rows) -> Extraction:
        """Classify the layout and extract records from a row matrix."""
        layout = classify_layout(rows)
        logger.debug(
            "Logistics layout detected",
            extra_fields={"layout": layout.value, "rows": len(rows)},
        )

        if layout is LogisticsLayout.AGGREGATED:
            extraction = self._extract_aggregated(rows)
        else:
            extraction = self._extract_individual(rows)

        extraction.layout = layout.value
        logger.debug("Logistics rows extracted", extra_fields=extraction.report.summary())
        if extraction.report.status_counts:
            logger.debug(
                "Logistics status distribution",
                extra_fields=extraction.report.status_counts,
            )
        return extraction

    def _extract_aggregated(self, rows: Rows) -> Extraction:
        tally = RowTally("Logistics")
        records = []
        header_rows = rows[: self.AGG_HEADER_ROWS]
        data_rows = rows[self.AGG_HEADER_ROWS:]

        delivery_col = find_delivery_column(header_rows)
        if delivery_col is None:
            logger.debug("No delivery date column found in pivot headers")

        for row in data_rows:
            if _is_blank_row(row):
                continue

            model = cell_text(_cell(row, self.AGG_MODEL_COL))
            year = cell_text(_cell(row, self.AGG_YEAR_COL))
            if not model:
                tally.reject("missing_model", index_to_column(self.AGG_MODEL_COL))
                continue
            if not year:
                tally.reject("missing_year", index_to_column(self.AGG_YEAR_COL), sample=model)
                continue

            delivery_date = ""
            if delivery_col is not None:
                raw_date = _cell(row, delivery_col)
                delivery_date = self.date_normalizer.normalize(raw_date)
                if cell_text(raw_date) and not delivery_date:
                    tally.reject("unparsed_date", index_to_column(delivery_col), sample=raw_date)

            vpc_qty = parse_quantity(_cell(row, self.AGG_VPC_QTY_COL))
            transit_qty = parse_quantity(_cell(row, self.AGG_TRANSIT_QTY_COL))

            for status, quantity in ((self.VPC_STATUS, vpc_qty), (self.TRANSIT_STATUS, transit_qty)):
                if quantity:
                    tally.status_counts[status] += quantity
                records.extend(
                    LogisticsRecord(
                        model_description=model,
                        model_year=year,
                        delivery_date=delivery_date,
                        logistics_status=status,
                    )
                    for _ in range(quantity)
                )

        report = tally.build(
            total_rows=len(data_rows),
            extracted=len(records),
            layout=LogisticsLayout.AGGREGATED.value,
        )
        return Extraction(records=records, report=report)

    def _extract_individual(self, rows: Rows) -> Extraction:
        tally = RowTally("Logistics")
        records = []
        data_rows = rows[1:]

        for row in data_rows:
            if _is_blank_row(row):
                continue

            model = cell_text(_cell(row, self.MODEL_COL))
            if not model:
                tally.reject("missing_model", index_to_column(self.MODEL_COL))
                continue

            status = cell_text(_cell(row, self.STATUS_COL))
            tally.count_status(status)
            if not is_accepted_status(status):
                tally.reject("status_filtered", index_to_column(self.STATUS_COL), sample=status)
                continue

            raw_date = _cell(row, self.DELIVERY_COL)
            delivery_date = self.date_normalizer.normalize(raw_date)
            if cell_text(raw_date) and not delivery_date:
                tally.reject("unparsed_date", index_to_column(self.DELIVERY_COL), sample=raw_date)

            records.append(
                LogisticsRecord(
                    model_description=model,
                    exterior_color=cell_text(_cell(row, self.COLOR_COL)),
                    trim=cell_text(_cell(row, self.TRIM_COL)),
                    model_year=cell_text(_cell(row, self.YEAR_COL)),
                    delivery_date=delivery_date,
                    logistics_status=status,
                )
            )

        report = tally.build(
            total_rows=len(data_rows),
            extracted=len(records),
            layout=LogisticsLayout.INDIVIDUAL.value,
        )
        return Extraction(records=records, report=report)
