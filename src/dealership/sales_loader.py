"""
Sales workbook loader for the dealer's sales-order export.

THIS FILE CONTAINS CLIENT-SPECIFIC HARDCODED LOGIC:
- Column letters of the dealer management system's order export
- A commission number in column S means the order has a car assigned

To adapt for a new dealer, update COLUMN_MAPPING.
"""

from core.observability import get_logger, with_run_context
from core.parsers import cell_text, column_to_index
from core.quality import RowTally
from core.records import SalesRecord

from .workbooks import Extraction, Rows, Workbook

logger = get_logger(__name__)


class SalesLoader:
    """
    Turns the first sheet of the sales export into SalesRecord objects.

    The export has one header row and no stable header texts (they are
    localized and get renamed between system versions), so columns are
    addressed by letter. The header row is only checked for presence at
    the mapped columns, as an early hint that the layout has shifted.
    """

    COLUMN_MAPPING = {
        "model_description": "T",
        "exterior_color": "Y",
        "trim": "Z",
        "model_year": "AA",
        "commission_number": "S",
        "salesperson": "L",
    }

    def __init__(self, column_mapping: dict[str, str] | None = None):
        self.column_mapping = dict(column_mapping or self.COLUMN_MAPPING)
        self.column_indexes = {
            field: column_to_index(letter) for field, letter in self.column_mapping.items()
        }

    def load(self, workbook: Workbook) -> Extraction:
        sheet_name = workbook.select_sheet()
        with with_run_context(source="sales"):
            extraction = self.extract(workbook.rows(sheet_name))
        extraction.sheet_name = sheet_name
        return extraction

    def verify_header(self, header: list, tally: RowTally) -> list[str]:
        """Mapped column letters whose header cell is missing or blank."""
        missing = []
        for letter in self.column_mapping.values():
            idx = column_to_index(letter)
            if idx >= len(header) or not cell_text(header[idx]):
                missing.append(letter)
                tally.reject("header_mismatch", letter)

        if missing:
            logger.warning(
                "Sales header has blank cells at mapped columns, layout may have changed",
                extra_fields={"columns": ",".join(missing), "header_width": len(header)},
            )
        return missing

    def extract(self, rows: Rows) -> Extraction:
        tally = RowTally("Sales")
        records = []

        if not rows:
            report = tally.build(total_rows=0, extracted=0)
            return Extraction(records=records, report=report)

        notes = []
        missing = self.verify_header(rows[0], tally)
        if missing:
            notes.append(f"Header blank at columns {', '.join(missing)}")

        data_rows = rows[1:]

        for row in data_rows:
            values = {
                field: cell_text(row[idx]) if idx < len(row) else ""
                for field, idx in self.column_indexes.items()
            }
            if not values["model_description"]:
                if any(cell_text(c) for c in row):
                    tally.reject("missing_model", self.column_mapping["model_description"])
                continue
            records.append(SalesRecord(**values))

        report = tally.build(total_rows=len(data_rows), extracted=len(records))
        logger.debug(
            "Sales rows extracted",
            extra_fields={
                **report.summary(),
                "assigned": sum(1 for r in records if r.is_assigned),
            },
        )
        return Extraction(records=records, report=report, notes=notes)
