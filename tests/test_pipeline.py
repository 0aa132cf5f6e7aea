"""
End-to-end tests: workbook bytes in, reconciled variants out.
"""

import logging
import time

import pytest

from core.config import Settings
from core.errors import AnalysisTimeoutError, WorkbookReadError
from dealership.pipeline import AnalysisPipeline, run_analysis


@pytest.fixture
def upload_pair(make_workbook, logistics_header, logistics_row, sales_header, sales_row):
    logistics = make_workbook(
        {
            "Sheet 1": [
                logistics_header,
                logistics_row("Mercedes-AMG G 63", "Black", "AMG Line", 2024, "2024.06.01", "운송중"),
                logistics_row("Mercedes-AMG G 63", "Black", "AMG Line", 2024, "2024-06-01", "운송중"),
                logistics_row("E 300", "White", "Avantgarde", 2025, "", "해외발송대기"),
            ]
        }
    )
    sales = make_workbook(
        {
            "Orders": [
                sales_header,
                sales_row("G 63", "black", "amg line", "2024", "", "Kim"),
                sales_row("S 580", "Silver", "", 2024, "C-77", "Lee"),
            ]
        }
    )
    return logistics, sales


class SlowLoader:
    """Stands in for a loader stuck on a huge sheet."""

    def __init__(self, delay):
        self.delay = delay

    def load(self, workbook):
        time.sleep(self.delay)
        raise AssertionError("should have timed out first")


class TestRunAnalysis:
    def test_end_to_end(self, upload_pair):
        run = run_analysis(*upload_pair, settings=Settings())

        by_model = {v.model: v for v in run.result.variants}
        # E 300 is still abroad, so it never becomes a record
        assert set(by_model) == {"Mercedes-AMG G 63", "S 580"}

        g63 = by_model["Mercedes-AMG G 63"]
        assert g63.in_transit_count == 2
        assert g63.assigned_count == 0
        assert g63.unassigned_count == 1
        assert g63.total_count == 1
        assert g63.salespeople == ["Kim"]
        assert g63.delivery_date == "2024-06-01"

        s580 = by_model["S 580"]
        assert s580.assigned_count == 1
        assert s580.in_transit_count == 0
        assert s580.salespeople == []

        assert run.result.summary.unmatched_models == 0
        assert run.logistics_layout == "individual"
        assert len(run.run_id) == 12
        assert run.elapsed_seconds >= 0

    def test_quality_reports_are_attached(self, upload_pair):
        run = run_analysis(*upload_pair, settings=Settings())

        assert run.logistics_report.extracted_records == 2
        assert run.logistics_report.status_counts == {"운송중": 2, "해외발송대기": 1}
        assert run.sales_report.extracted_records == 2
        assert set(run.quality_reports) == {"logistics", "sales"}

    def test_payload_carries_run_metadata(self, upload_pair):
        payload = run_analysis(*upload_pair, settings=Settings()).to_payload()

        assert set(payload) == {"models", "summary", "run"}
        assert payload["run"]["logistics_layout"] == "individual"
        assert payload["run"]["logistics"]["extracted"] == 2

    def test_unreadable_upload(self, upload_pair):
        with pytest.raises(WorkbookReadError):
            run_analysis(b"not a workbook", upload_pair[1], settings=Settings())

    def test_timeout(self, upload_pair):
        pipeline = AnalysisPipeline(
            settings=Settings(analysis_timeout_seconds=1), logistics_loader=SlowLoader(3)
        )
        with pytest.raises(AnalysisTimeoutError) as excinfo:
            pipeline.run(*upload_pair)
        assert excinfo.value.budget_seconds == 1

    def test_slow_run_logs_warning(self, upload_pair, caplog):
        pipeline = AnalysisPipeline(settings=Settings(slow_analysis_warn_seconds=-1))
        with caplog.at_level(logging.WARNING, logger="dealership.pipeline"):
            pipeline.run(*upload_pair)
        assert "close to its time budget" in caplog.text
