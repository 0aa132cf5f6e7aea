"""
End-to-end analysis of one pair of uploads.

decode logistics -> decode sales -> extract both -> reconcile, all in a
worker thread that the caller waits on for at most the configured budget.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
import time
import uuid

from core.config import Settings, get_settings
from core.errors import AnalysisTimeoutError
from core.observability import get_logger, with_run_context
from core.quality import DataQualityReport
from core.reconciliation import AnalysisResult, ReconciliationEngine

from .logistics_loader import LogisticsLoader
from .sales_loader import SalesLoader
from .workbooks import Workbook

logger = get_logger(__name__)


@dataclass
class AnalysisRun:
    """Result of one analysis plus what the loaders had to skip."""

    run_id: str
    result: AnalysisResult
    logistics_report: DataQualityReport
    sales_report: DataQualityReport
    elapsed_seconds: float
    logistics_layout: str | None = None

    @property
    def quality_reports(self) -> dict[str, DataQualityReport]:
        return {"logistics": self.logistics_report, "sales": self.sales_report}

    def to_payload(self) -> dict:
        payload = self.result.to_payload()
        payload["run"] = {
            "run_id": self.run_id,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "logistics_layout": self.logistics_layout,
            "logistics": self.logistics_report.summary(),
            "sales": self.sales_report.summary(),
        }
        return payload


class AnalysisPipeline:
    """
    Runs the loaders and the ReconciliationEngine for one upload pair.

    Usage:
        pipeline = AnalysisPipeline()
        run = pipeline.run(logistics_bytes, sales_bytes)
        run.result.summary.total_models
    """

    def __init__(
        self,
        settings: Settings | None = None,
        logistics_loader: LogisticsLoader | None = None,
        sales_loader: SalesLoader | None = None,
    ):
        self.settings = settings or get_settings()
        self.logistics_loader = logistics_loader or LogisticsLoader()
        self.sales_loader = sales_loader or SalesLoader()

    def run(self, logistics_bytes: bytes, sales_bytes: bytes) -> AnalysisRun:
        """Analyse both files, raising AnalysisTimeoutError past the budget."""
        run_id = uuid.uuid4().hex[:12]
        budget = self.settings.analysis_timeout_seconds

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="analysis")
        future = executor.submit(self._analyze, run_id, logistics_bytes, sales_bytes)
        try:
            return future.result(timeout=budget)
        except FutureTimeoutError as e:
            future.cancel()
            with with_run_context(run_id=run_id):
                logger.error("Analysis timed out", extra_fields={"budget_seconds": budget})
            raise AnalysisTimeoutError(budget) from e
        finally:
            # A timed-out worker cannot be interrupted; it finishes on its own
            executor.shutdown(wait=False, cancel_futures=True)

    def _analyze(self, run_id: str, logistics_bytes: bytes, sales_bytes: bytes) -> AnalysisRun:
        with with_run_context(run_id=run_id):
            started = time.perf_counter()

            with with_run_context(stage="decode"):
                logistics_book = Workbook(logistics_bytes, "logistics")
                sales_book = Workbook(sales_bytes, "sales")

            with with_run_context(stage="extract"):
                logistics = self.logistics_loader.load(logistics_book)
                sales = self.sales_loader.load(sales_book)

            with with_run_context(stage="reconcile"):
                result = ReconciliationEngine(logistics.records, sales.records).reconcile()

            elapsed = time.perf_counter() - started
            if elapsed > self.settings.slow_analysis_warn_seconds:
                logger.warning(
                    "Analysis is close to its time budget",
                    extra_fields={
                        "elapsed_seconds": round(elapsed, 2),
                        "budget_seconds": self.settings.analysis_timeout_seconds,
                    },
                )

            logger.info(
                "Analysis finished",
                extra_fields={
                    "elapsed_seconds": round(elapsed, 3),
                    "layout": logistics.layout,
                    "logistics_records": len(logistics.records),
                    "sales_records": len(sales.records),
                    **result.summary.model_dump(by_alias=True),
                },
            )

            return AnalysisRun(
                run_id=run_id,
                result=result,
                logistics_report=logistics.report,
                sales_report=sales.report,
                elapsed_seconds=elapsed,
                logistics_layout=logistics.layout,
            )


def run_analysis(
    logistics_bytes: bytes,
    sales_bytes: bytes,
    settings: Settings | None = None,
) -> AnalysisRun:
    """Run the AnalysisPipeline with default loaders."""
    return AnalysisPipeline(settings=settings).run(logistics_bytes, sales_bytes)
