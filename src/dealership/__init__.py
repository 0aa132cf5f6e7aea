# Dealer-specific workbook adapters
# Each loader contains hardcoded logic specific to one export's layout

from .logistics_loader import LogisticsLayout, LogisticsLoader, classify_layout
from .sales_loader import SalesLoader
from .pipeline import AnalysisPipeline, AnalysisRun, run_analysis
from .workbooks import Workbook, decode_workbook, validate_upload

__all__ = [
    "LogisticsLayout",
    "LogisticsLoader",
    "classify_layout",
    "SalesLoader",
    "AnalysisPipeline",
    "AnalysisRun",
    "run_analysis",
    "Workbook",
    "decode_workbook",
    "validate_upload",
]
