# Core reusable components for vehicle availability reconciliation
# Nothing in here knows about a particular dealer's file layout

from .parsers import DateNormalizer, VariantKeyNormalizer, normalize_date, generate_variant_key
from .records import LogisticsRecord, SalesRecord
from .quality import DataQualityReport, RowTally
from .reconciliation import (
    ReconciliationEngine,
    ModelVariant,
    AnalysisSummary,
    AnalysisResult,
    reconcile,
)
from .analysis import (
    filter_variants,
    sort_variants,
    recalculate_summary,
    group_by_model,
    unique_filter_values,
    status_tab_counts,
)
from .errors import ReconciliationError, user_message

__all__ = [
    "DateNormalizer",
    "VariantKeyNormalizer",
    "normalize_date",
    "generate_variant_key",
    "LogisticsRecord",
    "SalesRecord",
    "DataQualityReport",
    "RowTally",
    "ReconciliationEngine",
    "ModelVariant",
    "AnalysisSummary",
    "AnalysisResult",
    "reconcile",
    "filter_variants",
    "sort_variants",
    "recalculate_summary",
    "group_by_model",
    "unique_filter_values",
    "status_tab_counts",
    "ReconciliationError",
    "user_message",
]
