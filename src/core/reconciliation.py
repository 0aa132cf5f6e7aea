"""
Reconciliation engine for matching incoming vehicles against sales orders.

Logistics units and sales orders share no identifier, so both sides are
keyed by a normalized (model, color, trim, year) variant key and joined
with a full outer join. Each key becomes one ModelVariant with its
in-transit, assigned and unassigned counts.
"""

from dataclasses import asdict, fields
from enum import Enum
import re
from typing import Iterable

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, computed_field

from .collation import korean_sort_key
from .observability import get_logger
from .parsers import VariantKeyNormalizer
from .records import LogisticsRecord, SalesRecord

logger = get_logger(__name__)


class LogisticsStatus(Enum):
    """How a logistics status text counts toward availability."""

    IN_TRANSIT = "in_transit"
    UNKNOWN = "unknown"


class AssignmentStatus(Enum):
    """Whether a sales order has a commission number yet."""

    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


IN_TRANSIT_MARKERS = ("운송중", "vpc입고", "transit")
_EMPTY_DATE_MARKERS = {"undefined", "null"}
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def categorize_logistics_status(status: str) -> LogisticsStatus:
    lowered = (status or "").lower()
    if any(marker in lowered for marker in IN_TRANSIT_MARKERS):
        return LogisticsStatus.IN_TRANSIT
    return LogisticsStatus.UNKNOWN


def check_assignment_status(commission_number: str) -> AssignmentStatus:
    if commission_number and commission_number.strip():
        return AssignmentStatus.ASSIGNED
    return AssignmentStatus.UNASSIGNED


def parse_year(value: str) -> int:
    """Leading integer of a year cell ("2024", "2024.0", "2024 MY"), else 0."""
    match = _LEADING_INT.match(str(value or ""))
    return int(match.group(1)) if match else 0


def _usable_date(value: str) -> bool:
    return bool(value and value.strip()) and value not in _EMPTY_DATE_MARKERS


def select_delivery_date(all_dates: Iterable[str], in_transit_dates: Iterable[str]) -> str:
    """
    Delivery date to display for one variant.

    Every distinct in-transit date (ascending, comma-joined) when there are
    any; otherwise the earliest date across all logistics units.
    """
    transit = sorted({d for d in in_transit_dates if _usable_date(d)})
    if transit:
        return ", ".join(transit)
    remaining = sorted(d for d in all_dates if _usable_date(d))
    return remaining[0] if remaining else ""


class ModelVariant(BaseModel):
    """One reconciled variant row of the availability dashboard."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    model: str = Field(description="Model name as written in the source file")
    color: str = Field(default="", description="Exterior color")
    trim: str = Field(default="", description="Interior color / trim")
    year: int = Field(default=0, description="Model year, 0 if unparseable")
    delivery_date: str = Field(
        default="", description="YYYY-MM-DD, or several joined by ', '"
    )
    in_transit_count: int = Field(default=0, ge=0, alias="in_transit")
    assigned_count: int = Field(default=0, ge=0, alias="pending_assigned")
    unassigned_count: int = Field(default=0, ge=0, alias="pending_unassigned")
    salespeople: list[str] = Field(
        default_factory=list,
        alias="salesmen",
        description="Salespeople holding unassigned orders for this variant",
    )

    @computed_field
    @property
    def total_count(self) -> int:
        """Signed: negative means more open orders than incoming units."""
        return self.in_transit_count + self.assigned_count - self.unassigned_count


class AnalysisSummary(BaseModel):
    """Totals across all variants of one analysis."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total_models: int = Field(default=0, alias="totalModels")
    total_vehicles: int = Field(default=0, alias="totalVehicles")
    in_transit: int = Field(default=0, alias="inTransit")
    pending_assigned: int = Field(default=0, alias="pendingAssigned")
    pending_unassigned: int = Field(default=0, alias="pendingUnassigned")
    unmatched_models: int = Field(
        default=0,
        alias="unmatchedModels",
        description="Variants with logistics units but no sales orders",
    )


class AnalysisResult(BaseModel):
    """Engine output handed to the dashboard and exporters."""

    model_config = ConfigDict(populate_by_name=True)

    variants: list[ModelVariant] = Field(default_factory=list, alias="models")
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)

    def to_payload(self) -> dict:
        """JSON-ready dict using the field names existing consumers expect."""
        return self.model_dump(by_alias=True)


def summarize(variants: list[ModelVariant], unmatched_models: int) -> AnalysisSummary:
    return AnalysisSummary(
        total_models=len(variants),
        total_vehicles=sum(v.total_count for v in variants),
        in_transit=sum(v.in_transit_count for v in variants),
        pending_assigned=sum(v.assigned_count for v in variants),
        pending_unassigned=sum(v.unassigned_count for v in variants),
        unmatched_models=unmatched_models,
    )


class ReconciliationEngine:
    """
    Joins logistics units and sales orders on the variant key.

    Steps:
    1. Key every record with the VariantKeyNormalizer
    2. Group each side by key
    3. Walk the union of keys (full outer join) and count per side
    4. Sort variants by model name in Korean collation order

    Usage:
        engine = ReconciliationEngine(logistics_records, sales_records)
        result = engine.reconcile()
    """

    def __init__(
        self,
        logistics_records: Iterable[LogisticsRecord],
        sales_records: Iterable[SalesRecord],
        key_normalizer: VariantKeyNormalizer | None = None,
    ):
        self.logistics_records = list(logistics_records)
        self.sales_records = list(sales_records)
        self.normalizer = key_normalizer or VariantKeyNormalizer()

    def _frame(self, records: list, record_type: type) -> pd.DataFrame:
        columns = [f.name for f in fields(record_type)]
        df = pd.DataFrame([asdict(r) for r in records], columns=columns)
        df["variant_key"] = [self.normalizer.key_for(r) for r in records]
        return df

    def _logistics_frame(self) -> pd.DataFrame:
        df = self._frame(self.logistics_records, LogisticsRecord)
        df["in_transit"] = (
            df["logistics_status"]
            .map(lambda s: categorize_logistics_status(s) is LogisticsStatus.IN_TRANSIT)
            .astype(bool)
        )
        return df

    def _sales_frame(self) -> pd.DataFrame:
        df = self._frame(self.sales_records, SalesRecord)
        df["assigned"] = (
            df["commission_number"]
            .map(lambda c: check_assignment_status(c) is AssignmentStatus.ASSIGNED)
            .astype(bool)
        )
        return df

    def reconcile(self) -> AnalysisResult:
        logistics = self._logistics_frame()
        sales = self._sales_frame()

        logistics_groups = {k: g for k, g in logistics.groupby("variant_key", sort=False)}
        sales_groups = {k: g for k, g in sales.groupby("variant_key", sort=False)}
        no_logistics = logistics.iloc[0:0]
        no_sales = sales.iloc[0:0]

        # Logistics keys first, then sales-only keys
        all_keys = list(dict.fromkeys([*logistics_groups, *sales_groups]))

        variants = []
        unmatched = 0
        for key in all_keys:
            log_group = logistics_groups.get(key, no_logistics)
            sales_group = sales_groups.get(key, no_sales)

            variants.append(self._build_variant(log_group, sales_group))

            if len(log_group) > 0 and len(sales_group) == 0:
                unmatched += 1

        variants.sort(key=lambda v: korean_sort_key(v.model))
        summary = summarize(variants, unmatched)

        logger.debug(
            "Reconciliation finished",
            extra_fields={
                "logistics_records": len(self.logistics_records),
                "sales_records": len(self.sales_records),
                "logistics_keys": len(logistics_groups),
                "sales_keys": len(sales_groups),
                "variants": len(variants),
                "unmatched": unmatched,
            },
        )
        return AnalysisResult(variants=variants, summary=summary)

    def _build_variant(self, log_group: pd.DataFrame, sales_group: pd.DataFrame) -> ModelVariant:
        # Logistics rows describe the physical car, so they win over sales rows
        sample = log_group.iloc[0] if len(log_group) > 0 else sales_group.iloc[0]

        in_transit = log_group[log_group["in_transit"]]
        assigned_mask = sales_group["assigned"]
        unassigned = sales_group[~assigned_mask]

        salespeople = list(
            dict.fromkeys(name for name in unassigned["salesperson"] if name and name.strip())
        )

        return ModelVariant(
            model=sample["model_description"],
            color=sample["exterior_color"],
            trim=sample["trim"],
            year=parse_year(sample["model_year"]),
            delivery_date=select_delivery_date(
                log_group["delivery_date"], in_transit["delivery_date"]
            ),
            in_transit_count=len(in_transit),
            assigned_count=int(assigned_mask.sum()),
            unassigned_count=len(unassigned),
            salespeople=salespeople,
        )


def reconcile(
    logistics_records: Iterable[LogisticsRecord],
    sales_records: Iterable[SalesRecord],
) -> AnalysisResult:
    """Run the ReconciliationEngine with default normalization."""
    return ReconciliationEngine(logistics_records, sales_records).reconcile()
