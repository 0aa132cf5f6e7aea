"""
Dashboard helpers over reconciled variants.

Pure functions, no side effects:
- Filtering by model / color / trim / status / free-text search
- Sorting by model (Korean collation), total count or delivery date
- Summary recalculation for a filtered subset
- Grouping variants under their model name
"""

from dataclasses import dataclass, field

import pandas as pd

from .collation import korean_sort_key
from .reconciliation import AnalysisSummary, ModelVariant

STATUS_FIELDS = {
    "in_transit": "in_transit_count",
    "pending_assigned": "assigned_count",
    "pending_unassigned": "unassigned_count",
}

SORT_FIELDS = ("model", "total_count", "delivery_date")

FRAME_COLUMNS = [
    "model",
    "color",
    "trim",
    "year",
    "delivery_date",
    "in_transit",
    "pending_assigned",
    "pending_unassigned",
    "total_count",
    "salesmen",
]


def filter_variants(
    variants: list[ModelVariant],
    model: str | None = None,
    color: str | None = None,
    trim: str | None = None,
    status: str | None = None,
    search_query: str | None = None,
) -> list[ModelVariant]:
    """
    Keep variants matching every non-empty predicate.

    model / color / trim are case-insensitive substring matches on the
    corresponding field. status is one of STATUS_FIELDS ("all" or empty
    disables it) and keeps variants whose count is > 0. search_query
    matches model, color, trim or the year.
    """
    result = list(variants)

    for attr, needle in (("model", model), ("color", color), ("trim", trim)):
        if needle:
            lowered = needle.lower()
            result = [v for v in result if lowered in getattr(v, attr).lower()]

    if status and status != "all":
        if status not in STATUS_FIELDS:
            raise ValueError(f"Unknown status filter: {status!r}")
        count_attr = STATUS_FIELDS[status]
        result = [v for v in result if getattr(v, count_attr) > 0]

    if search_query:
        query = search_query.lower()
        result = [
            v
            for v in result
            if query in v.model.lower()
            or query in v.color.lower()
            or query in v.trim.lower()
            or query in str(v.year)
        ]

    return result


def sort_variants(
    variants: list[ModelVariant],
    sort_by: str = "model",
    order: str = "asc",
) -> list[ModelVariant]:
    """Stable sort; descending keeps ties in their original order too."""
    if sort_by == "model":
        key = lambda v: korean_sort_key(v.model)  # noqa: E731
    elif sort_by == "total_count":
        key = lambda v: v.total_count  # noqa: E731
    elif sort_by == "delivery_date":
        key = lambda v: v.delivery_date  # noqa: E731
    else:
        raise ValueError(f"sort_by must be one of {SORT_FIELDS}, got {sort_by!r}")

    if order not in ("asc", "desc"):
        raise ValueError(f"order must be 'asc' or 'desc', got {order!r}")

    return sorted(variants, key=key, reverse=(order == "desc"))


def recalculate_summary(variants: list[ModelVariant]) -> AnalysisSummary:
    """
    Summary for a filtered subset of variants.

    Record-level provenance is gone at this point, so a variant counts as
    unmatched when it has units in transit and no sales orders at all.
    """
    return AnalysisSummary(
        total_models=len(variants),
        total_vehicles=sum(v.total_count for v in variants),
        in_transit=sum(v.in_transit_count for v in variants),
        pending_assigned=sum(v.assigned_count for v in variants),
        pending_unassigned=sum(v.unassigned_count for v in variants),
        unmatched_models=len(
            [
                v
                for v in variants
                if v.in_transit_count > 0 and v.assigned_count == 0 and v.unassigned_count == 0
            ]
        ),
    )


@dataclass
class ModelGroup:
    """All variants sharing one model name, with rolled-up counts."""

    model_name: str
    variants: list[ModelVariant] = field(default_factory=list)
    total_count: int = 0
    in_transit: int = 0
    pending_assigned: int = 0
    pending_unassigned: int = 0
    earliest_delivery_date: str = ""
    salespeople: list[str] = field(default_factory=list)


def group_by_model(
    variants: list[ModelVariant],
    sort_by: str = "model",
    order: str = "asc",
) -> list[ModelGroup]:
    """
    Group variants by model name for the card view.

    Within a group, variants are ordered newest year first, then color,
    then trim. Groups sort by name or by rolled-up total_count.
    """
    buckets: dict[str, list[ModelVariant]] = {}
    for v in variants:
        buckets.setdefault(v.model, []).append(v)

    groups = []
    for name, members in buckets.items():
        transit_dates = sorted(
            v.delivery_date for v in members if v.in_transit_count > 0 and v.delivery_date
        )
        salespeople = list(
            dict.fromkeys(
                s for v in members if v.unassigned_count > 0 for s in v.salespeople if s.strip()
            )
        )
        ordered = sorted(
            members,
            key=lambda v: (-v.year, korean_sort_key(v.color), korean_sort_key(v.trim)),
        )
        groups.append(
            ModelGroup(
                model_name=name,
                variants=ordered,
                total_count=sum(v.total_count for v in members),
                in_transit=sum(v.in_transit_count for v in members),
                pending_assigned=sum(v.assigned_count for v in members),
                pending_unassigned=sum(v.unassigned_count for v in members),
                earliest_delivery_date=transit_dates[0] if transit_dates else "",
                salespeople=salespeople,
            )
        )

    reverse = order == "desc"
    if sort_by == "total_count":
        groups.sort(key=lambda g: g.total_count, reverse=reverse)
    else:
        groups.sort(key=lambda g: korean_sort_key(g.model_name), reverse=reverse)
    return groups


def unique_filter_values(variants: list[ModelVariant]) -> dict[str, list[str]]:
    """Distinct non-empty models, colors and trims for filter dropdowns."""

    def distinct(attr: str) -> list[str]:
        values = {getattr(v, attr) for v in variants if getattr(v, attr).strip()}
        return sorted(values, key=korean_sort_key)

    return {"models": distinct("model"), "colors": distinct("color"), "trims": distinct("trim")}


def status_tab_counts(variants: list[ModelVariant]) -> dict[str, int]:
    """Number of distinct model names per status tab."""
    counts = {"all": len({v.model for v in variants})}
    for status, attr in STATUS_FIELDS.items():
        counts[status] = len({v.model for v in variants if getattr(v, attr) > 0})
    return counts


def variants_to_frame(variants: list[ModelVariant]) -> pd.DataFrame:
    """Variants as a DataFrame using the JSON field names."""
    rows = [v.model_dump(by_alias=True) for v in variants]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
