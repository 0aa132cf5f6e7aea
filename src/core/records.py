"""
Record types produced by the workbook loaders.

Both record types expose the same four variant fields, so the
reconciliation engine can key and describe either one without caring
which file it came from.
"""

from dataclasses import dataclass
from typing import Protocol


class VariantFields(Protocol):
    """The attributes shared by logistics and sales records."""

    model_description: str
    exterior_color: str
    trim: str
    model_year: str


@dataclass(frozen=True)
class LogisticsRecord:
    """One physical unit that is incoming or in transit."""

    model_description: str
    exterior_color: str = ""
    trim: str = ""
    model_year: str = ""
    delivery_date: str = ""  # YYYY-MM-DD or ""
    logistics_status: str = ""  # raw text, e.g. "VPC입고", "운송중"


@dataclass(frozen=True)
class SalesRecord:
    """One sales-order line."""

    model_description: str
    exterior_color: str = ""
    trim: str = ""
    model_year: str = ""
    commission_number: str = ""  # non-empty means the order is assigned
    salesperson: str = ""

    @property
    def is_assigned(self) -> bool:
        return bool(self.commission_number.strip())
