"""
Shared fixtures: in-memory workbooks and row builders for both exports.
"""

import io

import pandas as pd
import pytest

from core.records import LogisticsRecord, SalesRecord


def _workbook_bytes(sheets: dict[str, list[list]]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return buffer.getvalue()


def _logistics_row(model="", color="", trim="", year="", delivery="", status=""):
    row = [""] * 19
    row[4] = model
    row[7] = color
    row[8] = trim
    row[12] = year
    row[15] = delivery
    row[18] = status
    return row


def _sales_row(model="", color="", trim="", year="", commission="", salesperson=""):
    row = [""] * 27
    row[19] = model  # T
    row[24] = color  # Y
    row[25] = trim  # Z
    row[26] = year  # AA
    row[18] = commission  # S
    row[11] = salesperson  # L
    return row


@pytest.fixture
def make_workbook():
    """Factory: {sheet name: rows} -> .xlsx bytes."""
    return _workbook_bytes


@pytest.fixture
def logistics_row():
    """Factory for one row of the per-vehicle logistics layout."""
    return _logistics_row


@pytest.fixture
def sales_row():
    """Factory for one row of the sales export."""
    return _sales_row


@pytest.fixture
def logistics_header():
    return [f"L{i}" for i in range(19)]


@pytest.fixture
def sales_header():
    return [f"S{i}" for i in range(27)]


@pytest.fixture
def aggregated_rows():
    """Pivot layout: two header rows, quantities per class/year/model."""
    return [
        ["Class", "MY", "Model", "VPC", "In transit", "Plan. Delivery"],
        ["", "", "", "Qty", "Qty", ""],
        ["Mercedes-AMG", 2024, "G 63", 2, 1, "2024.06.01"],
        ["Mercedes", "2025", "E 300 4MATIC", 0, 3, ""],
        ["Maybach", "", "S 580", 1, 0, ""],
        ["AMG", 2024, "", 1, 1, ""],
    ]


@pytest.fixture
def g63_scenario():
    """Two G 63 units in transit and one unassigned order by Kim."""
    logistics = [
        LogisticsRecord(
            model_description="Mercedes-AMG G 63",
            exterior_color="Black",
            trim="AMG Line",
            model_year="2024",
            delivery_date="2024-06-01",
            logistics_status="운송중",
        ),
        LogisticsRecord(
            model_description="G 63",
            exterior_color="black",
            trim="amg line",
            model_year="2024",
            delivery_date="2024-06-01",
            logistics_status="운송중",
        ),
    ]
    sales = [
        SalesRecord(
            model_description="G 63",
            exterior_color=" Black",
            trim="  AMG Line ",
            model_year="2024",
            commission_number="",
            salesperson="Kim",
        )
    ]
    return logistics, sales
