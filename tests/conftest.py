from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from margin_dashboard.config import DEFAULT_PRODUCTS, DashboardConfig, quarter_labels
from margin_dashboard.store import WorkbookStore


QUARTERS = quarter_labels(2023, 1, 8)
BASE_RATES = [0.42, 0.30, 0.15, 0.25]


def sample_raw_rows() -> list[tuple]:
    rows = []
    for p_idx, product in enumerate(DEFAULT_PRODUCTS):
        for q_idx, label in enumerate(QUARTERS):
            year, quarter = label.split()
            revenue = 1000.0 + 250 * q_idx + 100 * p_idx
            rate = BASE_RATES[p_idx] + 0.01 * q_idx
            rows.append((int(year), quarter, product, revenue, round(revenue * rate, 2)))
    return rows


def sample_keys() -> list[tuple[str, str]]:
    return [(product, label) for product in DEFAULT_PRODUCTS for label in QUARTERS]


def build_workbook(raw_rows: list[tuple] | None = None, keys: list[tuple[str, str]] | None = None) -> Workbook:
    raw_rows = sample_raw_rows() if raw_rows is None else raw_rows
    keys = sample_keys() if keys is None else keys

    wb = Workbook()
    dashboard = wb.active
    dashboard.title = "Dashboard"
    dashboard["A1"] = "Quarterly Performance Summary"
    for col, header in enumerate(
        ["Product", "Quarter", "Total Revenue", "Weighted Avg Margin", "Rolling Trend", "YoY Delta", "Health"],
        start=1,
    ):
        dashboard.cell(row=7, column=col, value=header)
    for row, (product, label) in enumerate(keys, start=8):
        dashboard.cell(row=row, column=1, value=product)
        dashboard.cell(row=row, column=2, value=label)

    raw = wb.create_sheet("Raw Data")
    raw.append(["Date", "Year", "Quarter", "Product", "Revenue", "Cost", "Margin Revenue"])
    for year, quarter, product, revenue, margin_revenue in raw_rows:
        raw.append([None, year, quarter, product, revenue, revenue - margin_revenue, margin_revenue])
    return wb


@pytest.fixture
def cfg() -> DashboardConfig:
    return DashboardConfig()


@pytest.fixture
def workbook() -> Workbook:
    return build_workbook()


@pytest.fixture
def store(workbook: Workbook) -> WorkbookStore:
    return WorkbookStore.in_memory(workbook)


@pytest.fixture
def workbook_path(tmp_path: Path, workbook: Workbook) -> Path:
    path = tmp_path / "dashboard_input.xlsx"
    workbook.save(path)
    return path
