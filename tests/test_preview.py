from __future__ import annotations

import math

import pandas as pd
import pytest

from margin_dashboard.config import DashboardConfig
from margin_dashboard.ingestion import read_raw_data, read_summary_keys
from margin_dashboard.preview import (
    classify_margin,
    evaluate_chart_table,
    evaluate_summary,
    summarize_preview,
)
from margin_dashboard.store import WorkbookStore

from conftest import build_workbook


def _evaluate(raw_rows=None, keys=None, cfg=None):
    cfg = cfg or DashboardConfig()
    store = WorkbookStore.in_memory(build_workbook(raw_rows, keys))
    raw = read_raw_data(store, cfg)
    summary = evaluate_summary(raw, read_summary_keys(store, cfg), cfg)
    return raw, summary.set_index("row"), cfg


@pytest.mark.parametrize(
    "margin, expected",
    [
        (0.50, "Strong"),
        (0.3500001, "Strong"),
        (0.35, "Moderate"),
        (0.27, "Moderate"),
        (0.20, "Moderate"),
        (0.1999999, "At Risk"),
        (0.0, "At Risk"),
        (-0.10, "At Risk"),
        (None, None),
        (float("nan"), None),
    ],
)
def test_classify_margin_partition(margin, expected):
    assert classify_margin(margin) == expected


def test_single_row_scenario():
    raw_rows = [(2023, "Q1", "Widget Pro", 1000.0, 400.0)]
    keys = [("Widget Pro", "2023Q1")]
    cfg = DashboardConfig()
    cfg.summary.row_count = 1

    _, summary, _ = _evaluate(raw_rows, keys, cfg)
    row = summary.loc[8]

    assert row["revenue"] == 1000
    assert row["margin"] == pytest.approx(0.40)
    assert row["trend"] == "N/A"
    assert row["yoy"] == "N/A"
    assert row["health"] == "Strong"


def test_key_matching_ignores_case():
    raw_rows = [
        (2023, "Q1", "Widget Pro", 1000.0, 400.0),
        (2024, "Q1", "Widget Pro", 1000.0, 450.0),
    ]
    keys = [("widget pro", "2023 Q1"), ("WIDGET PRO", "2024 q1")]
    cfg = DashboardConfig()
    cfg.summary.row_count = 2
    cfg.chart_data.quarters = ["2023 q1"]

    raw, summary, _ = _evaluate(raw_rows, keys, cfg)

    first = summary.loc[8]
    assert first["revenue"] == 1000
    assert first["margin"] == pytest.approx(0.40)
    assert first["health"] == "Strong"
    assert summary.loc[9]["yoy"] == pytest.approx(0.05)

    table = evaluate_chart_table(raw, summary, cfg)
    assert table.loc[0, "Widget Pro"] == pytest.approx(0.40)
    assert table.loc[0, cfg.chart_data.total_header] == pytest.approx(1000.0)


@pytest.mark.parametrize("margin_revenue, expected", [(350.0, "Moderate"), (200.0, "Moderate"), (351.0, "Strong")])
def test_boundary_margins_from_raw_data(margin_revenue, expected):
    raw_rows = [(2023, "Q1", "Widget Pro", 1000.0, margin_revenue)]
    cfg = DashboardConfig()
    cfg.summary.row_count = 1

    _, summary, _ = _evaluate(raw_rows, [("Widget Pro", "2023 Q1")], cfg)
    assert summary.loc[8, "health"] == expected


def test_health_matches_classification_for_every_row():
    _, summary, cfg = _evaluate()
    assert len(summary) == 32
    for margin, health in zip(summary["margin"], summary["health"]):
        assert health == classify_margin(margin, cfg.health)
    assert set(summary.loc[8:15, "health"]) == {"Strong"}
    assert summary.loc[24, "health"] == "At Risk"


def test_trend_is_na_at_each_block_start_and_a_difference_otherwise():
    _, summary, _ = _evaluate()

    for block_start in (8, 16, 24, 32):
        assert summary.loc[block_start, "trend"] == "N/A"
    for row in (9, 15, 17, 39):
        expected = summary.loc[row, "margin"] - summary.loc[row - 1, "margin"]
        assert summary.loc[row, "trend"] == pytest.approx(expected)


def test_yoy_compares_same_product_same_quarter_prior_year():
    _, summary, _ = _evaluate()

    for row in range(8, 12):
        assert summary.loc[row, "yoy"] == "N/A"
    for row, prior in ((12, 8), (15, 11), (23, 19), (39, 35)):
        expected = summary.loc[row, "margin"] - summary.loc[prior, "margin"]
        assert summary.loc[row, "yoy"] == pytest.approx(expected)


def test_yoy_missing_prior_year_is_an_error_value():
    raw_rows = [(2024, "Q1", "Widget Pro", 1000.0, 300.0)]
    cfg = DashboardConfig()
    cfg.summary.row_count = 1

    _, summary, _ = _evaluate(raw_rows, [("Widget Pro", "2024 Q1")], cfg)
    assert math.isnan(summary.loc[8, "yoy"])
    assert math.isnan(summary.loc[8, "trend"])


def test_zero_revenue_propagates_division_error():
    cfg = DashboardConfig()
    cfg.summary.row_count = 2
    keys = [("Widget Pro", "2023 Q1"), ("Ghost Product", "2023 Q2")]

    _, summary, _ = _evaluate(keys=keys, cfg=cfg)
    ghost = summary.loc[9]

    assert ghost["revenue"] == 0
    assert math.isnan(ghost["margin"])
    assert math.isnan(ghost["trend"])
    assert ghost["health"] is None


def test_chart_table_matches_summary_margins_and_totals():
    raw, summary, cfg = _evaluate()
    chart = evaluate_chart_table(raw, summary.reset_index(), cfg).set_index("quarter")

    assert list(chart.index) == cfg.chart_data.quarters
    assert chart.loc["2023 Q1", "Widget Pro"] == pytest.approx(summary.loc[8, "margin"])
    assert chart.loc["2024 Q4", "Widget Standard"] == pytest.approx(summary.loc[23, "margin"])
    assert chart.loc["2023 Q1", "Service Package"] is None
    assert chart.loc["2023 Q1", "Accessory Kit"] is None
    assert chart.loc["2023 Q1", "Total Revenue"] == pytest.approx(1000 + 1100 + 1200 + 1300)


def test_chart_table_fill_all_products():
    cfg = DashboardConfig()
    cfg.chart_data.fill_all_products = True
    raw, summary, _ = _evaluate(cfg=cfg)
    chart = evaluate_chart_table(raw, summary.reset_index(), cfg).set_index("quarter")

    assert chart.loc["2023 Q1", "Accessory Kit"] == pytest.approx(summary.loc[32, "margin"])


def test_summarize_preview_counts():
    _, summary, cfg = _evaluate()
    result = summarize_preview(summary.reset_index(), cfg)

    assert result["Rows"] == 32
    assert result["Strong"] + result["Moderate"] + result["At Risk"] == 32
    assert result["Rows With Errors"] == 0
    assert result["Total Revenue"] == pytest.approx(float(summary["revenue"].sum()))


def test_read_raw_data_skips_blank_rows(store, cfg):
    raw = read_raw_data(store, cfg)
    assert len(raw) == 32
    assert list(raw.columns) == ["year", "quarter", "product", "revenue", "margin_revenue"]
    assert pd.api.types.is_numeric_dtype(raw["year"])
