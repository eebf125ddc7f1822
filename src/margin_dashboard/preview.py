"""Pandas rendition of the dashboard formulas.

The workbook formulas are evaluated by the spreadsheet application, not by
this package. The functions here compute the same numbers from the Raw Data
rows so a run can log what the dashboard will show and so the formula
semantics can be exercised without a spreadsheet engine.

Cells that would show a formula error (``#DIV/0!``, ``#N/A``, ``#VALUE!``)
are represented as ``NaN`` for numbers and ``None`` for labels.
"""
from __future__ import annotations

import math

import numpy as np
import pandas as pd

from .config import DashboardConfig, HealthConfig


def classify_margin(margin: float | None, health: HealthConfig | None = None) -> str | None:
    health = health or HealthConfig()
    if margin is None or pd.isna(margin):
        return None
    if margin > health.strong_threshold:
        return health.strong_label
    if margin >= health.moderate_threshold:
        return health.moderate_label
    return health.at_risk_label


def split_quarter_label(label: str) -> tuple[str, str]:
    return label[:4], label[-2:]


def _fold(values: pd.Series) -> pd.Series:
    return values.astype(str).str.casefold()


def evaluate_summary(raw: pd.DataFrame, keys: pd.DataFrame, cfg: DashboardConfig) -> pd.DataFrame:
    base_year = cfg.summary.base_year
    base_quarter = cfg.summary.base_quarter
    na = cfg.formats.not_applicable

    out = keys.copy()
    prefixes = out["quarter_label"].map(lambda label: split_quarter_label(label)[0])
    quarters = out["quarter_label"].map(lambda label: split_quarter_label(label)[1])
    years = pd.to_numeric(prefixes, errors="coerce")
    raw_products = _fold(raw["product"])
    raw_quarters = _fold(raw["quarter"])

    revenue = []
    margin_revenue = []
    for product, year, quarter in zip(out["product"], years, quarters):
        if pd.isna(year):
            revenue.append(np.nan)
            margin_revenue.append(np.nan)
            continue
        mask = raw_products.eq(product.casefold()) & raw["year"].eq(year) & raw_quarters.eq(quarter.casefold())
        revenue.append(float(raw.loc[mask, "revenue"].sum()))
        margin_revenue.append(float(raw.loc[mask, "margin_revenue"].sum()))

    out["revenue"] = revenue
    out["margin"] = [_safe_divide(mr, rev) for mr, rev in zip(margin_revenue, revenue)]

    trend = []
    previous = np.nan
    for prefix, quarter, margin in zip(prefixes, quarters, out["margin"]):
        if prefix == base_year and quarter.casefold() == base_quarter.casefold():
            trend.append(na)
        else:
            trend.append(margin - previous)
        previous = margin
    out["trend"] = trend

    lookup: dict[str, float] = {}
    for product, label, margin in zip(out["product"], out["quarter_label"], out["margin"]):
        lookup.setdefault(f"{product} {label}".casefold(), margin)

    yoy = []
    for product, prefix, year, quarter, margin in zip(out["product"], prefixes, years, quarters, out["margin"]):
        if prefix == base_year:
            yoy.append(na)
            continue
        if pd.isna(year):
            yoy.append(np.nan)
            continue
        prior = lookup.get(f"{product} {int(year) - 1} {quarter}".casefold(), np.nan)
        yoy.append(margin - prior)
    out["yoy"] = yoy

    out["health"] = [classify_margin(margin, cfg.health) for margin in out["margin"]]
    return out


def evaluate_chart_table(raw: pd.DataFrame, summary: pd.DataFrame, cfg: DashboardConfig) -> pd.DataFrame:
    cd = cfg.chart_data
    populated = set(cd.populated_products)
    raw_products = _fold(raw["product"])
    raw_quarters = _fold(raw["quarter"])
    summary_labels = _fold(summary["quarter_label"])

    rows = []
    for quarter_label in cd.quarters:
        prefix, quarter = split_quarter_label(quarter_label)
        year = pd.to_numeric(prefix, errors="coerce")
        record: dict[str, object] = {"quarter": quarter_label}
        for product in cd.products:
            if product not in populated:
                record[product] = None
                continue
            if pd.isna(year):
                record[product] = np.nan
                continue
            mask = raw_products.eq(product.casefold()) & raw["year"].eq(year) & raw_quarters.eq(quarter.casefold())
            record[product] = _safe_divide(
                float(raw.loc[mask, "margin_revenue"].sum()),
                float(raw.loc[mask, "revenue"].sum()),
            )

        matched = summary.loc[summary_labels.eq(quarter_label.casefold()), "revenue"]
        record[cd.total_header] = np.nan if matched.isna().any() else float(matched.sum())
        rows.append(record)

    return pd.DataFrame(rows, columns=["quarter", *cd.products, cd.total_header])


def summarize_preview(summary: pd.DataFrame, cfg: DashboardConfig) -> dict:
    health = cfg.health
    counts = summary["health"].value_counts(dropna=False)
    labels = [health.strong_label, health.moderate_label, health.at_risk_label]
    return {
        "Rows": int(len(summary)),
        "Total Revenue": float(summary["revenue"].sum(skipna=True)),
        **{label: int(counts.get(label, 0)) for label in labels},
        "Rows With Errors": int(summary["margin"].isna().sum()),
    }


def _safe_divide(numerator: float, denominator: float) -> float:
    if pd.isna(numerator) or pd.isna(denominator) or denominator == 0:
        return math.nan
    return numerator / denominator
