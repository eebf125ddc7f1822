from __future__ import annotations

from .config import DashboardConfig


def quote_sheet(name: str) -> str:
    return "'" + name.replace("'", "''") + "'"


def raw_column(cfg: DashboardConfig, col: str) -> str:
    raw = cfg.raw_data
    return f"{quote_sheet(cfg.sheets.raw_data)}!${col}${raw.first_row}:${col}${raw.last_row}"


def _summary_filter(cfg: DashboardConfig, row: int) -> str:
    raw = cfg.raw_data
    return (
        f"{raw_column(cfg, raw.product_col)},$A{row},"
        f"{raw_column(cfg, raw.year_col)},VALUE(LEFT($B{row},4)),"
        f"{raw_column(cfg, raw.quarter_col)},RIGHT($B{row},2)"
    )


def revenue_formula(cfg: DashboardConfig, row: int) -> str:
    return f"=SUMIFS({raw_column(cfg, cfg.raw_data.revenue_col)},{_summary_filter(cfg, row)})"


def margin_formula(cfg: DashboardConfig, row: int) -> str:
    return f"=SUMIFS({raw_column(cfg, cfg.raw_data.margin_col)},{_summary_filter(cfg, row)})/C{row}"


def trend_formula(cfg: DashboardConfig, row: int) -> str:
    summary = cfg.summary
    na = cfg.formats.not_applicable
    return (
        f'=IF(AND(LEFT($B{row},4)="{summary.base_year}",RIGHT($B{row},2)="{summary.base_quarter}"),'
        f'"{na}",D{row}-D{row - 1})'
    )


def yoy_formula(cfg: DashboardConfig, row: int) -> str:
    summary = cfg.summary
    first, last = summary.first_row, summary.last_row
    na = cfg.formats.not_applicable
    return (
        f'=IF(LEFT($B{row},4)="{summary.base_year}","{na}",'
        f"D{row}-INDEX($D${first}:$D${last},"
        f'MATCH($A{row}&" "&(VALUE(LEFT($B{row},4))-1)&" "&RIGHT($B{row},2),'
        f'$A${first}:$A${last}&" "&$B${first}:$B${last},0)))'
    )


def health_formula(cfg: DashboardConfig, row: int) -> str:
    health = cfg.health
    return (
        f'=IF(D{row}>{float(health.strong_threshold)!r},"{health.strong_label}",'
        f'IF(D{row}>={float(health.moderate_threshold)!r},"{health.moderate_label}","{health.at_risk_label}"))'
    )


def product_margin_formula(cfg: DashboardConfig, row: int, product: str) -> str:
    """Weighted margin of one product in the quarter labelled in column A."""
    raw = cfg.raw_data
    product_literal = product.replace('"', '""')
    predicate = (
        f'({raw_column(cfg, raw.product_col)}="{product_literal}")*'
        f"({raw_column(cfg, raw.year_col)}=VALUE(LEFT($A{row},4)))*"
        f"({raw_column(cfg, raw.quarter_col)}=RIGHT($A{row},2))"
    )
    return (
        f"=SUMPRODUCT({predicate}*({raw_column(cfg, raw.margin_col)}))/"
        f"SUMPRODUCT({predicate}*({raw_column(cfg, raw.revenue_col)}))"
    )


def total_revenue_formula(cfg: DashboardConfig, row: int) -> str:
    first, last = cfg.summary.first_row, cfg.summary.last_row
    return f"=SUMIF($B${first}:$B${last},$A{row},$C${first}:$C${last})"
