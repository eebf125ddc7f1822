from __future__ import annotations

import logging
from dataclasses import dataclass

from openpyxl.chart import BarChart, LineChart, Reference
from openpyxl.chart.text import RichText, Text
from openpyxl.chart.title import Title
from openpyxl.drawing.spreadsheet_drawing import AbsoluteAnchor
from openpyxl.drawing.text import CharacterProperties, Paragraph, ParagraphProperties, RegularTextRun
from openpyxl.drawing.xdr import XDRPoint2D, XDRPositiveSize2D
from openpyxl.formatting.rule import CellIsRule
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.units import pixels_to_EMU
from openpyxl.worksheet.formula import ArrayFormula

from . import formula_builder as fb
from .config import DashboardConfig, SeriesRole
from .store import WorkbookStore


logger = logging.getLogger(__name__)

SECONDARY_AXIS_ID = 200


@dataclass
class ChartSeriesSpec:
    column: int
    title: str
    role: SeriesRole


def summary_range(cfg: DashboardConfig, first_col: str, last_col: str | None = None) -> str:
    last_col = last_col or first_col
    return f"{first_col}{cfg.summary.first_row}:{last_col}{cfg.summary.last_row}"


def chart_last_column(cfg: DashboardConfig) -> str:
    return get_column_letter(len(cfg.chart_data.products) + 2)


def chart_region(cfg: DashboardConfig) -> str:
    cd = cfg.chart_data
    return f"A{cd.label_row}:{chart_last_column(cfg)}{cd.last_row}"


def chart_table_range(cfg: DashboardConfig) -> str:
    cd = cfg.chart_data
    return f"A{cd.header_row}:{chart_last_column(cfg)}{cd.last_row}"


def health_range(cfg: DashboardConfig) -> str:
    return summary_range(cfg, "G")


def chart_series(cfg: DashboardConfig) -> list[ChartSeriesSpec]:
    cd = cfg.chart_data
    specs = [ChartSeriesSpec(column=idx, title=product, role="margin") for idx, product in enumerate(cd.products, start=2)]
    specs.append(ChartSeriesSpec(column=len(cd.products) + 2, title=cd.total_header, role="revenue"))
    return specs


def reset_dashboard(store: WorkbookStore, cfg: DashboardConfig) -> None:
    sheet = cfg.sheets.dashboard
    for ref in (summary_range(cfg, "C", "G"), chart_region(cfg)):
        store.clear(sheet, ref)
    removed = store.remove_charts(sheet)
    logger.info("Cleared dashboard ranges (%d prior chart(s) removed)", removed)


def write_summary_formulas(store: WorkbookStore, cfg: DashboardConfig) -> None:
    sheet = cfg.sheets.dashboard
    for row in range(cfg.summary.first_row, cfg.summary.last_row + 1):
        store.write(sheet, f"C{row}", fb.revenue_formula(cfg, row))
        store.write(sheet, f"D{row}", fb.margin_formula(cfg, row))
        store.write(sheet, f"E{row}", fb.trend_formula(cfg, row))
        store.write(sheet, f"F{row}", ArrayFormula(f"F{row}", fb.yoy_formula(cfg, row)))
        store.write(sheet, f"G{row}", fb.health_formula(cfg, row))

    store.sync()
    logger.info("Wrote summary formulas for %d rows", cfg.summary.row_count)


def apply_number_formats(store: WorkbookStore, cfg: DashboardConfig) -> None:
    sheet = cfg.sheets.dashboard
    cd = cfg.chart_data
    currency, percent = cfg.formats.currency, cfg.formats.percent
    last_product_col = get_column_letter(len(cd.products) + 1)
    total_col = chart_last_column(cfg)

    targets = [
        (summary_range(cfg, "C"), currency),
        (summary_range(cfg, "D"), percent),
        (summary_range(cfg, "E"), percent),
        (summary_range(cfg, "F"), percent),
        (f"B{cd.first_row}:{last_product_col}{cd.last_row}", percent),
        (f"{total_col}{cd.first_row}:{total_col}{cd.last_row}", currency),
    ]
    for ref, fmt in targets:
        store.set_number_format(sheet, ref, fmt)
    logger.info("Applied number formats to %d ranges", len(targets))


def write_chart_data(store: WorkbookStore, cfg: DashboardConfig) -> None:
    sheet = cfg.sheets.dashboard
    cd = cfg.chart_data
    last_col = chart_last_column(cfg)

    label_ref = f"A{cd.label_row}"
    store.write(sheet, label_ref, cd.label)
    store.set_style(sheet, label_ref, font=Font(bold=True))

    headers = ["Quarter", *cd.products, cd.total_header]
    store.write_row(sheet, cd.header_row, 1, headers)
    store.set_style(
        sheet,
        f"A{cd.header_row}:{last_col}{cd.header_row}",
        font=Font(bold=True, color=cd.header_font_color),
        fill=PatternFill(fill_type="solid", start_color=cd.header_fill, end_color=cd.header_fill),
        alignment=Alignment(horizontal="center"),
    )

    populated = set(cd.populated_products)
    for row, quarter in enumerate(cd.quarters, start=cd.first_row):
        store.write(sheet, f"A{row}", quarter)
        for col_idx, product in enumerate(cd.products, start=2):
            if product not in populated:
                continue
            store.write(sheet, f"{get_column_letter(col_idx)}{row}", fb.product_margin_formula(cfg, row, product))
        store.write(sheet, f"{last_col}{row}", fb.total_revenue_formula(cfg, row))

    store.sync()
    skipped = len(cd.products) - len(populated)
    logger.info("Wrote chart data table for %d quarters", len(cd.quarters))
    if skipped:
        logger.info("%d product column(s) left without formulas", skipped)


def sized_title(text: str, size_pt: int) -> Title:
    """Chart or axis title rendered at ``size_pt`` points."""
    sz = size_pt * 100
    paragraph = Paragraph(
        pPr=ParagraphProperties(defRPr=CharacterProperties(sz=sz)),
        r=[RegularTextRun(t=text, rPr=CharacterProperties(sz=sz))],
    )
    return Title(tx=Text(rich=RichText(p=[paragraph])), overlay=False)


def chart_anchor(cfg: DashboardConfig) -> AbsoluteAnchor:
    chart_cfg = cfg.chart
    return AbsoluteAnchor(
        pos=XDRPoint2D(x=pixels_to_EMU(chart_cfg.left_px), y=pixels_to_EMU(chart_cfg.top_px)),
        ext=XDRPositiveSize2D(cx=pixels_to_EMU(chart_cfg.width_px), cy=pixels_to_EMU(chart_cfg.height_px)),
    )


def build_chart(store: WorkbookStore, cfg: DashboardConfig) -> BarChart:
    ws = store.sheet(cfg.sheets.dashboard)
    cd = cfg.chart_data
    chart_cfg = cfg.chart

    categories = Reference(ws, min_col=1, min_row=cd.first_row, max_row=cd.last_row)
    specs = chart_series(cfg)

    bar = BarChart()
    bar.type = "col"
    bar.grouping = "clustered"
    bar.style = chart_cfg.style
    bar.title = sized_title(chart_cfg.title, chart_cfg.title_font_size)
    bar.y_axis.title = sized_title(chart_cfg.primary_axis_title, chart_cfg.axis_title_font_size)
    bar.y_axis.numFmt = cfg.formats.percent
    bar.y_axis.delete = False
    bar.x_axis.delete = False

    line = LineChart()
    line.y_axis.title = sized_title(chart_cfg.secondary_axis_title, chart_cfg.axis_title_font_size)
    line.y_axis.numFmt = cfg.formats.currency
    line.y_axis.axId = SECONDARY_AXIS_ID
    line.y_axis.crosses = "max"
    line.y_axis.delete = False

    for spec in specs:
        data = Reference(ws, min_col=spec.column, min_row=cd.header_row, max_row=cd.last_row)
        target = line if spec.role == "revenue" else bar
        target.add_data(data, titles_from_data=True)
    bar.set_categories(categories)
    line.set_categories(categories)

    if line.series:
        bar += line

    store.add_chart(cfg.sheets.dashboard, bar, chart_anchor(cfg))

    store.sync()
    logger.info(
        "Built combo chart with %d margin series and %d revenue series",
        sum(1 for s in specs if s.role == "margin"),
        sum(1 for s in specs if s.role == "revenue"),
    )
    return bar


def health_rules(cfg: DashboardConfig) -> list[CellIsRule]:
    health = cfg.health
    palette = [
        (health.strong_label, health.strong_fill, health.strong_font),
        (health.moderate_label, health.moderate_fill, health.moderate_font),
        (health.at_risk_label, health.at_risk_fill, health.at_risk_font),
    ]
    return [
        CellIsRule(
            operator="equal",
            formula=[f'"{label}"'],
            fill=PatternFill(fill_type="solid", start_color=fill, end_color=fill),
            font=Font(color=font),
        )
        for label, fill, font in palette
    ]


def apply_health_formatting(store: WorkbookStore, cfg: DashboardConfig) -> None:
    ref = health_range(cfg)
    dropped = store.replace_conditional_rules(cfg.sheets.dashboard, ref, health_rules(cfg))
    store.sync()
    logger.info("Replaced %d conditional rule(s) on %s", dropped, ref)
