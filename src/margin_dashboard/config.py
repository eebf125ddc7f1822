from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Literal


SeriesRole = Literal["margin", "revenue"]

DEFAULT_PRODUCTS = ["Widget Pro", "Widget Standard", "Service Package", "Accessory Kit"]


def quarter_labels(start_year: int, start_quarter: int, count: int) -> list[str]:
    labels = []
    year, quarter = start_year, start_quarter
    for _ in range(count):
        labels.append(f"{year} Q{quarter}")
        quarter += 1
        if quarter > 4:
            quarter = 1
            year += 1
    return labels


@dataclass
class SheetConfig:
    dashboard: str = "Dashboard"
    raw_data: str = "Raw Data"


@dataclass
class RawDataConfig:
    first_row: int = 2
    last_row: int = 187
    year_col: str = "B"
    quarter_col: str = "C"
    product_col: str = "D"
    revenue_col: str = "E"
    margin_col: str = "G"


@dataclass
class SummaryConfig:
    first_row: int = 8
    row_count: int = 32
    base_year: str = "2023"
    base_quarter: str = "Q1"

    @property
    def last_row(self) -> int:
        return self.first_row + self.row_count - 1


@dataclass
class ChartDataConfig:
    label_row: int = 42
    label: str = "Chart Data"
    products: List[str] = field(default_factory=lambda: list(DEFAULT_PRODUCTS))
    quarters: List[str] = field(default_factory=lambda: quarter_labels(2023, 1, 8))
    total_header: str = "Total Revenue"
    header_fill: str = "4472C4"
    header_font_color: str = "FFFFFF"
    # Only the first two product columns get formulas unless this is set.
    fill_all_products: bool = False
    partial_product_count: int = 2

    @property
    def header_row(self) -> int:
        return self.label_row + 1

    @property
    def first_row(self) -> int:
        return self.label_row + 2

    @property
    def last_row(self) -> int:
        return self.first_row + len(self.quarters) - 1

    @property
    def populated_products(self) -> list[str]:
        if self.fill_all_products:
            return list(self.products)
        return list(self.products[: self.partial_product_count])


@dataclass
class ChartConfig:
    title: str = "Quarterly Margin Trends by Product"
    primary_axis_title: str = "Profit Margin"
    secondary_axis_title: str = "Total Revenue ($)"
    left_px: int = 50
    top_px: int = 350
    width_px: int = 600
    height_px: int = 300
    title_font_size: int = 14
    axis_title_font_size: int = 10
    style: int = 10


@dataclass
class HealthConfig:
    strong_threshold: float = 0.35
    moderate_threshold: float = 0.20
    strong_label: str = "Strong"
    moderate_label: str = "Moderate"
    at_risk_label: str = "At Risk"
    strong_fill: str = "C6EFCE"
    strong_font: str = "006100"
    moderate_fill: str = "FFEB9C"
    moderate_font: str = "9C6500"
    at_risk_fill: str = "FFC7CE"
    at_risk_font: str = "9C0006"


@dataclass
class FormatConfig:
    currency: str = "$#,##0"
    percent: str = "0.0%"
    not_applicable: str = "N/A"


@dataclass
class DashboardConfig:
    sheets: SheetConfig = field(default_factory=SheetConfig)
    raw_data: RawDataConfig = field(default_factory=RawDataConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    chart_data: ChartDataConfig = field(default_factory=ChartDataConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    formats: FormatConfig = field(default_factory=FormatConfig)


_SECTIONS = ("sheets", "raw_data", "summary", "chart_data", "chart", "health", "formats")


def load_config_override(config_path: str | Path, current_cfg: DashboardConfig | None = None) -> DashboardConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    cfg = current_cfg or DashboardConfig()
    payload = json.loads(path.read_text(encoding="utf-8"))

    unknown = set(payload).difference(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    for section in _SECTIONS:
        if section not in payload:
            continue
        target = getattr(cfg, section)
        allowed = {f.name for f in fields(target)}
        for key, value in payload[section].items():
            if key not in allowed:
                raise ValueError(f"Unknown setting '{section}.{key}'")
            setattr(target, key, value)

    return cfg
