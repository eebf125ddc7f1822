from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
from openpyxl.utils import column_index_from_string

from .config import DashboardConfig
from .store import WorkbookStore


logger = logging.getLogger(__name__)

RAW_FIELDS = ("year", "quarter", "product", "revenue", "margin_revenue")
RAW_HEADERS = {
    "year": "Year",
    "quarter": "Quarter",
    "product": "Product",
    "revenue": "Revenue",
    "margin_revenue": "Margin Revenue",
}


def load_source(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path)
    elif path.suffix.lower() in {".xlsx", ".xls"}:
        df = pd.read_excel(path)
    else:
        raise ValueError("Unsupported file format. Use .csv, .xlsx, or .xls")

    return _normalize_columns(df)


def write_raw_data(store: WorkbookStore, df: pd.DataFrame, cfg: DashboardConfig) -> int:
    """Lay ``df`` out on the Raw Data sheet, creating the sheet if needed."""
    raw = cfg.raw_data
    if cfg.sheets.raw_data not in store.workbook.sheetnames:
        store.workbook.create_sheet(cfg.sheets.raw_data)
    ws = store.sheet(cfg.sheets.raw_data)

    columns = _raw_column_indexes(cfg)
    stale_last_row = max(raw.last_row, ws.max_row)
    for row in range(raw.first_row, stale_last_row + 1):
        for col_idx in columns.values():
            ws.cell(row=row, column=col_idx).value = None

    header_row = raw.first_row - 1
    if header_row >= 1:
        for name, col_idx in columns.items():
            ws.cell(row=header_row, column=col_idx, value=RAW_HEADERS[name])

    for offset, record in enumerate(df.itertuples(index=False)):
        row = raw.first_row + offset
        for name, col_idx in columns.items():
            ws.cell(row=row, column=col_idx, value=_excel_safe_value(getattr(record, name)))

    logger.info("Seeded %d raw data rows into '%s'", len(df), cfg.sheets.raw_data)
    if len(df) != raw.last_row - raw.first_row + 1:
        logger.warning(
            "Raw data has %d rows but formulas cover rows %d-%d",
            len(df),
            raw.first_row,
            raw.last_row,
        )
    return len(df)


def read_raw_data(store: WorkbookStore, cfg: DashboardConfig) -> pd.DataFrame:
    raw = cfg.raw_data
    ws = store.sheet(cfg.sheets.raw_data)
    columns = _raw_column_indexes(cfg)

    records = []
    for row in range(raw.first_row, raw.last_row + 1):
        values = {name: ws.cell(row=row, column=col_idx).value for name, col_idx in columns.items()}
        if all(value is None for value in values.values()):
            continue
        records.append(values)

    df = pd.DataFrame(records, columns=list(RAW_FIELDS))
    df["year"] = pd.to_numeric(df["year"], errors="coerce")
    df["revenue"] = pd.to_numeric(df["revenue"], errors="coerce").fillna(0.0)
    df["margin_revenue"] = pd.to_numeric(df["margin_revenue"], errors="coerce").fillna(0.0)
    df["quarter"] = df["quarter"].astype(str)
    df["product"] = df["product"].astype(str)
    return df


def read_summary_keys(store: WorkbookStore, cfg: DashboardConfig) -> pd.DataFrame:
    ws = store.sheet(cfg.sheets.dashboard)
    rows = []
    for row in range(cfg.summary.first_row, cfg.summary.last_row + 1):
        product = ws[f"A{row}"].value
        quarter_label = ws[f"B{row}"].value
        rows.append(
            {
                "row": row,
                "product": "" if product is None else str(product),
                "quarter_label": "" if quarter_label is None else str(quarter_label),
            }
        )
    return pd.DataFrame(rows, columns=["row", "product", "quarter_label"])


def _raw_column_indexes(cfg: DashboardConfig) -> dict[str, int]:
    raw = cfg.raw_data
    return {
        "year": column_index_from_string(raw.year_col),
        "quarter": column_index_from_string(raw.quarter_col),
        "product": column_index_from_string(raw.product_col),
        "revenue": column_index_from_string(raw.revenue_col),
        "margin_revenue": column_index_from_string(raw.margin_col),
    }


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    renamed = {col: str(col).strip().lower().replace(" ", "_").replace("-", "_") for col in df.columns}
    out = df.rename(columns=renamed).copy()

    missing = set(RAW_FIELDS).difference(out.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    out = out[list(RAW_FIELDS)]
    years = pd.to_numeric(out["year"], errors="coerce")
    out["year"] = years.where(years.mod(1).eq(0)).astype("Int64")
    out["revenue"] = pd.to_numeric(out["revenue"], errors="coerce").fillna(0.0)
    out["margin_revenue"] = pd.to_numeric(out["margin_revenue"], errors="coerce").fillna(0.0)
    out["quarter"] = out["quarter"].astype(str).str.strip()
    out["product"] = out["product"].astype(str).str.strip()
    return out


def _excel_safe_value(value):
    if value is pd.NA:
        return None
    if hasattr(value, "item"):
        return value.item()
    return value
