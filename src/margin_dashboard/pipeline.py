from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path

from .config import DashboardConfig
from .dashboard_writer import (
    apply_health_formatting,
    apply_number_formats,
    build_chart,
    chart_region,
    health_range,
    reset_dashboard,
    summary_range,
    write_chart_data,
    write_summary_formulas,
)
from .ingestion import load_source, read_raw_data, read_summary_keys, write_raw_data
from .preview import evaluate_chart_table, evaluate_summary, summarize_preview
from .store import WorkbookStore


logger = logging.getLogger(__name__)


def build_dashboard(store: WorkbookStore, cfg: DashboardConfig) -> dict:
    # Both sheets must exist before anything is written.
    store.sheet(cfg.sheets.dashboard)
    store.sheet(cfg.sheets.raw_data)

    reset_dashboard(store, cfg)
    write_summary_formulas(store, cfg)
    apply_number_formats(store, cfg)
    write_chart_data(store, cfg)
    build_chart(store, cfg)
    apply_health_formatting(store, cfg)
    store.sync()

    raw = read_raw_data(store, cfg)
    summary = evaluate_summary(raw, read_summary_keys(store, cfg), cfg)
    chart_table = evaluate_chart_table(raw, summary, cfg)
    preview_summary = summarize_preview(summary, cfg)
    logger.info("Dashboard automation completed (%d checkpoints)", store.sync_count)

    return {
        "checkpoints": store.sync_count,
        "ranges": {
            "summary": summary_range(cfg, "C", "G"),
            "chart_data": chart_region(cfg),
            "health": health_range(cfg),
        },
        "preview_summary": preview_summary,
        "summary_rows": summary.to_dict(orient="records"),
        "chart_rows": chart_table.to_dict(orient="records"),
        "config": asdict(cfg),
    }


def run_dashboard_pipeline(
    input_path: str | Path,
    output_path: str | Path | None,
    cfg: DashboardConfig,
    raw_data_path: str | Path | None = None,
) -> dict:
    store = WorkbookStore.open(input_path, output_path)
    logger.info("Opened workbook %s", input_path)

    if raw_data_path is not None:
        write_raw_data(store, load_source(raw_data_path), cfg)

    result = build_dashboard(store, cfg)
    result["output"] = str(store.output_path)
    return result
