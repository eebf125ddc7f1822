from __future__ import annotations

import io
import logging
import tempfile
from pathlib import Path

from flask import Flask, render_template, request, send_file

from margin_dashboard.config import DashboardConfig
from margin_dashboard.pipeline import run_dashboard_pipeline


app = Flask(__name__)
logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _to_bool(value: str | None) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "on", "yes"}


def _build_cfg_from_form(form) -> DashboardConfig:
    cfg = DashboardConfig()
    cfg.chart_data.fill_all_products = _to_bool(form.get("fill_all_products"))
    base_year = (form.get("base_year") or "").strip()
    if base_year:
        cfg.summary.base_year = base_year
    return cfg


@app.get("/")
def index():
    return render_template("index.html")


@app.post("/generate")
def generate():
    uploaded = request.files.get("workbook")
    if uploaded is None or not uploaded.filename:
        return "A workbook upload is required", 400

    suffix = Path(uploaded.filename).suffix.lower()
    if suffix not in {".xlsx", ".xlsm"}:
        return "Unsupported file format. Use .xlsx or .xlsm", 400

    cfg = _build_cfg_from_form(request.form)

    with tempfile.TemporaryDirectory() as tmp:
        tmp_path = Path(tmp)
        input_path = tmp_path / f"input{suffix}"
        output_path = tmp_path / f"dashboard{suffix}"
        uploaded.save(input_path)

        raw_data_path = None
        raw_upload = request.files.get("raw_data")
        if raw_upload and raw_upload.filename:
            raw_data_path = tmp_path / f"raw{Path(raw_upload.filename).suffix.lower() or '.csv'}"
            raw_upload.save(raw_data_path)

        try:
            run_dashboard_pipeline(input_path, output_path, cfg, raw_data_path=raw_data_path)
        except Exception:
            logger.exception("Dashboard automation failed")
            return "Dashboard generation failed", 422

        payload = io.BytesIO(output_path.read_bytes())

    return send_file(
        payload,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"{Path(uploaded.filename).stem}_dashboard{suffix}",
    )


if __name__ == "__main__":
    app.run(debug=True)
