from __future__ import annotations

import argparse
import json
import logging
import sys

from .config import DashboardConfig, load_config_override
from .pipeline import run_dashboard_pipeline


logger = logging.getLogger("margin_dashboard")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quarterly margin dashboard generator")
    parser.add_argument("--input", required=True, help="Path to workbook with 'Dashboard' and 'Raw Data' sheets")
    parser.add_argument("--output", required=False, help="Output workbook path (defaults to overwriting --input)")
    parser.add_argument("--config", required=False, help="Optional JSON config override file")
    parser.add_argument("--raw-data", required=False, help="Optional CSV/XLSX export to load into the raw data sheet")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        cfg = DashboardConfig()
        if args.config:
            cfg = load_config_override(args.config, cfg)
        result = run_dashboard_pipeline(args.input, args.output, cfg, raw_data_path=args.raw_data)
    except Exception:
        logger.exception("Dashboard automation failed")
        return 1

    print("Dashboard generated successfully")
    print(f"Output: {result['output']}")
    print(json.dumps(result["preview_summary"], indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
