from .config import DashboardConfig
from .pipeline import build_dashboard, run_dashboard_pipeline
from .store import DashboardError, SheetNotFoundError, WorkbookStore

__all__ = [
    "DashboardConfig",
    "DashboardError",
    "SheetNotFoundError",
    "WorkbookStore",
    "build_dashboard",
    "run_dashboard_pipeline",
]
