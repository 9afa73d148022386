"""
Background Jobs Module

Handles scheduled tasks for:
- Low-stock raw material alerts
- Low producibility alerts
"""

from catalog_engine.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from catalog_engine.jobs.material_alert_jobs import check_material_alerts, run_material_alerts

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "check_material_alerts",
    "run_material_alerts",
]
