"""
APScheduler Configuration

Background job scheduler for periodic stock and producibility checks.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from catalog_engine.config import settings
from catalog_engine.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,  # Allow 60 seconds grace time for misfires
}

# Create scheduler
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.SCHEDULER_TIMEZONE
)


def register_jobs():
    """Add the material alert job (idempotent thanks to replace_existing)."""
    from catalog_engine.jobs.material_alert_jobs import run_material_alerts

    scheduler.add_job(
        run_material_alerts,
        'interval',
        minutes=settings.LOW_STOCK_CHECK_INTERVAL_MINUTES,
        id='check_material_alerts',
        name='Check Material Alerts',
        replace_existing=True,
    )


def start_scheduler():
    """Start the background job scheduler. Must be called from a running event loop."""
    if not scheduler.running:
        setup_logging()
        register_jobs()
        scheduler.start()
        logger.info("Background job scheduler started")

        # Log all scheduled jobs
        jobs = scheduler.get_jobs()
        for job in jobs:
            logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")
