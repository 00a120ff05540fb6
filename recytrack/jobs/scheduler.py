"""
APScheduler configuration.

Background jobs run in the application's event loop. They only read
lifecycle data; status changes stay with the lifecycle services.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from recytrack.config import settings

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


def start_scheduler():
    """Start the background job scheduler."""
    if not scheduler.running:
        from recytrack.jobs.order_jobs import check_order_deadlines

        # Report orders past their production deadline
        scheduler.add_job(
            check_order_deadlines,
            'interval',
            minutes=settings.ORDER_DEADLINE_CHECK_INTERVAL_MINUTES,
            id='check_order_deadlines',
            name='Check Order Deadlines',
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background job scheduler started")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")

