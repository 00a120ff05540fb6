"""
Background Jobs Module

Handles scheduled tasks for:
- Order production deadline checks
"""

from recytrack.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from recytrack.jobs.order_jobs import check_order_deadlines

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "check_order_deadlines",
]
