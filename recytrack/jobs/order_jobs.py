"""
Order Jobs

Background checks on customer orders. Read-only: overdue orders are
reported, never moved to another status.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import select

from recytrack.models.order import OPEN_ORDER_STATUSES, Order

logger = logging.getLogger(__name__)


async def check_order_deadlines(session=None, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Find open orders whose production deadline has passed.

    Open means pending or in_production. Each overdue order is logged at
    WARNING.

    Returns:
        Summary with the number of open orders checked and the overdue codes
    """
    today = today or date.today()
    logger.info("Starting order deadline check...")

    try:
        if session is None:
            from recytrack.database import get_db_session

            async with get_db_session() as db:
                orders = await _open_orders(db)
        else:
            orders = await _open_orders(session)
    except Exception as e:
        logger.error(f"Order deadline check failed: {e}")
        return {"checked": 0, "overdue": [], "error": str(e)}

    overdue = []
    for order in orders:
        if order.production_deadline < today:
            days = (today - order.production_deadline).days
            logger.warning(
                f"Order {order.order_id} ({order.customer_name}) is {order.status} "
                f"and {days} day(s) past its production deadline {order.production_deadline}"
            )
            overdue.append(order.order_id)

    logger.info(f"Order deadline check complete: {len(overdue)}/{len(orders)} overdue")
    return {"checked": len(orders), "overdue": overdue}


async def _open_orders(db):
    result = await db.execute(
        select(Order)
        .where(Order.status.in_(OPEN_ORDER_STATUSES))
        .order_by(Order.production_deadline)
    )
    return list(result.scalars().all())
