import logging
from datetime import date
from typing import Any, List, Optional
import uuid

from sqlalchemy import select

from recytrack.core.exceptions import ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.models.order import ALLOCATABLE_ORDER_STATUSES, Order, OrderStatus
from recytrack.services.base import LifecycleService
from recytrack.services.identifier_service import IdPrefix
from recytrack.services.results import OperationResult, transactional
from recytrack.services.validators import clean, is_blank, parse_weight

logger = logging.getLogger(__name__)


class OrderService(LifecycleService):
    """Customer orders."""

    @transactional(conflict_message="order code already exists")
    async def create_order(
        self,
        customer_name: str,
        product_category: str,
        product_grain_size: str,
        product_subcategory: str,
        quantity_kg: Any,
        production_deadline: Optional[date],
        delivery_deadline: Optional[date],
        actor: Actor,
        customer_email: Optional[str] = None,
        customer_phone: Optional[str] = None,
        product_name: Optional[str] = None,
        delivery_partner: Optional[str] = None,
        delivery_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OperationResult[Order]:
        """Create a pending order. All validation errors are reported together."""
        require_role(actor, Operation.ORDER_CREATE)

        errors = []
        for field_name, value in (
            ("customer_name", customer_name),
            ("product_category", product_category),
            ("product_grain_size", product_grain_size),
            ("product_subcategory", product_subcategory),
        ):
            if is_blank(value):
                errors.append(f"{field_name} is required")
        quantity = parse_weight(quantity_kg)
        if quantity is None:
            errors.append("quantity_kg must be a number greater than 0")
        if production_deadline is None:
            errors.append("production_deadline is required")
        if delivery_deadline is None:
            errors.append("delivery_deadline is required")
        if production_deadline and delivery_deadline and delivery_deadline < production_deadline:
            errors.append("delivery_deadline must not be before production_deadline")
        if errors:
            raise ValidationError("invalid input", errors=errors)

        order_code = await self._generate_id(IdPrefix.ORDER)
        order = Order(
            order_id=order_code,
            customer_name=customer_name.strip(),
            customer_email=clean(customer_email),
            customer_phone=clean(customer_phone),
            product_category=product_category.strip(),
            product_grain_size=product_grain_size.strip(),
            product_subcategory=product_subcategory.strip(),
            product_name=clean(product_name),
            quantity_kg=quantity,
            production_deadline=production_deadline,
            delivery_deadline=delivery_deadline,
            delivery_partner=clean(delivery_partner),
            delivery_address=clean(delivery_address),
            status=OrderStatus.PENDING.value,
            notes=clean(notes),
            created_by=actor.user_id,
        )
        self.db.add(order)
        await self.db.flush()

        logger.info(f"Created order {order_code} for {order.customer_name} ({quantity} kg)")
        return OperationResult(primary=order)

    async def get_order(self, order_id: uuid.UUID) -> Order:
        return await self._get_or_404(Order, order_id, "Order")

    async def list_orders(
        self,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Order]:
        query = select(Order)
        if status:
            query = query.where(Order.status == getattr(status, "value", status))
        query = query.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_allocatable_orders(self) -> List[Order]:
        """Orders that can still receive batch allocations, earliest deadline first."""
        result = await self.db.execute(
            select(Order)
            .where(Order.status.in_(ALLOCATABLE_ORDER_STATUSES))
            .order_by(Order.production_deadline, Order.created_at)
        )
        return list(result.scalars().all())
