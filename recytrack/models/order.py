import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Date, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from recytrack.database import Base
from recytrack.db_types import UUIDType, WeightType


class OrderStatus(str, Enum):
    """Customer order status. Forward-only."""
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    CONFIRMED = "confirmed"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Orders that can still receive batch allocations
ALLOCATABLE_ORDER_STATUSES = (
    OrderStatus.PENDING.value,
    OrderStatus.IN_PRODUCTION.value,
    OrderStatus.CONFIRMED.value,
)

# Orders whose production deadline is still being tracked
OPEN_ORDER_STATUSES = (
    OrderStatus.PENDING.value,
    OrderStatus.IN_PRODUCTION.value,
)


class Order(Base):
    """Customer demand record (AUF-...)."""
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)

    # Customer
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[Optional[str]] = mapped_column(String(200))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50))

    # Product
    product_category: Mapped[str] = mapped_column(String(50), nullable=False)
    product_grain_size: Mapped[str] = mapped_column(String(50), nullable=False)
    product_subcategory: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[Optional[str]] = mapped_column(String(200))
    quantity_kg: Mapped[Decimal] = mapped_column(WeightType, nullable=False)

    # Deadlines
    production_deadline: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_deadline: Mapped[date] = mapped_column(Date, nullable=False)

    # Delivery
    delivery_partner: Mapped[Optional[str]] = mapped_column(String(200))
    delivery_address: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_by: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Order(order_id='{self.order_id}', status='{self.status}')>"
