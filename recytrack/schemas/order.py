from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema, WeightInput


class OrderCreate(BaseCreateSchema):
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    product_category: Optional[str] = None
    product_grain_size: Optional[str] = None
    product_subcategory: Optional[str] = None
    product_name: Optional[str] = None
    quantity_kg: WeightInput = None
    production_deadline: Optional[date] = None
    delivery_deadline: Optional[date] = None
    delivery_partner: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None


class OrderResponse(BaseResponseSchema):
    id: UUID
    order_id: str
    customer_name: str
    customer_email: Optional[str] = None
    product_category: str
    product_grain_size: str
    product_subcategory: str
    product_name: Optional[str] = None
    quantity_kg: Decimal
    production_deadline: date
    delivery_deadline: date
    delivery_partner: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime
