from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema, WeightInput


class AllocationCreate(BaseCreateSchema):
    output_material_id: UUID
    order_id: UUID
    allocated_weight_kg: WeightInput = None
    notes: Optional[str] = None


class AllocationResponse(BaseResponseSchema):
    id: UUID
    output_material_id: UUID
    order_id: UUID
    allocated_weight_kg: Decimal
    allocated_by: Optional[str] = None
    notes: Optional[str] = None
    allocated_at: datetime


class AllocationResult(BaseModel):
    """A new allocation with the ledger position after it."""
    allocation: AllocationResponse
    remaining_kg: Decimal
    order_status: str


class AllocationListItem(AllocationResponse):
    order_code: str
