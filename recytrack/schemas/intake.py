from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema, WeightInput


class MaterialInputCreate(BaseCreateSchema):
    """Schema for receiving raw material."""
    supplier: Optional[str] = Field(None, max_length=200)
    material_type: Optional[str] = Field(None, max_length=50)
    material_subtype: Optional[str] = Field(None, max_length=50)
    weight_kg: WeightInput = None
    waste_code: Optional[str] = Field(None, max_length=20)
    container_id: Optional[UUID] = None
    notes: Optional[str] = None


class MaterialInputResponse(BaseResponseSchema):
    id: UUID
    input_id: str
    supplier: str
    material_type: str
    material_subtype: Optional[str] = None
    weight_kg: Decimal
    waste_code: Optional[str] = None
    container_id: Optional[UUID] = None
    status: str
    notes: Optional[str] = None
    created_by: Optional[str] = None
    received_at: datetime
    created_at: datetime
