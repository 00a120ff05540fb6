from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema, WeightInput


class DeliveryNoteCreate(BaseCreateSchema):
    type: Optional[str] = None
    partner_name: Optional[str] = Field(None, max_length=200)
    material_description: Optional[str] = Field(None, max_length=200)
    weight_kg: WeightInput = None
    material_input_id: Optional[UUID] = None
    output_material_id: Optional[UUID] = None
    waste_code: Optional[str] = Field(None, max_length=20)
    batch_reference: Optional[str] = None


class DeliveryNoteResponse(BaseResponseSchema):
    id: UUID
    note_id: str
    type: str
    partner_name: str
    material_description: str
    weight_kg: Decimal
    waste_code: Optional[str] = None
    batch_reference: Optional[str] = None
    material_input_id: Optional[UUID] = None
    output_material_id: Optional[UUID] = None
    pdf_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
