from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema, WeightInput


class ContainerCreate(BaseCreateSchema):
    type: str
    volume_liters: Optional[int] = None
    weight_kg: WeightInput = None
    location: Optional[str] = Field(None, max_length=100)


class ContainerResponse(BaseResponseSchema):
    id: UUID
    container_id: str
    type: str
    status: str
    volume_liters: Optional[int] = None
    weight_kg: Optional[Decimal] = None
    location: Optional[str] = None
    created_at: datetime
