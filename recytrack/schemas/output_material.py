from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import Field

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema, WeightInput


class OutputMaterialCreate(BaseCreateSchema):
    output_type: Optional[str] = Field(None, max_length=50)
    batch_id: Optional[str] = Field(None, max_length=100)
    weight_kg: WeightInput = None
    quality_grade: Optional[str] = Field(None, max_length=10)
    container_id: Optional[UUID] = None
    sample_id: Optional[UUID] = None
    processing_step_id: Optional[UUID] = None
    destination: Optional[str] = None
    fiber_size: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class OutputMaterialResponse(BaseResponseSchema):
    id: UUID
    output_id: str
    batch_id: str
    output_type: str
    weight_kg: Decimal
    quality_grade: Optional[str] = None
    container_id: Optional[UUID] = None
    sample_id: Optional[UUID] = None
    processing_step_id: Optional[UUID] = None
    destination: Optional[str] = None
    fiber_size: Optional[str] = None
    status: str
    attributes: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    created_at: datetime


class OutputMaterialDetail(OutputMaterialResponse):
    """Output with its ledger position."""
    allocated_kg: Decimal
    remaining_kg: Decimal
