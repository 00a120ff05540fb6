from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema


class SampleCreate(BaseCreateSchema):
    sampler_name: Optional[str] = Field(None, max_length=200)
    material_input_id: Optional[UUID] = None
    processing_step_id: Optional[UUID] = None
    notes: Optional[str] = None


class SampleResultInput(BaseModel):
    """One measured parameter; blank rows are dropped."""
    parameter_name: Optional[str] = None
    parameter_value: Optional[str] = None
    unit: Optional[str] = None


class SampleResultsCreate(BaseModel):
    results: List[SampleResultInput] = Field(default_factory=list)


class SampleReject(BaseModel):
    reason: Optional[str] = None


class SampleResultResponse(BaseResponseSchema):
    id: UUID
    parameter_name: str
    parameter_value: str
    unit: Optional[str] = None


class SampleResponse(BaseResponseSchema):
    id: UUID
    sample_id: str
    sampler_name: str
    material_input_id: Optional[UUID] = None
    processing_step_id: Optional[UUID] = None
    status: str
    is_retention_sample: bool
    notes: Optional[str] = None
    sampled_at: datetime
    analyzed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None


class SampleDetailResponse(SampleResponse):
    """Sample with its lab results."""
    results: List[SampleResultResponse] = []
