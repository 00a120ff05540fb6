from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from recytrack.schemas.base import BaseCreateSchema, BaseResponseSchema


class ProcessingStart(BaseCreateSchema):
    """Start a processing run: step types in execution order."""
    material_input_id: UUID
    steps: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class StepComplete(BaseModel):
    """Optional sampling when a step completes."""
    sampler_name: Optional[str] = None
    create_retention_sample: bool = True
    notes: Optional[str] = None


class ProcessingStepResponse(BaseResponseSchema):
    id: UUID
    processing_id: str
    material_input_id: UUID
    step_type: str
    step_order: int
    status: str
    progress: Optional[int] = None
    notes: Optional[str] = None
    operator_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
