from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from recytrack.schemas.base import BaseResponseSchema


class MaterialFlowEventResponse(BaseResponseSchema):
    id: UUID
    event_type: str
    event_description: str
    event_details: Optional[Dict[str, Any]] = None
    material_input_id: Optional[UUID] = None
    processing_step_id: Optional[UUID] = None
    sample_id: Optional[UUID] = None
    container_id: Optional[UUID] = None
    output_material_id: Optional[UUID] = None
    delivery_note_id: Optional[UUID] = None
    created_by: Optional[str] = None
    created_at: datetime
