"""Material flow history (read-only)."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query

from recytrack.api.deps import DB, CurrentActor
from recytrack.models.material_flow import MaterialFlowEventType
from recytrack.schemas.material_flow import MaterialFlowEventResponse
from recytrack.services.material_flow_service import MaterialFlowService

router = APIRouter()


@router.get(
    "",
    response_model=List[MaterialFlowEventResponse],
    summary="List Material Flow Events"
)
async def list_events(
    db: DB,
    actor: CurrentActor,
    material_input_id: Optional[UUID] = None,
    processing_step_id: Optional[UUID] = None,
    sample_id: Optional[UUID] = None,
    container_id: Optional[UUID] = None,
    output_material_id: Optional[UUID] = None,
    delivery_note_id: Optional[UUID] = None,
    event_type: Optional[MaterialFlowEventType] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Events newest first, filtered by any entity link."""
    service = MaterialFlowService(db)
    return await service.list_events(
        material_input_id=material_input_id,
        processing_step_id=processing_step_id,
        sample_id=sample_id,
        container_id=container_id,
        output_material_id=output_material_id,
        delivery_note_id=delivery_note_id,
        event_type=event_type,
        skip=skip,
        limit=limit,
    )
