"""Material intake endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from recytrack.api.deps import DB, CurrentActor, IdGenerator
from recytrack.models.material import MaterialInputStatus
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.schemas.intake import MaterialInputCreate, MaterialInputResponse
from recytrack.services.intake_service import IntakeService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[MaterialInputResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Receive Material"
)
async def receive_material(
    data: MaterialInputCreate,
    db: DB,
    actor: CurrentActor,
    ids: IdGenerator,
):
    """Register incoming raw material (status received)."""
    service = IntakeService(db, ids=ids)
    result = await service.receive_material(actor=actor, **data.model_dump())
    return operation_response(result)


@router.get(
    "",
    response_model=List[MaterialInputResponse],
    summary="List Material Inputs"
)
async def list_material_inputs(
    db: DB,
    actor: CurrentActor,
    status_filter: Optional[MaterialInputStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    service = IntakeService(db)
    return await service.list_material_inputs(status=status_filter, skip=skip, limit=limit)


@router.get(
    "/{material_input_id}",
    response_model=MaterialInputResponse,
    summary="Get Material Input"
)
async def get_material_input(material_input_id: UUID, db: DB, actor: CurrentActor):
    service = IntakeService(db)
    return await service.get_material_input(material_input_id)
