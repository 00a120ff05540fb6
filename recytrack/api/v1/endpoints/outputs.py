"""Output material endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from recytrack.api.deps import DB, CurrentActor, IdGenerator
from recytrack.models.output_material import OutputMaterialStatus
from recytrack.schemas.allocation import AllocationListItem, AllocationResponse
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.schemas.output_material import (
    OutputMaterialCreate, OutputMaterialDetail, OutputMaterialResponse,
)
from recytrack.services.allocation_service import AllocationService
from recytrack.services.output_material_service import OutputMaterialService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[OutputMaterialResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create Output Material"
)
async def create_output(
    data: OutputMaterialCreate,
    db: DB,
    actor: CurrentActor,
    ids: IdGenerator,
):
    """Record produced material (status in_stock)."""
    service = OutputMaterialService(db, ids=ids)
    result = await service.create_output(actor=actor, **data.model_dump())
    return operation_response(result)


@router.get(
    "",
    response_model=List[OutputMaterialResponse],
    summary="List Output Materials"
)
async def list_outputs(
    db: DB,
    actor: CurrentActor,
    status_filter: Optional[OutputMaterialStatus] = Query(None, alias="status"),
    batch_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    service = OutputMaterialService(db)
    return await service.list_outputs(status=status_filter, batch_id=batch_id, skip=skip, limit=limit)


@router.get(
    "/{output_material_id}",
    response_model=OutputMaterialDetail,
    summary="Get Output Material"
)
async def get_output(output_material_id: UUID, db: DB, actor: CurrentActor):
    """Get an output with allocated and remaining weight from the ledger."""
    output = await OutputMaterialService(db).get_output(output_material_id)
    allocations = AllocationService(db)
    allocated = await allocations.allocated_total(output.id)
    return OutputMaterialDetail(
        **OutputMaterialResponse.model_validate(output).model_dump(),
        allocated_kg=allocated,
        remaining_kg=output.weight_kg - allocated,
    )


@router.get(
    "/{output_material_id}/allocations",
    response_model=List[AllocationListItem],
    summary="List Allocations of Output"
)
async def list_output_allocations(output_material_id: UUID, db: DB, actor: CurrentActor):
    service = AllocationService(db)
    rows = await service.list_allocations(output_material_id)
    return [
        AllocationListItem(
            **AllocationResponse.model_validate(allocation).model_dump(),
            order_code=order_code,
        )
        for allocation, order_code in rows
    ]
