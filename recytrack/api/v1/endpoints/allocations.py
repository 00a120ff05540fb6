"""Batch allocation endpoints."""
from fastapi import APIRouter, status

from recytrack.api.deps import DB, CurrentActor
from recytrack.schemas.allocation import AllocationCreate, AllocationResult
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.services.allocation_service import AllocationService
from recytrack.services.order_service import OrderService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[AllocationResult],
    status_code=status.HTTP_201_CREATED,
    summary="Allocate Output to Order",
    responses={
        400: {"description": "Invalid weight or exceeds remaining weight"},
        409: {"description": "Output already allocated to this order"},
    },
)
async def allocate(data: AllocationCreate, db: DB, actor: CurrentActor):
    """
    Reserve weight of an output material for an order.

    The first allocation to a pending order moves it to in_production.
    """
    service = AllocationService(db)
    result = await service.allocate(
        data.output_material_id,
        data.order_id,
        data.allocated_weight_kg,
        actor,
        notes=data.notes,
    )
    remaining = await service.remaining_weight(data.output_material_id)
    order = await OrderService(db).get_order(data.order_id)
    return operation_response(
        result,
        data={
            "allocation": result.primary,
            "remaining_kg": remaining,
            "order_status": order.status,
        },
    )
