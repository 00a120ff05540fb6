"""Customer order endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from recytrack.api.deps import DB, CurrentActor, IdGenerator
from recytrack.models.order import OrderStatus
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.schemas.order import OrderCreate, OrderResponse
from recytrack.services.order_service import OrderService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[OrderResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create Order"
)
async def create_order(data: OrderCreate, db: DB, actor: CurrentActor, ids: IdGenerator):
    service = OrderService(db, ids=ids)
    result = await service.create_order(actor=actor, **data.model_dump())
    return operation_response(result)


@router.get(
    "",
    response_model=List[OrderResponse],
    summary="List Orders"
)
async def list_orders(
    db: DB,
    actor: CurrentActor,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    allocatable: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List orders; `allocatable=true` returns only orders open for allocation."""
    service = OrderService(db)
    if allocatable:
        return await service.list_allocatable_orders()
    return await service.list_orders(status=status_filter, skip=skip, limit=limit)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get Order"
)
async def get_order(order_id: UUID, db: DB, actor: CurrentActor):
    service = OrderService(db)
    return await service.get_order(order_id)
