"""Container endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Query, status

from recytrack.api.deps import DB, CurrentActor, IdGenerator
from recytrack.models.container import ContainerStatus
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.schemas.container import ContainerCreate, ContainerResponse
from recytrack.services.container_service import ContainerService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[ContainerResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create Container"
)
async def create_container(data: ContainerCreate, db: DB, actor: CurrentActor, ids: IdGenerator):
    service = ContainerService(db, ids=ids)
    result = await service.create_container(
        data.type,
        actor,
        volume_liters=data.volume_liters,
        weight_kg=data.weight_kg,
        location=data.location,
    )
    return operation_response(result)


@router.get(
    "",
    response_model=List[ContainerResponse],
    summary="List Containers"
)
async def list_containers(
    db: DB,
    actor: CurrentActor,
    status_filter: Optional[ContainerStatus] = Query(None, alias="status"),
    purpose: Optional[str] = Query(None, description="intake or output: only assignable containers"),
):
    service = ContainerService(db)
    if purpose:
        return await service.list_assignable_containers(purpose)
    return await service.list_containers(status=status_filter)
