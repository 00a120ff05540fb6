"""Processing run and step endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from recytrack.api.deps import DB, CurrentActor, IdGenerator
from recytrack.models.material import ProcessingStepStatus
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.schemas.processing import ProcessingStart, ProcessingStepResponse, StepComplete
from recytrack.services.processing_service import ProcessingService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[List[ProcessingStepResponse]],
    status_code=status.HTTP_201_CREATED,
    summary="Start Processing"
)
async def start_processing(
    data: ProcessingStart,
    db: DB,
    actor: CurrentActor,
    ids: IdGenerator,
):
    """
    Start a processing run over a material input.

    The first step starts running, the others wait as pending.
    """
    service = ProcessingService(db, ids=ids)
    result = await service.start_processing(
        data.material_input_id, data.steps, actor, notes=data.notes
    )
    return operation_response(result)


@router.get(
    "/steps",
    response_model=List[ProcessingStepResponse],
    summary="List Processing Steps"
)
async def list_steps(
    db: DB,
    actor: CurrentActor,
    material_input_id: Optional[UUID] = None,
    processing_id: Optional[str] = None,
    status_filter: Optional[ProcessingStepStatus] = Query(None, alias="status"),
):
    service = ProcessingService(db)
    return await service.list_steps(
        material_input_id=material_input_id,
        processing_id=processing_id,
        status=status_filter,
    )


@router.post(
    "/steps/{step_id}/complete",
    response_model=OperationResponse[ProcessingStepResponse],
    summary="Complete Step"
)
async def complete_step(
    step_id: UUID,
    db: DB,
    actor: CurrentActor,
    ids: IdGenerator,
    data: Optional[StepComplete] = None,
):
    """Complete a step; starts the next one or finishes the run."""
    data = data or StepComplete()
    service = ProcessingService(db, ids=ids)
    result = await service.complete_step(
        step_id,
        actor,
        sampler_name=data.sampler_name,
        create_retention_sample=data.create_retention_sample,
        notes=data.notes,
    )
    return operation_response(result)


@router.post(
    "/steps/{step_id}/pause",
    response_model=OperationResponse[ProcessingStepResponse],
    summary="Pause Step"
)
async def pause_step(step_id: UUID, db: DB, actor: CurrentActor):
    service = ProcessingService(db)
    return operation_response(await service.pause_step(step_id, actor))


@router.post(
    "/steps/{step_id}/resume",
    response_model=OperationResponse[ProcessingStepResponse],
    summary="Resume Step"
)
async def resume_step(step_id: UUID, db: DB, actor: CurrentActor):
    service = ProcessingService(db)
    return operation_response(await service.resume_step(step_id, actor))


@router.post(
    "/steps/{step_id}/require-sample",
    response_model=OperationResponse[ProcessingStepResponse],
    summary="Hold Step for Sample"
)
async def require_sample(step_id: UUID, db: DB, actor: CurrentActor):
    service = ProcessingService(db)
    return operation_response(await service.require_sample(step_id, actor))
