"""Sampling and QA endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from recytrack.api.deps import DB, CurrentActor, IdGenerator
from recytrack.models.sample import SampleStatus
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.schemas.sample import (
    SampleCreate, SampleDetailResponse, SampleReject,
    SampleResponse, SampleResultsCreate,
)
from recytrack.services.sample_service import SampleService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[SampleResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create Sample"
)
async def create_sample(
    data: SampleCreate,
    db: DB,
    actor: CurrentActor,
    ids: IdGenerator,
):
    service = SampleService(db, ids=ids)
    result = await service.create_sample(
        data.sampler_name,
        actor,
        material_input_id=data.material_input_id,
        processing_step_id=data.processing_step_id,
        notes=data.notes,
    )
    return operation_response(result)


@router.get(
    "",
    response_model=List[SampleResponse],
    summary="List Samples"
)
async def list_samples(
    db: DB,
    actor: CurrentActor,
    status_filter: Optional[SampleStatus] = Query(None, alias="status"),
    material_input_id: Optional[UUID] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    service = SampleService(db)
    return await service.list_samples(
        status=status_filter, material_input_id=material_input_id, skip=skip, limit=limit
    )


@router.get(
    "/{sample_id}",
    response_model=SampleDetailResponse,
    summary="Get Sample"
)
async def get_sample(sample_id: UUID, db: DB, actor: CurrentActor):
    """Get a sample with its lab results."""
    service = SampleService(db)
    return await service.get_sample(sample_id)


@router.post(
    "/{sample_id}/results",
    response_model=OperationResponse[SampleResponse],
    summary="Record Lab Results"
)
async def record_results(
    sample_id: UUID,
    data: SampleResultsCreate,
    db: DB,
    actor: CurrentActor,
):
    service = SampleService(db)
    result = await service.record_results(
        sample_id, [r.model_dump() for r in data.results], actor
    )
    return operation_response(result)


@router.post(
    "/{sample_id}/approve",
    response_model=OperationResponse[SampleResponse],
    summary="Approve Sample"
)
async def approve_sample(sample_id: UUID, db: DB, actor: CurrentActor):
    service = SampleService(db)
    return operation_response(await service.approve(sample_id, actor))


@router.post(
    "/{sample_id}/reject",
    response_model=OperationResponse[SampleResponse],
    summary="Reject Sample"
)
async def reject_sample(
    sample_id: UUID,
    db: DB,
    actor: CurrentActor,
    data: Optional[SampleReject] = None,
):
    """Reject a sample; the linked input is rejected and its active steps closed."""
    data = data or SampleReject()
    service = SampleService(db)
    return operation_response(await service.reject(sample_id, actor, reason=data.reason))


@router.post(
    "/{sample_id}/revert-rejection",
    response_model=OperationResponse[SampleResponse],
    summary="Revert Sample Rejection"
)
async def revert_rejection(sample_id: UUID, db: DB, actor: CurrentActor):
    service = SampleService(db)
    return operation_response(await service.revert_rejection(sample_id, actor))
