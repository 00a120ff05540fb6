"""Delivery note endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, File, Query, UploadFile, status

from recytrack.api.deps import DB, CurrentActor, IdGenerator, Storage
from recytrack.models.delivery_note import DeliveryNoteType
from recytrack.schemas.common import OperationResponse, operation_response
from recytrack.schemas.delivery_note import DeliveryNoteCreate, DeliveryNoteResponse
from recytrack.services.delivery_note_service import DeliveryNoteService

router = APIRouter()


@router.post(
    "",
    response_model=OperationResponse[DeliveryNoteResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create Delivery Note"
)
async def create_delivery_note(
    data: DeliveryNoteCreate,
    db: DB,
    actor: CurrentActor,
    ids: IdGenerator,
):
    """
    Create an incoming or outgoing delivery note.

    An outgoing note linked to an output material marks it shipped.
    """
    service = DeliveryNoteService(db, ids=ids)
    payload = data.model_dump()
    payload["note_type"] = payload.pop("type")
    result = await service.create_delivery_note(actor=actor, **payload)
    return operation_response(result)


@router.get(
    "",
    response_model=List[DeliveryNoteResponse],
    summary="List Delivery Notes"
)
async def list_delivery_notes(
    db: DB,
    actor: CurrentActor,
    note_type: Optional[DeliveryNoteType] = Query(None, alias="type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    service = DeliveryNoteService(db)
    return await service.list_delivery_notes(note_type=note_type, skip=skip, limit=limit)


@router.post(
    "/{delivery_note_id}/document",
    response_model=OperationResponse[DeliveryNoteResponse],
    summary="Attach Delivery Note PDF"
)
async def attach_document(
    delivery_note_id: UUID,
    db: DB,
    actor: CurrentActor,
    storage: Storage,
    file: UploadFile = File(...),
):
    """Upload the generated PDF to storage and link it to the note."""
    content = await file.read()
    service = DeliveryNoteService(db, storage=storage)
    result = await service.attach_document(
        delivery_note_id,
        content,
        actor,
        content_type=file.content_type or "application/pdf",
    )
    return operation_response(result)
