"""
Delivery notes (Lieferscheine).

An outgoing note linked to an output material ships that output; the status
flip is part of the note's own transaction. Incoming notes never touch
output materials.
"""
import logging
from typing import Any, List, Optional
import uuid

from sqlalchemy import select

from recytrack.core.exceptions import BackendError, ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.core.storage import StorageClient, StorageError
from recytrack.models.delivery_note import DeliveryNote, DeliveryNoteType
from recytrack.models.material import MaterialInput
from recytrack.models.material_flow import MaterialFlowEventType
from recytrack.models.output_material import OutputMaterial, OutputMaterialStatus
from recytrack.services.base import LifecycleService
from recytrack.services.identifier_service import IdPrefix
from recytrack.services.results import OperationResult, transactional
from recytrack.services.validators import clean, is_blank, parse_weight

logger = logging.getLogger(__name__)

NOTE_TYPES = tuple(t.value for t in DeliveryNoteType)


class DeliveryNoteService(LifecycleService):
    """Incoming and outgoing delivery notes."""

    def __init__(self, db, ids=None, flow=None, storage=None):
        super().__init__(db, ids=ids, flow=flow)
        self.storage = storage or StorageClient

    @transactional(conflict_message="delivery note code already exists")
    async def create_delivery_note(
        self,
        note_type: str,
        partner_name: str,
        material_description: str,
        weight_kg: Any,
        actor: Actor,
        material_input_id: Optional[uuid.UUID] = None,
        output_material_id: Optional[uuid.UUID] = None,
        waste_code: Optional[str] = None,
        batch_reference: Optional[str] = None,
    ) -> OperationResult[DeliveryNote]:
        """
        Create a delivery note.

        Validation collects every violation into one error list. For an
        outgoing note the linked output material becomes shipped.
        """
        require_role(actor, Operation.DELIVERY_CREATE)

        note_type = getattr(note_type, "value", note_type)
        errors = []
        if note_type not in NOTE_TYPES:
            errors.append(f"type must be one of {', '.join(NOTE_TYPES)}")
        if is_blank(partner_name):
            errors.append("partner_name is required")
        if is_blank(material_description):
            errors.append("material_description is required")
        weight = parse_weight(weight_kg)
        if weight is None:
            errors.append("weight_kg must be a number greater than 0")
        if errors:
            raise ValidationError("invalid input", errors=errors)

        if material_input_id is not None:
            await self._get_or_404(MaterialInput, material_input_id, "Material input")
        output = None
        if output_material_id is not None:
            output = await self._get_or_404(OutputMaterial, output_material_id, "Output material")

        note_code = await self._generate_id(IdPrefix.DELIVERY_NOTE)
        note = DeliveryNote(
            note_id=note_code,
            type=note_type,
            partner_name=partner_name.strip(),
            material_description=material_description.strip(),
            weight_kg=weight,
            waste_code=clean(waste_code),
            batch_reference=clean(batch_reference) or (output.batch_id if output else None),
            material_input_id=material_input_id,
            output_material_id=output.id if output else None,
            created_by=actor.user_id,
        )
        self.db.add(note)

        if note_type == DeliveryNoteType.OUTGOING.value and output is not None:
            output.status = OutputMaterialStatus.SHIPPED.value
        await self.db.flush()

        logger.info(f"Created {note_type} delivery note {note_code} ({weight} kg, {note.partner_name})")

        result = OperationResult(primary=note)
        await self._audit(
            result,
            MaterialFlowEventType.DELIVERY_NOTE_CREATED,
            f"{note_type.capitalize()} delivery note {note_code} for {note.partner_name}",
            actor,
            details={
                "type": note_type,
                "weight_kg": str(weight),
                "output_id": output.output_id if output else None,
            },
            delivery_note_id=note.id,
            material_input_id=material_input_id,
            output_material_id=note.output_material_id,
        )
        return result

    @transactional()
    async def attach_document(
        self,
        delivery_note_id: uuid.UUID,
        content: bytes,
        actor: Actor,
        content_type: str = "application/pdf",
    ) -> OperationResult[DeliveryNote]:
        """Upload the generated PDF and store its public URL on the note."""
        require_role(actor, Operation.DELIVERY_CREATE)
        if not content:
            raise ValidationError("invalid input", errors=["document is empty"])

        note = await self._get_or_404(DeliveryNote, delivery_note_id, "Delivery note")
        path = f"delivery-notes/{note.note_id}.pdf"
        try:
            url = await self.storage.upload(content, path, content_type=content_type)
        except StorageError as e:
            raise BackendError(str(e), code="storage_upload_failed") from e

        note.pdf_url = url
        await self.db.flush()
        logger.info(f"Attached document to delivery note {note.note_id}")

        result = OperationResult(primary=note)
        await self._audit(
            result,
            MaterialFlowEventType.DOCUMENT_UPLOADED,
            f"Document uploaded for delivery note {note.note_id}",
            actor,
            details={"path": path},
            delivery_note_id=note.id,
        )
        return result

    async def get_delivery_note(self, delivery_note_id: uuid.UUID) -> DeliveryNote:
        return await self._get_or_404(DeliveryNote, delivery_note_id, "Delivery note")

    async def list_delivery_notes(
        self,
        note_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[DeliveryNote]:
        query = select(DeliveryNote)
        if note_type:
            query = query.where(DeliveryNote.type == getattr(note_type, "value", note_type))
        query = query.order_by(DeliveryNote.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
