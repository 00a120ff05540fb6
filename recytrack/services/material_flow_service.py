from typing import Optional, Dict, Any, List
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recytrack.models.material_flow import MaterialFlowEvent


class MaterialFlowService:
    """
    Append-only material flow history.

    Events are only ever inserted; there is no update or delete.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        event_type: str,
        description: str,
        details: Optional[Dict[str, Any]] = None,
        created_by: Optional[str] = None,
        material_input_id: Optional[uuid.UUID] = None,
        processing_step_id: Optional[uuid.UUID] = None,
        sample_id: Optional[uuid.UUID] = None,
        container_id: Optional[uuid.UUID] = None,
        output_material_id: Optional[uuid.UUID] = None,
        delivery_note_id: Optional[uuid.UUID] = None,
    ) -> MaterialFlowEvent:
        """
        Append one event.

        Args:
            event_type: MaterialFlowEventType value
            description: Human-readable description
            details: Free-form JSON details
            created_by: ID of the user performing the action
            *_id: Links to the entities the event concerns

        Returns:
            The created MaterialFlowEvent
        """
        event = MaterialFlowEvent(
            event_type=getattr(event_type, "value", event_type),
            event_description=description,
            event_details=details or {},
            created_by=created_by,
            material_input_id=material_input_id,
            processing_step_id=processing_step_id,
            sample_id=sample_id,
            container_id=container_id,
            output_material_id=output_material_id,
            delivery_note_id=delivery_note_id,
        )
        self.db.add(event)
        await self.db.flush()
        return event

    async def list_events(
        self,
        material_input_id: Optional[uuid.UUID] = None,
        processing_step_id: Optional[uuid.UUID] = None,
        sample_id: Optional[uuid.UUID] = None,
        container_id: Optional[uuid.UUID] = None,
        output_material_id: Optional[uuid.UUID] = None,
        delivery_note_id: Optional[uuid.UUID] = None,
        event_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[MaterialFlowEvent]:
        """List events newest first, filtered by any combination of links."""
        query = select(MaterialFlowEvent)

        filters = {
            MaterialFlowEvent.material_input_id: material_input_id,
            MaterialFlowEvent.processing_step_id: processing_step_id,
            MaterialFlowEvent.sample_id: sample_id,
            MaterialFlowEvent.container_id: container_id,
            MaterialFlowEvent.output_material_id: output_material_id,
            MaterialFlowEvent.delivery_note_id: delivery_note_id,
        }
        for column, value in filters.items():
            if value is not None:
                query = query.where(column == value)
        if event_type:
            query = query.where(MaterialFlowEvent.event_type == getattr(event_type, "value", event_type))

        query = query.order_by(MaterialFlowEvent.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
