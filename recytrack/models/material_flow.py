import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from recytrack.database import Base
from recytrack.db_types import UUIDType, JSONType


class MaterialFlowEventType(str, Enum):
    """Lifecycle transitions recorded for traceability."""
    INTAKE_RECEIVED = "intake_received"
    CONTAINER_ASSIGNED = "container_assigned"
    PROCESSING_STARTED = "processing_started"
    PROCESSING_STEP_CHANGED = "processing_step_changed"
    PROCESSING_COMPLETED = "processing_completed"
    SAMPLE_CREATED = "sample_created"
    SAMPLE_ANALYZED = "sample_analyzed"
    SAMPLE_APPROVED = "sample_approved"
    SAMPLE_REJECTED = "sample_rejected"
    SAMPLE_REJECTION_REVERTED = "sample_rejection_reverted"
    OUTPUT_CREATED = "output_created"
    BATCH_ALLOCATED = "batch_allocated"
    DELIVERY_NOTE_CREATED = "delivery_note_created"
    DOCUMENT_UPLOADED = "document_uploaded"


class MaterialFlowEvent(Base):
    """
    Append-only material flow history.

    Rows are only ever inserted. Any of the entity links may be null.
    """
    __tablename__ = "material_flow_history"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    event_description: Mapped[str] = mapped_column(Text, nullable=False)
    event_details: Mapped[dict] = mapped_column(JSONType, default=dict)

    material_input_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("material_inputs.id", ondelete="SET NULL"), index=True
    )
    processing_step_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("processing_steps.id", ondelete="SET NULL")
    )
    sample_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("samples.id", ondelete="SET NULL")
    )
    container_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("containers.id", ondelete="SET NULL")
    )
    output_material_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("output_materials.id", ondelete="SET NULL"), index=True
    )
    delivery_note_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("delivery_notes.id", ondelete="SET NULL")
    )

    created_by: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<MaterialFlowEvent(event_type='{self.event_type}')>"
