import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from recytrack.database import Base
from recytrack.db_types import UUIDType, WeightType


class DeliveryNoteType(str, Enum):
    """Direction of a delivery note."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class DeliveryNote(Base):
    """Incoming or outgoing delivery note (LS-...)."""
    __tablename__ = "delivery_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    note_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    partner_name: Mapped[str] = mapped_column(String(200), nullable=False)
    material_description: Mapped[str] = mapped_column(String(200), nullable=False)
    weight_kg: Mapped[Decimal] = mapped_column(WeightType, nullable=False)
    waste_code: Mapped[Optional[str]] = mapped_column(String(20))
    batch_reference: Mapped[Optional[str]] = mapped_column(String(100))

    material_input_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("material_inputs.id", ondelete="SET NULL")
    )
    output_material_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("output_materials.id", ondelete="SET NULL")
    )

    # Generated PDF in object storage
    pdf_url: Mapped[Optional[str]] = mapped_column(String(500))

    created_by: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<DeliveryNote(note_id='{self.note_id}', type='{self.type}')>"
