import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from recytrack.database import Base
from recytrack.db_types import UUIDType, JSONType, WeightType


class OutputMaterialStatus(str, Enum):
    """Stock status of produced material."""
    IN_STOCK = "in_stock"
    SHIPPED = "shipped"


class OutputType(str, Enum):
    """Sellable output products."""
    GLASS_FIBER = "glass_fiber"
    RESIN_POWDER = "resin_powder"
    PP_REGRIND = "pp_regrind"
    PA_REGRIND = "pa_regrind"


class OutputMaterial(Base):
    """
    Produced material batch (OUT-...).

    weight_kg is fixed at creation. Consumption is tracked through
    BatchAllocation rows, never by changing weight_kg.
    """
    __tablename__ = "output_materials"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    output_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    batch_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    output_type: Mapped[str] = mapped_column(String(50), nullable=False)
    weight_kg: Mapped[Decimal] = mapped_column(WeightType, nullable=False)
    quality_grade: Mapped[Optional[str]] = mapped_column(String(10))

    container_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("containers.id", ondelete="SET NULL")
    )
    sample_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("samples.id", ondelete="SET NULL")
    )
    processing_step_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("processing_steps.id", ondelete="SET NULL")
    )

    destination: Mapped[Optional[str]] = mapped_column(String(200))
    fiber_size: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OutputMaterialStatus.IN_STOCK.value, index=True
    )
    attributes: Mapped[dict] = mapped_column(JSONType, default=dict)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_by: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<OutputMaterial(output_id='{self.output_id}', weight_kg={self.weight_kg})>"
