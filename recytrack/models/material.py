"""
Material intake and processing models.

- MaterialInput: a received batch of raw recyclable material
- ProcessingStep: one stage of a processing run over a material input
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Integer, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recytrack.database import Base
from recytrack.db_types import UUIDType, WeightType

if TYPE_CHECKING:
    from recytrack.models.container import Container
    from recytrack.models.sample import Sample


# ============================================================================
# ENUMS
# ============================================================================

class MaterialInputStatus(str, Enum):
    """Lifecycle status of a material input."""
    RECEIVED = "received"
    IN_PROCESSING = "in_processing"
    PROCESSED = "processed"
    REJECTED = "rejected"


class ProcessingStepStatus(str, Enum):
    """Status of a single processing step."""
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    SAMPLE_REQUIRED = "sample_required"
    COMPLETED = "completed"


class StepType(str, Enum):
    """Known processing stages."""
    SHREDDING = "shredding"
    SORTING = "sorting"
    MILLING = "milling"
    SEPARATION = "separation"


# A chain with any step in one of these states blocks a new run
ACTIVE_STEP_STATUSES = (
    ProcessingStepStatus.RUNNING.value,
    ProcessingStepStatus.PAUSED.value,
    ProcessingStepStatus.PENDING.value,
    ProcessingStepStatus.SAMPLE_REQUIRED.value,
)


# ============================================================================
# MODELS
# ============================================================================

class MaterialInput(Base):
    """Incoming raw material, created at intake."""
    __tablename__ = "material_inputs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    input_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)

    supplier: Mapped[str] = mapped_column(String(200), nullable=False)
    material_type: Mapped[str] = mapped_column(String(50), nullable=False)
    material_subtype: Mapped[Optional[str]] = mapped_column(String(50))
    weight_kg: Mapped[Decimal] = mapped_column(WeightType, nullable=False)
    waste_code: Mapped[Optional[str]] = mapped_column(String(20))

    container_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("containers.id", ondelete="SET NULL")
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MaterialInputStatus.RECEIVED.value, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_by: Mapped[Optional[str]] = mapped_column(String(100))
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    container: Mapped[Optional["Container"]] = relationship("Container")
    processing_steps: Mapped[List["ProcessingStep"]] = relationship(
        back_populates="material_input", order_by="ProcessingStep.step_order"
    )

    def __repr__(self) -> str:
        return f"<MaterialInput(input_id='{self.input_id}', status='{self.status}')>"


class ProcessingStep(Base):
    """
    One step of a processing run.

    All steps of a run share the same processing_id and are ordered by
    step_order (1..N). Only one step of a run is running at a time.
    """
    __tablename__ = "processing_steps"
    __table_args__ = (
        Index("idx_ps_input_status", "material_input_id", "status"),
        Index("idx_ps_processing_order", "processing_id", "step_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    processing_id: Mapped[str] = mapped_column(String(50), nullable=False)
    material_input_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("material_inputs.id"), nullable=False
    )

    step_type: Mapped[str] = mapped_column(String(50), nullable=False)
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProcessingStepStatus.PENDING.value
    )
    progress: Mapped[Optional[int]] = mapped_column(Integer, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    operator_id: Mapped[Optional[str]] = mapped_column(String(100))
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    material_input: Mapped["MaterialInput"] = relationship(back_populates="processing_steps")
    samples: Mapped[List["Sample"]] = relationship(back_populates="processing_step")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STEP_STATUSES

    def __repr__(self) -> str:
        return (
            f"<ProcessingStep(processing_id='{self.processing_id}', "
            f"order={self.step_order}, status='{self.status}')>"
        )
