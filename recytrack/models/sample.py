"""
Sampling / QA models.

A Sample is a QA checkpoint linked to a material input and/or a processing
step. Lab values are stored as SampleResult rows.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recytrack.database import Base
from recytrack.db_types import UUIDType

if TYPE_CHECKING:
    from recytrack.models.material import ProcessingStep


class SampleStatus(str, Enum):
    """QA verdict of a sample."""
    PENDING = "pending"
    IN_ANALYSIS = "in_analysis"
    APPROVED = "approved"
    REJECTED = "rejected"


# A verdict may only be given while the sample is still open
OPEN_SAMPLE_STATUSES = (SampleStatus.PENDING.value, SampleStatus.IN_ANALYSIS.value)


class Sample(Base):
    """QA sample (PRB-...) or retention sample (RST-...)."""
    __tablename__ = "samples"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    sample_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    sampler_name: Mapped[str] = mapped_column(String(200), nullable=False)

    material_input_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("material_inputs.id", ondelete="SET NULL")
    )
    processing_step_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("processing_steps.id", ondelete="SET NULL")
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SampleStatus.PENDING.value, index=True
    )
    is_retention_sample: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    sampled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    analyzed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    processing_step: Mapped[Optional["ProcessingStep"]] = relationship(back_populates="samples")
    results: Mapped[List["SampleResult"]] = relationship(
        back_populates="sample", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Sample(sample_id='{self.sample_id}', status='{self.status}')>"


class SampleResult(Base):
    """One measured lab parameter of a sample."""
    __tablename__ = "sample_results"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    sample_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("samples.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parameter_name: Mapped[str] = mapped_column(String(100), nullable=False)
    parameter_value: Mapped[str] = mapped_column(String(100), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(20))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    sample: Mapped["Sample"] = relationship(back_populates="results")
