"""
Batch allocation ledger.

Each row reserves part of one output material's weight for one order.
The sum of allocated_weight_kg per output material never exceeds the output's
weight_kg. The service checks this under a row lock; the database enforces it
again with a trigger so no writer can bypass it.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DDL, String, DateTime, ForeignKey, Text, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from recytrack.database import Base
from recytrack.db_types import UUIDType, WeightType


CONSERVATION_TRIGGER = "trg_batch_allocations_conservation"
CONSERVATION_UPDATE_TRIGGER = "trg_batch_allocations_conservation_update"
CONSERVATION_FUNCTION = "enforce_batch_allocation_conservation"
CONSERVATION_MESSAGE = "allocation exceeds remaining weight"
DUPLICATE_ALLOCATION_CONSTRAINT = "uq_batch_allocation_output_order"


class BatchAllocation(Base):
    """Weight of one output material reserved for one order."""
    __tablename__ = "batch_allocations"
    __table_args__ = (
        UniqueConstraint(
            "output_material_id", "order_id",
            name=DUPLICATE_ALLOCATION_CONSTRAINT
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    output_material_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("output_materials.id"), nullable=False, index=True
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("orders.id"), nullable=False, index=True
    )
    allocated_weight_kg: Mapped[Decimal] = mapped_column(WeightType, nullable=False)
    allocated_by: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    allocated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return (
            f"<BatchAllocation(output={self.output_material_id}, "
            f"order={self.order_id}, kg={self.allocated_weight_kg})>"
        )


# ============================================================================
# CONSERVATION TRIGGER
# ============================================================================

# PostgreSQL: lock the parent output row, then compare the ledger sum.
PG_CONSERVATION_FUNCTION = DDL(f"""
CREATE OR REPLACE FUNCTION {CONSERVATION_FUNCTION}() RETURNS trigger AS $$
DECLARE
    total_weight NUMERIC;
    already_allocated NUMERIC;
BEGIN
    SELECT weight_kg INTO total_weight
      FROM output_materials
     WHERE id = NEW.output_material_id
       FOR UPDATE;

    SELECT COALESCE(SUM(allocated_weight_kg), 0) INTO already_allocated
      FROM batch_allocations
     WHERE output_material_id = NEW.output_material_id
       AND id <> NEW.id;

    IF already_allocated + NEW.allocated_weight_kg > total_weight THEN
        RAISE EXCEPTION '{CONSERVATION_MESSAGE}'
            USING ERRCODE = 'check_violation';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
""")

PG_CONSERVATION_TRIGGER = DDL(f"""
CREATE TRIGGER {CONSERVATION_TRIGGER}
BEFORE INSERT OR UPDATE OF allocated_weight_kg, output_material_id ON batch_allocations
FOR EACH ROW EXECUTE FUNCTION {CONSERVATION_FUNCTION}()
""")

# SQLite stores NUMERIC as REAL; half a gram of tolerance absorbs float noise.
SQLITE_CONSERVATION_TRIGGER = DDL(f"""
CREATE TRIGGER IF NOT EXISTS {CONSERVATION_TRIGGER}
BEFORE INSERT ON batch_allocations
FOR EACH ROW
WHEN (
    SELECT COALESCE(SUM(allocated_weight_kg), 0)
      FROM batch_allocations
     WHERE output_material_id = NEW.output_material_id
) + NEW.allocated_weight_kg > (
    SELECT weight_kg FROM output_materials WHERE id = NEW.output_material_id
) + 0.0005
BEGIN
    SELECT RAISE(ABORT, '{CONSERVATION_MESSAGE}');
END
""")

SQLITE_CONSERVATION_UPDATE_TRIGGER = DDL(f"""
CREATE TRIGGER IF NOT EXISTS {CONSERVATION_UPDATE_TRIGGER}
BEFORE UPDATE OF allocated_weight_kg, output_material_id ON batch_allocations
FOR EACH ROW
WHEN (
    SELECT COALESCE(SUM(allocated_weight_kg), 0)
      FROM batch_allocations
     WHERE output_material_id = NEW.output_material_id
       AND id <> NEW.id
) + NEW.allocated_weight_kg > (
    SELECT weight_kg FROM output_materials WHERE id = NEW.output_material_id
) + 0.0005
BEGIN
    SELECT RAISE(ABORT, '{CONSERVATION_MESSAGE}');
END
""")

event.listen(
    BatchAllocation.__table__, "after_create",
    PG_CONSERVATION_FUNCTION.execute_if(dialect="postgresql"),
)
event.listen(
    BatchAllocation.__table__, "after_create",
    PG_CONSERVATION_TRIGGER.execute_if(dialect="postgresql"),
)
event.listen(
    BatchAllocation.__table__, "after_create",
    SQLITE_CONSERVATION_TRIGGER.execute_if(dialect="sqlite"),
)
event.listen(
    BatchAllocation.__table__, "after_create",
    SQLITE_CONSERVATION_UPDATE_TRIGGER.execute_if(dialect="sqlite"),
)
