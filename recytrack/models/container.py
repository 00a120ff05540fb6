import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from recytrack.database import Base
from recytrack.db_types import UUIDType, WeightType


class ContainerType(str, Enum):
    """Physical container kinds."""
    BIGBAG = "bigbag"
    BOX = "box"
    CAGE = "cage"
    CONTAINER = "container"


class ContainerStatus(str, Enum):
    """
    Canonical container status.

    Raw material side: empty -> filling -> full -> in_processing -> processed.
    Output side: empty -> in_use.
    """
    EMPTY = "empty"
    FILLING = "filling"
    FULL = "full"
    IN_USE = "in_use"
    IN_PROCESSING = "in_processing"
    PROCESSED = "processed"


# Human-readable code prefix per container type
CONTAINER_PREFIXES = {
    ContainerType.BIGBAG.value: "BB",
    ContainerType.BOX.value: "BX",
    ContainerType.CAGE.value: "GX",
    ContainerType.CONTAINER.value: "CT",
}

# Containers that can receive material, per purpose
ASSIGNABLE_STATUSES = {
    "intake": (ContainerStatus.EMPTY.value, ContainerStatus.FILLING.value),
    "output": (ContainerStatus.EMPTY.value, ContainerStatus.IN_USE.value),
}


class Container(Base):
    """Physical container holding raw or output material."""
    __tablename__ = "containers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    container_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContainerStatus.EMPTY.value, index=True
    )

    volume_liters: Mapped[Optional[int]] = mapped_column(Integer)
    weight_kg: Mapped[Optional[Decimal]] = mapped_column(WeightType)
    location: Mapped[Optional[str]] = mapped_column(String(100))

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
        return f"<Container(container_id='{self.container_id}', status='{self.status}')>"
