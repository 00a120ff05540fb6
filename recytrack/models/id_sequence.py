"""
Identifier sequence model for human-readable entity codes.

FORMAT:
    {PREFIX}-{YEAR}-{SEQUENCE}
    e.g. OUT-2026-00042, PRB-2026-00007

One row per prefix and calendar year. The row is locked with
SELECT FOR UPDATE while the counter is incremented.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from recytrack.database import Base
from recytrack.db_types import UUIDType


class IdSequence(Base):
    """Counter behind generate_unique_id(prefix)."""
    __tablename__ = "id_sequences"
    __table_args__ = (
        UniqueConstraint("prefix", "year", name="uq_id_sequence_prefix_year"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, primary_key=True, default=uuid.uuid4
    )
    prefix: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
        comment="ME, VRB, PRB, RST, OUT, AUF, LS, BB, BX, GX, CT"
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    current_number: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Last used sequence number"
    )
    padding_length: Mapped[int] = mapped_column(Integer, default=5)

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def format(self, number: int) -> str:
        return f"{self.prefix}-{self.year}-{str(number).zfill(self.padding_length)}"

    def get_next_number(self) -> str:
        """Increment the counter and return the formatted code."""
        self.current_number += 1
        return self.format(self.current_number)

    def __repr__(self) -> str:
        return f"<IdSequence({self.prefix}-{self.year}: {self.current_number})>"
