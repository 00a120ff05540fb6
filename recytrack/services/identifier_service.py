"""
Human-readable identifier generation.

Every lifecycle entity carries a prefixed code next to its primary key:

    ME   Material input         OUT  Output material
    VRB  Processing run         AUF  Order
    PRB  Sample                 LS   Delivery note
    RST  Retention sample       BB/BX/GX/CT  Containers by type

Services depend on the IdentifierGenerator protocol only, so tests can
inject a deterministic generator instead of the database sequence.

USAGE:
    ids = SequenceIdGenerator(db)
    output_code = await ids.generate_unique_id("OUT")
    # Returns: OUT-2026-00001
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recytrack.config import settings
from recytrack.core.exceptions import IdGenerationError
from recytrack.models.id_sequence import IdSequence

logger = logging.getLogger(__name__)


class IdPrefix:
    """Code prefixes per entity."""
    MATERIAL_INPUT = "ME"
    PROCESSING = "VRB"
    SAMPLE = "PRB"
    RETENTION_SAMPLE = "RST"
    OUTPUT = "OUT"
    ORDER = "AUF"
    DELIVERY_NOTE = "LS"


class IdentifierGenerator(Protocol):
    """Produces globally unique, human-readable entity codes."""

    async def generate_unique_id(self, prefix: str) -> str:
        ...


class SequenceIdGenerator:
    """
    Identifier generator backed by the id_sequences table.

    Uses SELECT FOR UPDATE on the (prefix, year) row so concurrent
    transactions never hand out the same number. The increment is part of
    the caller's transaction and is rolled back with it.
    """

    def __init__(self, db: AsyncSession, padding: Optional[int] = None):
        self.db = db
        self.padding = padding or settings.ID_SEQUENCE_PADDING

    async def generate_unique_id(self, prefix: str) -> str:
        prefix = (prefix or "").strip().upper()
        if not prefix:
            raise IdGenerationError("identifier prefix is required")

        year = datetime.now(timezone.utc).year
        try:
            sequence = await self._get_or_create_sequence(prefix, year)
            code = sequence.get_next_number()
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Identifier generation for {prefix} failed: {e}")
            raise IdGenerationError(
                f"could not generate identifier for prefix {prefix}",
                details={"prefix": prefix},
            ) from e

        logger.debug(f"Generated identifier {code}")
        return code

    async def _get_or_create_sequence(self, prefix: str, year: int) -> IdSequence:
        """Get the sequence row with a lock, creating it on first use."""
        sequence = await self._locked_sequence(prefix, year)
        if sequence:
            return sequence

        sequence = IdSequence(
            prefix=prefix,
            year=year,
            current_number=0,
            padding_length=self.padding,
        )
        self.db.add(sequence)
        await self.db.flush()

        # Re-fetch with lock
        return await self._locked_sequence(prefix, year)

    async def _locked_sequence(self, prefix: str, year: int) -> Optional[IdSequence]:
        result = await self.db.execute(
            select(IdSequence)
            .where(IdSequence.prefix == prefix, IdSequence.year == year)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
