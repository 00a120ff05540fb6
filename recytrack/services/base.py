"""Common plumbing for the lifecycle services."""
import logging
from typing import Optional, Type, TypeVar
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from recytrack.core.exceptions import IdGenerationError, LifecycleError, NotFoundError
from recytrack.core.permissions import Actor
from recytrack.services.identifier_service import IdentifierGenerator, SequenceIdGenerator
from recytrack.services.material_flow_service import MaterialFlowService
from recytrack.services.results import OperationResult, run_side_effect

logger = logging.getLogger(__name__)

M = TypeVar("M")


class LifecycleService:
    """
    Base for services that mutate lifecycle records.

    The identifier generator and the material flow recorder are injected so
    tests can swap in deterministic or failing implementations.
    """

    def __init__(
        self,
        db: AsyncSession,
        ids: Optional[IdentifierGenerator] = None,
        flow: Optional[MaterialFlowService] = None,
    ):
        self.db = db
        self.ids = ids or SequenceIdGenerator(db)
        self.flow = flow or MaterialFlowService(db)

    async def _get_or_404(self, model: Type[M], entity_id: uuid.UUID, label: str) -> M:
        entity = await self.db.get(model, entity_id)
        if entity is None:
            raise NotFoundError(f"{label} not found", details={"id": str(entity_id)})
        return entity

    async def _generate_id(self, prefix: str) -> str:
        """Ask the identifier generator for a code; any failure aborts the operation."""
        try:
            return await self.ids.generate_unique_id(prefix)
        except LifecycleError:
            raise
        except Exception as e:
            logger.error(f"Identifier generation for {prefix} failed: {e}")
            raise IdGenerationError(
                f"could not generate identifier for prefix {prefix}",
                details={"prefix": str(prefix)},
            ) from e

    async def _side_effect(self, result: OperationResult, name: str, action) -> None:
        outcome = await run_side_effect(self.db, name, action)
        result.side_effects.append(outcome)

    async def _audit(
        self,
        result: OperationResult,
        event_type,
        description: str,
        actor: Actor,
        details: Optional[dict] = None,
        **links,
    ) -> None:
        """Append a material flow event as a best-effort side effect."""
        event_name = getattr(event_type, "value", event_type)
        await self._side_effect(
            result,
            f"audit:{event_name}",
            lambda: self.flow.record(
                event_type,
                description,
                details=details,
                created_by=actor.user_id,
                **links,
            ),
        )
