import logging
from typing import List, Optional

from sqlalchemy import select

from recytrack.core.exceptions import ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.models.container import (
    ASSIGNABLE_STATUSES, CONTAINER_PREFIXES, Container, ContainerStatus,
)
from recytrack.services.base import LifecycleService
from recytrack.services.results import OperationResult, transactional
from recytrack.services.validators import clean, parse_weight

logger = logging.getLogger(__name__)


class ContainerService(LifecycleService):
    """Physical containers for raw and output material."""

    @transactional(conflict_message="container code already exists")
    async def create_container(
        self,
        container_type: str,
        actor: Actor,
        volume_liters: Optional[int] = None,
        weight_kg=None,
        location: Optional[str] = None,
    ) -> OperationResult[Container]:
        """Create an empty container; the code prefix follows the type."""
        require_role(actor, Operation.CONTAINER_CREATE)

        container_type = getattr(container_type, "value", container_type)
        errors = []
        if container_type not in CONTAINER_PREFIXES:
            errors.append(
                f"type must be one of {', '.join(sorted(CONTAINER_PREFIXES))}"
            )
        if volume_liters is not None and volume_liters <= 0:
            errors.append("volume_liters must be greater than 0")
        tare = None
        if weight_kg is not None:
            tare = parse_weight(weight_kg)
            if tare is None:
                errors.append("weight_kg must be a number greater than 0")
        if errors:
            raise ValidationError("invalid input", errors=errors)

        code = await self._generate_id(CONTAINER_PREFIXES[container_type])
        container = Container(
            container_id=code,
            type=container_type,
            status=ContainerStatus.EMPTY.value,
            volume_liters=volume_liters,
            weight_kg=tare,
            location=clean(location),
            created_by=actor.user_id,
        )
        self.db.add(container)
        await self.db.flush()

        logger.info(f"Created container {code} ({container_type})")
        return OperationResult(primary=container)

    async def list_containers(self, status: Optional[str] = None) -> List[Container]:
        query = select(Container)
        if status:
            query = query.where(Container.status == getattr(status, "value", status))
        result = await self.db.execute(query.order_by(Container.container_id))
        return list(result.scalars().all())

    async def list_assignable_containers(self, purpose: str) -> List[Container]:
        """Containers that can receive material for intake or output."""
        statuses = ASSIGNABLE_STATUSES.get(purpose)
        if statuses is None:
            raise ValidationError(
                "invalid input",
                errors=[f"purpose must be one of {', '.join(sorted(ASSIGNABLE_STATUSES))}"],
            )
        result = await self.db.execute(
            select(Container)
            .where(Container.status.in_(statuses))
            .order_by(Container.container_id)
        )
        return list(result.scalars().all())
