"""
Batch allocation service.

Reserves part of an output material's weight for a customer order.

Conservation: for every output material the sum of its allocations never
exceeds its weight_kg. Remaining weight is always recomputed from the
ledger. The check and the insert run in one transaction with the output row
locked (SELECT FOR UPDATE on PostgreSQL, BEGIN IMMEDIATE on SQLite), and the
database trigger on batch_allocations rejects any write that slips past.
"""
import logging
from decimal import Decimal
from typing import Any, List, Optional, Tuple
import uuid

from sqlalchemy import select, func

from recytrack.core.exceptions import ConflictError, NotFoundError, ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.models.allocation import BatchAllocation
from recytrack.models.material_flow import MaterialFlowEventType
from recytrack.models.order import ALLOCATABLE_ORDER_STATUSES, Order, OrderStatus
from recytrack.models.output_material import OutputMaterial
from recytrack.services.base import LifecycleService
from recytrack.services.results import OperationResult, transactional
from recytrack.services.state_machine import ORDER_TRANSITIONS, validate_transition
from recytrack.services.validators import clean, parse_weight, to_weight

logger = logging.getLogger(__name__)


class AllocationService(LifecycleService):
    """Batch allocation ledger operations."""

    @transactional(conflict_message="already allocated to this order")
    async def allocate(
        self,
        output_material_id: uuid.UUID,
        order_id: uuid.UUID,
        allocated_weight_kg: Any,
        actor: Actor,
        notes: Optional[str] = None,
    ) -> OperationResult[BatchAllocation]:
        """
        Allocate weight of an output material to an order.

        Checks, in order:
            1. weight is a finite number > 0            -> ValidationError
            2. the (output, order) pair is not taken    -> ConflictError
            3. weight <= remaining weight of the output -> ValidationError

        The pair check runs before the remaining-weight check so a duplicate
        pair is a conflict no matter how much weight is requested. A weight
        that is not a positive number always fails first, duplicate pair or
        not, since nothing is read before it is parsed.

        On success the order moves pending -> in_production, in the same
        transaction as the insert. Later allocations leave its status alone.
        """
        require_role(actor, Operation.ALLOCATION_CREATE)

        weight = parse_weight(allocated_weight_kg)
        if weight is None:
            raise ValidationError("invalid weight", details={"value": str(allocated_weight_kg)})

        output = await self._lock_output(output_material_id)
        order = await self._get_or_404(Order, order_id, "Order")

        if order.status not in ALLOCATABLE_ORDER_STATUSES:
            raise ValidationError(
                f"order {order.order_id} is {order.status} and cannot receive allocations",
                details={"order_status": order.status},
            )

        existing = await self.db.execute(
            select(BatchAllocation.id).where(
                BatchAllocation.output_material_id == output.id,
                BatchAllocation.order_id == order.id,
            )
        )
        if existing.first() is not None:
            raise ConflictError(
                "already allocated to this order",
                details={"output_id": output.output_id, "order_id": order.order_id},
            )

        remaining = await self._remaining_for(output)
        if weight > remaining:
            raise ValidationError("exceeds remaining weight", remaining=remaining)

        allocation = BatchAllocation(
            output_material_id=output.id,
            order_id=order.id,
            allocated_weight_kg=weight,
            allocated_by=actor.user_id,
            notes=clean(notes),
        )
        self.db.add(allocation)

        # First allocation only; later ones leave the status alone
        if order.status == OrderStatus.PENDING.value:
            validate_transition(ORDER_TRANSITIONS, order.status, OrderStatus.IN_PRODUCTION.value, "order")
            order.status = OrderStatus.IN_PRODUCTION.value

        await self.db.flush()

        logger.info(
            f"Allocated {weight} kg of {output.output_id} to {order.order_id} "
            f"(remaining {remaining - weight} kg)"
        )

        result = OperationResult(primary=allocation)
        await self._audit(
            result,
            MaterialFlowEventType.BATCH_ALLOCATED,
            f"{weight} kg of {output.output_id} allocated to order {order.order_id}",
            actor,
            details={
                "output_id": output.output_id,
                "order_id": order.order_id,
                "allocated_weight_kg": str(weight),
                "remaining_kg": str(remaining - weight),
            },
            output_material_id=output.id,
        )
        return result

    async def remaining_weight(self, output_material_id: uuid.UUID) -> Decimal:
        """Weight of the output not yet allocated, recomputed from the ledger."""
        output = await self._get_or_404(OutputMaterial, output_material_id, "Output material")
        return await self._remaining_for(output)

    async def list_allocations(
        self, output_material_id: uuid.UUID
    ) -> List[Tuple[BatchAllocation, str]]:
        """Allocations of one output with the human code of each order."""
        await self._get_or_404(OutputMaterial, output_material_id, "Output material")
        result = await self.db.execute(
            select(BatchAllocation, Order.order_id)
            .join(Order, Order.id == BatchAllocation.order_id)
            .where(BatchAllocation.output_material_id == output_material_id)
            .order_by(BatchAllocation.allocated_at)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def allocated_total(self, output_material_id: uuid.UUID) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(BatchAllocation.allocated_weight_kg), 0))
            .where(BatchAllocation.output_material_id == output_material_id)
        )
        return to_weight(result.scalar_one())

    async def _remaining_for(self, output: OutputMaterial) -> Decimal:
        allocated = await self.allocated_total(output.id)
        return to_weight(output.weight_kg) - allocated

    async def _lock_output(self, output_material_id: uuid.UUID) -> OutputMaterial:
        """Load the output row with a write lock held until commit."""
        result = await self.db.execute(
            select(OutputMaterial)
            .where(OutputMaterial.id == output_material_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        output = result.scalar_one_or_none()
        if output is None:
            raise NotFoundError("Output material not found", details={"id": str(output_material_id)})
        return output
