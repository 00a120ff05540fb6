import logging
from typing import Any, List, Optional
import uuid

from sqlalchemy import select

from recytrack.core.exceptions import ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.models.container import Container, ContainerStatus
from recytrack.models.material import MaterialInput, MaterialInputStatus
from recytrack.models.material_flow import MaterialFlowEventType
from recytrack.services.base import LifecycleService
from recytrack.services.identifier_service import IdPrefix
from recytrack.services.results import OperationResult, transactional
from recytrack.services.validators import clean, is_blank, parse_weight

logger = logging.getLogger(__name__)


class IntakeService(LifecycleService):
    """Receiving raw material."""

    @transactional(conflict_message="material input code already exists")
    async def receive_material(
        self,
        supplier: str,
        material_type: str,
        weight_kg: Any,
        actor: Actor,
        material_subtype: Optional[str] = None,
        waste_code: Optional[str] = None,
        container_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> OperationResult[MaterialInput]:
        """
        Register a received batch of raw material with status received.

        The container, if given, is moved to filling as a best-effort side
        effect.
        """
        require_role(actor, Operation.INTAKE_CREATE)

        errors = []
        if is_blank(supplier):
            errors.append("supplier is required")
        if is_blank(material_type):
            errors.append("material_type is required")
        weight = parse_weight(weight_kg)
        if weight is None:
            errors.append("weight_kg must be a number greater than 0")
        if errors:
            raise ValidationError("invalid input", errors=errors)

        container = None
        if container_id is not None:
            container = await self._get_or_404(Container, container_id, "Container")

        input_code = await self._generate_id(IdPrefix.MATERIAL_INPUT)
        material_input = MaterialInput(
            input_id=input_code,
            supplier=supplier.strip(),
            material_type=material_type.strip(),
            material_subtype=clean(material_subtype),
            weight_kg=weight,
            waste_code=clean(waste_code),
            container_id=container.id if container else None,
            status=MaterialInputStatus.RECEIVED.value,
            notes=clean(notes),
            created_by=actor.user_id,
        )
        self.db.add(material_input)
        await self.db.flush()

        logger.info(f"Received material input {input_code} ({weight} kg from {material_input.supplier})")

        result = OperationResult(primary=material_input)

        if container is not None:
            async def fill_container():
                container.status = ContainerStatus.FILLING.value
                await self.db.flush()

            await self._side_effect(result, "container:filling", fill_container)

        await self._audit(
            result,
            MaterialFlowEventType.INTAKE_RECEIVED,
            f"Material input {input_code} received from {material_input.supplier}",
            actor,
            details={"weight_kg": str(weight), "material_type": material_input.material_type},
            material_input_id=material_input.id,
            container_id=material_input.container_id,
        )
        return result

    async def get_material_input(self, material_input_id: uuid.UUID) -> MaterialInput:
        return await self._get_or_404(MaterialInput, material_input_id, "Material input")

    async def list_material_inputs(
        self,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[MaterialInput]:
        query = select(MaterialInput)
        if status:
            query = query.where(MaterialInput.status == getattr(status, "value", status))
        query = query.order_by(MaterialInput.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
