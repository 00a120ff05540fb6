import logging
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import select

from recytrack.core.exceptions import ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.models.container import Container, ContainerStatus
from recytrack.models.material import ProcessingStep
from recytrack.models.material_flow import MaterialFlowEventType
from recytrack.models.output_material import OutputMaterial, OutputMaterialStatus
from recytrack.models.sample import Sample
from recytrack.services.base import LifecycleService
from recytrack.services.identifier_service import IdPrefix
from recytrack.services.results import OperationResult, transactional
from recytrack.services.validators import clean, is_blank, parse_weight

logger = logging.getLogger(__name__)


class OutputMaterialService(LifecycleService):
    """Produced material inventory."""

    @transactional(conflict_message="output code already exists")
    async def create_output(
        self,
        output_type: str,
        batch_id: str,
        weight_kg: Any,
        actor: Actor,
        quality_grade: Optional[str] = None,
        container_id: Optional[uuid.UUID] = None,
        sample_id: Optional[uuid.UUID] = None,
        processing_step_id: Optional[uuid.UUID] = None,
        destination: Optional[str] = None,
        fiber_size: Optional[str] = None,
        attributes: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> OperationResult[OutputMaterial]:
        """
        Record produced material with status in_stock.

        weight_kg is fixed from here on. A linked container moves to in_use
        as a best-effort side effect.
        """
        require_role(actor, Operation.OUTPUT_CREATE)

        output_type = getattr(output_type, "value", output_type)
        errors = []
        if is_blank(output_type):
            errors.append("output_type is required")
        if is_blank(batch_id):
            errors.append("batch_id is required")
        weight = parse_weight(weight_kg)
        if weight is None:
            errors.append("weight_kg must be a number greater than 0")
        if errors:
            raise ValidationError("invalid input", errors=errors)

        container = None
        if container_id is not None:
            container = await self._get_or_404(Container, container_id, "Container")
        if sample_id is not None:
            await self._get_or_404(Sample, sample_id, "Sample")
        if processing_step_id is not None:
            await self._get_or_404(ProcessingStep, processing_step_id, "Processing step")

        output_code = await self._generate_id(IdPrefix.OUTPUT)
        output = OutputMaterial(
            output_id=output_code,
            batch_id=batch_id.strip(),
            output_type=output_type.strip(),
            weight_kg=weight,
            quality_grade=clean(quality_grade),
            container_id=container.id if container else None,
            sample_id=sample_id,
            processing_step_id=processing_step_id,
            destination=clean(destination),
            fiber_size=clean(fiber_size),
            status=OutputMaterialStatus.IN_STOCK.value,
            attributes=attributes or {},
            notes=clean(notes),
            created_by=actor.user_id,
        )
        self.db.add(output)
        await self.db.flush()

        logger.info(f"Created output {output_code} ({weight} kg, batch {output.batch_id})")

        result = OperationResult(primary=output)

        if container is not None:
            async def bind_container():
                container.status = ContainerStatus.IN_USE.value
                await self.db.flush()

            await self._side_effect(result, "container:in_use", bind_container)

        await self._audit(
            result,
            MaterialFlowEventType.OUTPUT_CREATED,
            f"Output {output_code} created ({weight} kg, batch {output.batch_id})",
            actor,
            details={
                "output_type": output.output_type,
                "weight_kg": str(weight),
                "batch_id": output.batch_id,
            },
            output_material_id=output.id,
            container_id=output.container_id,
            sample_id=sample_id,
            processing_step_id=processing_step_id,
        )
        return result

    async def get_output(self, output_material_id: uuid.UUID) -> OutputMaterial:
        return await self._get_or_404(OutputMaterial, output_material_id, "Output material")

    async def list_outputs(
        self,
        status: Optional[str] = None,
        batch_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[OutputMaterial]:
        query = select(OutputMaterial)
        if status:
            query = query.where(OutputMaterial.status == getattr(status, "value", status))
        if batch_id:
            query = query.where(OutputMaterial.batch_id == batch_id)
        query = query.order_by(OutputMaterial.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
