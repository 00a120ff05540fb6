"""
Processing runs over material inputs.

A run is a chain of ProcessingStep rows sharing one processing_id (VRB-...).
The first step starts running immediately, the rest wait as pending and are
started one after another as the previous step completes. A material input
can have only one active chain at a time.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import uuid

from sqlalchemy import select

from recytrack.core.exceptions import ConflictError, ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.models.material import (
    ACTIVE_STEP_STATUSES, MaterialInput, MaterialInputStatus,
    ProcessingStep, ProcessingStepStatus,
)
from recytrack.models.material_flow import MaterialFlowEventType
from recytrack.models.sample import Sample, SampleStatus
from recytrack.services.base import LifecycleService
from recytrack.services.identifier_service import IdPrefix
from recytrack.services.results import OperationResult, transactional
from recytrack.services.sample_service import SampleService
from recytrack.services.state_machine import STEP_TRANSITIONS, validate_transition
from recytrack.services.validators import clean, is_blank

logger = logging.getLogger(__name__)


class ProcessingService(LifecycleService):
    """Processing run and step lifecycle."""

    @transactional(conflict_message="processing code already exists")
    async def start_processing(
        self,
        material_input_id: uuid.UUID,
        step_types: Sequence[str],
        actor: Actor,
        notes: Optional[str] = None,
    ) -> OperationResult[List[ProcessingStep]]:
        """
        Start a processing run.

        Creates one step per step type, in order. The first step is running,
        the others pending. The material input moves to in_processing in the
        same transaction.

        Raises:
            PermissionDenied: role not in admin, production, betriebsleiter
            ValidationError: empty step list or blank step type
            ConflictError: the input already has an active chain, or was rejected
        """
        require_role(actor, Operation.PROCESSING_START)

        tokens = [getattr(t, "value", t) for t in (step_types or [])]
        if not tokens:
            raise ValidationError("invalid input", errors=["at least one step is required"])
        if any(is_blank(token) for token in tokens):
            raise ValidationError("invalid input", errors=["step types must not be blank"])

        material_input = await self._lock_input(material_input_id)

        if material_input.status == MaterialInputStatus.REJECTED.value:
            raise ConflictError(
                f"material input {material_input.input_id} was rejected",
                details={"status": material_input.status},
            )

        active = await self.db.execute(
            select(ProcessingStep.processing_id)
            .where(
                ProcessingStep.material_input_id == material_input.id,
                ProcessingStep.status.in_(ACTIVE_STEP_STATUSES),
            )
            .limit(1)
        )
        active_run = active.scalar_one_or_none()
        if active_run is not None:
            raise ConflictError(
                "active processing steps exist",
                details={"processing_id": active_run},
            )

        processing_code = await self._generate_id(IdPrefix.PROCESSING)
        now = datetime.now(timezone.utc)

        steps = []
        for position, token in enumerate(tokens, start=1):
            first = position == 1
            steps.append(ProcessingStep(
                processing_id=processing_code,
                material_input_id=material_input.id,
                step_type=token.strip(),
                step_order=position,
                status=ProcessingStepStatus.RUNNING.value if first else ProcessingStepStatus.PENDING.value,
                started_at=now if first else None,
                operator_id=actor.user_id if first else None,
                notes=clean(notes) if first else None,
            ))
        self.db.add_all(steps)
        material_input.status = MaterialInputStatus.IN_PROCESSING.value
        await self.db.flush()

        logger.info(
            f"Started processing {processing_code} on {material_input.input_id}: "
            f"{' -> '.join(step.step_type for step in steps)}"
        )

        result = OperationResult(primary=steps)
        await self._audit(
            result,
            MaterialFlowEventType.PROCESSING_STARTED,
            f"Processing {processing_code} started on {material_input.input_id}",
            actor,
            details={"processing_id": processing_code, "steps": [s.step_type for s in steps]},
            material_input_id=material_input.id,
            processing_step_id=steps[0].id,
        )
        return result

    @transactional()
    async def complete_step(
        self,
        step_id: uuid.UUID,
        actor: Actor,
        sampler_name: Optional[str] = None,
        create_retention_sample: bool = True,
        notes: Optional[str] = None,
    ) -> OperationResult[ProcessingStep]:
        """
        Complete a running step.

        The next pending step of the run starts; if there is none the
        material input is processed. With a sampler name a sample (PRB) is
        taken for the step, plus a retention sample (RST) as a best-effort
        side effect.
        """
        require_role(actor, Operation.PROCESSING_UPDATE)
        step = await self._get_or_404(ProcessingStep, step_id, "Processing step")
        validate_transition(STEP_TRANSITIONS, step.status, ProcessingStepStatus.COMPLETED.value, "step")

        now = datetime.now(timezone.utc)
        step.status = ProcessingStepStatus.COMPLETED.value
        step.completed_at = now
        step.progress = 100
        if notes:
            step.notes = clean(notes)

        next_step = (await self.db.execute(
            select(ProcessingStep)
            .where(
                ProcessingStep.processing_id == step.processing_id,
                ProcessingStep.step_order > step.step_order,
                ProcessingStep.status == ProcessingStepStatus.PENDING.value,
            )
            .order_by(ProcessingStep.step_order)
            .limit(1)
        )).scalar_one_or_none()

        if next_step is not None:
            next_step.status = ProcessingStepStatus.RUNNING.value
            next_step.started_at = now
            next_step.operator_id = actor.user_id
        else:
            material_input = await self.db.get(MaterialInput, step.material_input_id)
            material_input.status = MaterialInputStatus.PROCESSED.value

        samples = SampleService(self.db, ids=self.ids, flow=self.flow)
        sample = None
        if not is_blank(sampler_name):
            sample = await samples.new_sample(
                sampler_name,
                actor,
                material_input_id=step.material_input_id,
                processing_step_id=step.id,
            )
        await self.db.flush()

        logger.info(
            f"Completed step {step.step_order} ({step.step_type}) of {step.processing_id}"
            + (f", started step {next_step.step_order}" if next_step else ", run finished")
        )

        result = OperationResult(primary=step)

        if sample is not None and create_retention_sample:
            async def take_retention_sample():
                await samples.new_sample(
                    sampler_name,
                    actor,
                    material_input_id=step.material_input_id,
                    processing_step_id=step.id,
                    retention=True,
                )

            await self._side_effect(result, "sample:retention", take_retention_sample)

        await self._audit(
            result,
            MaterialFlowEventType.PROCESSING_COMPLETED,
            f"Step {step.step_type} of {step.processing_id} completed",
            actor,
            details={
                "processing_id": step.processing_id,
                "step_order": step.step_order,
                "next_step": next_step.step_type if next_step else None,
                "sample_id": sample.sample_id if sample else None,
            },
            material_input_id=step.material_input_id,
            processing_step_id=step.id,
            sample_id=sample.id if sample else None,
        )
        return result

    async def pause_step(self, step_id: uuid.UUID, actor: Actor) -> OperationResult[ProcessingStep]:
        return await self._change_step_status(step_id, ProcessingStepStatus.PAUSED.value, actor)

    async def resume_step(self, step_id: uuid.UUID, actor: Actor) -> OperationResult[ProcessingStep]:
        """Resume a paused step, or a step waiting for a sample once one is approved."""
        return await self._change_step_status(step_id, ProcessingStepStatus.RUNNING.value, actor)

    async def require_sample(self, step_id: uuid.UUID, actor: Actor) -> OperationResult[ProcessingStep]:
        return await self._change_step_status(step_id, ProcessingStepStatus.SAMPLE_REQUIRED.value, actor)

    @transactional()
    async def _change_step_status(
        self,
        step_id: uuid.UUID,
        new_status: str,
        actor: Actor,
    ) -> OperationResult[ProcessingStep]:
        require_role(actor, Operation.PROCESSING_UPDATE)
        step = await self._get_or_404(ProcessingStep, step_id, "Processing step")
        old_status = step.status

        if new_status == ProcessingStepStatus.RUNNING.value and old_status == ProcessingStepStatus.PENDING.value:
            # Pending steps are started by completing the previous one
            raise ConflictError(
                "step waits for the previous step to complete",
                details={"status": old_status},
            )
        validate_transition(STEP_TRANSITIONS, old_status, new_status, "step")

        if old_status == ProcessingStepStatus.SAMPLE_REQUIRED.value:
            approved = await self.db.execute(
                select(Sample.id)
                .where(
                    Sample.processing_step_id == step.id,
                    Sample.status == SampleStatus.APPROVED.value,
                )
                .limit(1)
            )
            if approved.first() is None:
                raise ConflictError(
                    "step needs an approved sample before it can resume",
                    details={"status": old_status},
                )

        step.status = new_status
        await self.db.flush()
        logger.info(f"Step {step.step_order} of {step.processing_id}: {old_status} -> {new_status}")

        result = OperationResult(primary=step)
        await self._audit(
            result,
            MaterialFlowEventType.PROCESSING_STEP_CHANGED,
            f"Step {step.step_type} of {step.processing_id} {old_status} -> {new_status}",
            actor,
            details={"from": old_status, "to": new_status},
            material_input_id=step.material_input_id,
            processing_step_id=step.id,
        )
        return result

    async def list_steps(
        self,
        material_input_id: Optional[uuid.UUID] = None,
        processing_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[ProcessingStep]:
        query = select(ProcessingStep)
        if material_input_id:
            query = query.where(ProcessingStep.material_input_id == material_input_id)
        if processing_id:
            query = query.where(ProcessingStep.processing_id == processing_id)
        if status:
            query = query.where(ProcessingStep.status == getattr(status, "value", status))
        query = query.order_by(ProcessingStep.created_at.desc(), ProcessingStep.step_order)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _lock_input(self, material_input_id: uuid.UUID) -> MaterialInput:
        """Lock the input row so two runs cannot start concurrently."""
        result = await self.db.execute(
            select(MaterialInput)
            .where(MaterialInput.id == material_input_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        material_input = result.scalar_one_or_none()
        if material_input is None:
            return await self._get_or_404(MaterialInput, material_input_id, "Material input")
        return material_input
