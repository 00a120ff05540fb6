"""
Sampling and QA verdicts.

Sample lifecycle:
    pending -> in_analysis (results entered) -> approved | rejected
    rejected -> in_analysis (rejection reverted)

A rejected sample marks its material input rejected and closes the input's
active processing steps. Both are best-effort side effects.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import uuid

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from recytrack.core.exceptions import ConflictError, NotFoundError, ValidationError
from recytrack.core.permissions import Actor, Operation, require_role
from recytrack.models.material import (
    ACTIVE_STEP_STATUSES, MaterialInput, MaterialInputStatus,
    ProcessingStep, ProcessingStepStatus,
)
from recytrack.models.material_flow import MaterialFlowEventType
from recytrack.models.sample import OPEN_SAMPLE_STATUSES, Sample, SampleResult, SampleStatus
from recytrack.services.base import LifecycleService
from recytrack.services.identifier_service import IdPrefix
from recytrack.services.results import OperationResult, transactional
from recytrack.services.state_machine import SAMPLE_TRANSITIONS, validate_transition
from recytrack.services.validators import clean, is_blank

logger = logging.getLogger(__name__)

REJECTION_STEP_NOTE = "cancelled after sample rejection"


class SampleService(LifecycleService):
    """QA samples, lab results and verdicts."""

    @transactional(conflict_message="sample code already exists")
    async def create_sample(
        self,
        sampler_name: str,
        actor: Actor,
        material_input_id: Optional[uuid.UUID] = None,
        processing_step_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> OperationResult[Sample]:
        """Create a pending sample, optionally linked to an input and/or a step."""
        require_role(actor, Operation.SAMPLE_CREATE)
        if is_blank(sampler_name):
            raise ValidationError("invalid input", errors=["sampler_name is required"])

        sample = await self.new_sample(
            sampler_name,
            actor,
            material_input_id=material_input_id,
            processing_step_id=processing_step_id,
            notes=notes,
        )
        result = OperationResult(primary=sample)
        await self._audit_sample_created(result, sample, actor)
        return result

    async def new_sample(
        self,
        sampler_name: str,
        actor: Actor,
        material_input_id: Optional[uuid.UUID] = None,
        processing_step_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
        retention: bool = False,
    ) -> Sample:
        """
        Insert a sample in the current transaction without committing.

        A step link without an input link inherits the step's material input.
        """
        if processing_step_id is not None:
            step = await self._get_or_404(ProcessingStep, processing_step_id, "Processing step")
            if material_input_id is None:
                material_input_id = step.material_input_id
        if material_input_id is not None:
            await self._get_or_404(MaterialInput, material_input_id, "Material input")

        prefix = IdPrefix.RETENTION_SAMPLE if retention else IdPrefix.SAMPLE
        sample_code = await self._generate_id(prefix)
        sample = Sample(
            sample_id=sample_code,
            sampler_name=sampler_name.strip(),
            material_input_id=material_input_id,
            processing_step_id=processing_step_id,
            status=SampleStatus.PENDING.value,
            is_retention_sample=retention,
            notes=clean(notes),
        )
        self.db.add(sample)
        await self.db.flush()
        logger.info(f"Created sample {sample_code}")
        return sample

    async def _audit_sample_created(self, result: OperationResult, sample: Sample, actor: Actor) -> None:
        kind = "Retention sample" if sample.is_retention_sample else "Sample"
        await self._audit(
            result,
            MaterialFlowEventType.SAMPLE_CREATED,
            f"{kind} {sample.sample_id} taken by {sample.sampler_name}",
            actor,
            details={"retention": sample.is_retention_sample},
            sample_id=sample.id,
            material_input_id=sample.material_input_id,
            processing_step_id=sample.processing_step_id,
        )

    @transactional()
    async def record_results(
        self,
        sample_id: uuid.UUID,
        results: Iterable[Dict[str, Any]],
        actor: Actor,
    ) -> OperationResult[Sample]:
        """
        Store lab results and move the sample to in_analysis.

        Results with a blank parameter name or value are dropped; nothing left
        is a ValidationError.
        """
        require_role(actor, Operation.SAMPLE_RESULTS)

        rows = []
        for item in results or []:
            data = item if isinstance(item, dict) else item.model_dump()
            name = data.get("parameter_name")
            value = data.get("parameter_value")
            if is_blank(name) or is_blank(value):
                continue
            rows.append((str(name).strip(), str(value).strip(), clean(data.get("unit"))))
        if not rows:
            raise ValidationError("invalid input", errors=["at least one result is required"])

        sample = await self._get_or_404(Sample, sample_id, "Sample")
        validate_transition(SAMPLE_TRANSITIONS, sample.status, SampleStatus.IN_ANALYSIS.value, "sample")

        for name, value, unit in rows:
            self.db.add(SampleResult(
                sample_id=sample.id,
                parameter_name=name,
                parameter_value=value,
                unit=unit,
            ))
        sample.status = SampleStatus.IN_ANALYSIS.value
        sample.analyzed_at = datetime.now(timezone.utc)
        await self.db.flush()

        result = OperationResult(primary=sample)
        await self._audit(
            result,
            MaterialFlowEventType.SAMPLE_ANALYZED,
            f"{len(rows)} results recorded for sample {sample.sample_id}",
            actor,
            details={"parameters": [name for name, _, _ in rows]},
            sample_id=sample.id,
            material_input_id=sample.material_input_id,
        )
        return result

    @transactional()
    async def approve(self, sample_id: uuid.UUID, actor: Actor) -> OperationResult[Sample]:
        """Approve an open sample."""
        require_role(actor, Operation.SAMPLE_VERDICT)
        sample = await self._open_sample(sample_id)

        sample.status = SampleStatus.APPROVED.value
        sample.approved_at = datetime.now(timezone.utc)
        sample.approved_by = actor.user_id
        await self.db.flush()
        logger.info(f"Sample {sample.sample_id} approved")

        result = OperationResult(primary=sample)
        await self._audit(
            result,
            MaterialFlowEventType.SAMPLE_APPROVED,
            f"Sample {sample.sample_id} approved",
            actor,
            sample_id=sample.id,
            material_input_id=sample.material_input_id,
            processing_step_id=sample.processing_step_id,
        )
        return result

    @transactional()
    async def reject(
        self,
        sample_id: uuid.UUID,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> OperationResult[Sample]:
        """
        Reject an open sample.

        Side effects (best-effort): the linked material input becomes
        rejected and its active processing steps are completed with a note.
        """
        require_role(actor, Operation.SAMPLE_VERDICT)
        sample = await self._open_sample(sample_id)

        sample.status = SampleStatus.REJECTED.value
        if reason:
            sample.notes = clean(reason)
        await self.db.flush()
        logger.info(f"Sample {sample.sample_id} rejected")

        result = OperationResult(primary=sample)
        input_id = await self._linked_input_id(sample)

        if input_id is not None:
            async def reject_input():
                await self.db.execute(
                    update(MaterialInput)
                    .where(MaterialInput.id == input_id)
                    .values(status=MaterialInputStatus.REJECTED.value)
                    .execution_options(synchronize_session="fetch")
                )

            async def close_steps():
                await self.db.execute(
                    update(ProcessingStep)
                    .where(
                        ProcessingStep.material_input_id == input_id,
                        ProcessingStep.status.in_(ACTIVE_STEP_STATUSES),
                    )
                    .values(
                        status=ProcessingStepStatus.COMPLETED.value,
                        completed_at=datetime.now(timezone.utc),
                        notes=REJECTION_STEP_NOTE,
                    )
                    .execution_options(synchronize_session="fetch")
                )

            await self._side_effect(result, "material_input:rejected", reject_input)
            await self._side_effect(result, "processing_steps:closed", close_steps)

        await self._audit(
            result,
            MaterialFlowEventType.SAMPLE_REJECTED,
            f"Sample {sample.sample_id} rejected",
            actor,
            details={"reason": clean(reason)} if reason else None,
            sample_id=sample.id,
            material_input_id=input_id,
            processing_step_id=sample.processing_step_id,
        )
        return result

    @transactional()
    async def revert_rejection(self, sample_id: uuid.UUID, actor: Actor) -> OperationResult[Sample]:
        """Put a rejected sample back into analysis and reopen its input."""
        require_role(actor, Operation.SAMPLE_VERDICT)
        sample = await self._get_or_404(Sample, sample_id, "Sample")
        if sample.status != SampleStatus.REJECTED.value:
            raise ConflictError(
                "only rejected samples can be reverted",
                details={"status": sample.status},
            )

        sample.status = SampleStatus.IN_ANALYSIS.value
        await self.db.flush()

        result = OperationResult(primary=sample)
        input_id = await self._linked_input_id(sample)

        if input_id is not None:
            async def reopen_input():
                await self.db.execute(
                    update(MaterialInput)
                    .where(
                        MaterialInput.id == input_id,
                        MaterialInput.status == MaterialInputStatus.REJECTED.value,
                    )
                    .values(status=MaterialInputStatus.IN_PROCESSING.value)
                    .execution_options(synchronize_session="fetch")
                )

            await self._side_effect(result, "material_input:in_processing", reopen_input)

        await self._audit(
            result,
            MaterialFlowEventType.SAMPLE_REJECTION_REVERTED,
            f"Rejection of sample {sample.sample_id} reverted",
            actor,
            sample_id=sample.id,
            material_input_id=input_id,
        )
        return result

    async def get_sample(self, sample_id: uuid.UUID) -> Sample:
        """Get a sample with its results."""
        result = await self.db.execute(
            select(Sample)
            .options(selectinload(Sample.results))
            .where(Sample.id == sample_id)
            .execution_options(populate_existing=True)
        )
        sample = result.scalar_one_or_none()
        if sample is None:
            raise NotFoundError("Sample not found", details={"id": str(sample_id)})
        return sample

    async def list_samples(
        self,
        status: Optional[str] = None,
        material_input_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Sample]:
        query = select(Sample)
        if status:
            query = query.where(Sample.status == getattr(status, "value", status))
        if material_input_id:
            query = query.where(Sample.material_input_id == material_input_id)
        query = query.order_by(Sample.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _open_sample(self, sample_id: uuid.UUID) -> Sample:
        sample = await self._get_or_404(Sample, sample_id, "Sample")
        if sample.status not in OPEN_SAMPLE_STATUSES:
            raise ConflictError(
                f"sample {sample.sample_id} is already {sample.status}",
                details={"status": sample.status},
            )
        return sample

    async def _linked_input_id(self, sample: Sample) -> Optional[uuid.UUID]:
        if sample.material_input_id is not None:
            return sample.material_input_id
        if sample.processing_step_id is not None:
            step = await self.db.get(ProcessingStep, sample.processing_step_id)
            if step is not None:
                return step.material_input_id
        return None
