"""Samples: lab results, verdicts and the rejection cascade."""

import uuid

import pytest

from recytrack.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from recytrack.models.material import MaterialInput, MaterialInputStatus, ProcessingStep, ProcessingStepStatus
from recytrack.models.sample import SampleStatus
from recytrack.schemas.sample import SampleResultInput
from recytrack.services.processing_service import ProcessingService
from recytrack.services.sample_service import REJECTION_STEP_NOTE, SampleService

from tests.conftest import FailingFlowRecorder


@pytest.fixture
async def running_input(db, ids, production, make_input):
    """A material input with a two-step run, first step running."""
    material_input = await make_input()
    result = await ProcessingService(db, ids=ids).start_processing(
        material_input.id, ["shredding", "milling"], production
    )
    return material_input, result.primary


async def test_create_sample_links_step_and_inherits_input(db, ids, qa, running_input):
    material_input, steps = running_input

    result = await SampleService(db, ids=ids).create_sample("Jana Weber", qa, processing_step_id=steps[0].id)

    sample = result.primary
    assert sample.sample_id == "PRB-T-0001"
    assert sample.status == SampleStatus.PENDING.value
    assert sample.material_input_id == material_input.id
    assert result.outcome("audit:sample_created").ok


async def test_create_sample_requires_sampler_name(db, ids, qa):
    with pytest.raises(ValidationError) as exc_info:
        await SampleService(db, ids=ids).create_sample("   ", qa)

    assert exc_info.value.errors == ["sampler_name is required"]


async def test_create_sample_for_unknown_input_is_not_found(db, ids, qa):
    with pytest.raises(NotFoundError):
        await SampleService(db, ids=ids).create_sample("Jana Weber", qa, material_input_id=uuid.uuid4())


async def test_customer_cannot_create_samples(db, ids, customer):
    with pytest.raises(PermissionDenied):
        await SampleService(db, ids=ids).create_sample("Jana Weber", customer)


# =============================================================================
# RESULTS
# =============================================================================

async def test_record_results_moves_sample_to_analysis(db, ids, qa):
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa)).primary

    await service.record_results(
        sample.id,
        [
            {"parameter_name": "moisture", "parameter_value": "0.4", "unit": "%"},
            SampleResultInput(parameter_name="fiber_length", parameter_value="3.2", unit="mm"),
            {"parameter_name": "", "parameter_value": "dropped"},
        ],
        qa,
    )

    detail = await service.get_sample(sample.id)
    assert detail.status == SampleStatus.IN_ANALYSIS.value
    assert detail.analyzed_at is not None
    assert sorted(r.parameter_name for r in detail.results) == ["fiber_length", "moisture"]


async def test_record_results_requires_at_least_one_result(db, ids, qa):
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa)).primary

    with pytest.raises(ValidationError):
        await service.record_results(sample.id, [{"parameter_name": " ", "parameter_value": "1"}], qa)


async def test_results_cannot_be_added_to_approved_sample(db, ids, qa):
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa)).primary
    sample_id = sample.id
    await service.approve(sample_id, qa)

    with pytest.raises(ConflictError):
        await service.record_results(sample_id, [{"parameter_name": "moisture", "parameter_value": "1"}], qa)


# =============================================================================
# VERDICTS
# =============================================================================

async def test_approve_sets_approver(db, ids, qa):
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa)).primary

    result = await service.approve(sample.id, qa)

    assert result.primary.status == SampleStatus.APPROVED.value
    assert result.primary.approved_by == "qa-1"
    assert result.primary.approved_at is not None


async def test_approved_sample_cannot_be_rejected(db, ids, qa):
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa)).primary
    sample_id = sample.id
    await service.approve(sample_id, qa)

    with pytest.raises(ConflictError):
        await service.reject(sample_id, qa)


async def test_reject_cascades_to_input_and_active_steps(db, ids, qa, running_input):
    material_input, steps = running_input
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa, processing_step_id=steps[0].id)).primary

    result = await service.reject(sample.id, qa, reason="foreign material")

    assert result.primary.status == SampleStatus.REJECTED.value
    assert result.outcome("material_input:rejected").ok
    assert result.outcome("processing_steps:closed").ok
    assert not result.degraded

    refreshed = await db.get(MaterialInput, material_input.id, populate_existing=True)
    assert refreshed.status == MaterialInputStatus.REJECTED.value
    for step in steps:
        closed = await db.get(ProcessingStep, step.id, populate_existing=True)
        assert closed.status == ProcessingStepStatus.COMPLETED.value
        assert closed.notes == REJECTION_STEP_NOTE


async def test_reject_without_linked_input_has_no_cascade(db, ids, qa):
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa)).primary

    result = await service.reject(sample.id, qa)

    assert result.outcome("material_input:rejected") is None
    assert result.outcome("audit:sample_rejected").ok


async def test_rejected_input_cannot_start_processing(db, ids, qa, production, running_input):
    material_input, steps = running_input
    input_id = material_input.id
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa, material_input_id=input_id)).primary
    await service.reject(sample.id, qa)

    with pytest.raises(ConflictError):
        await ProcessingService(db, ids=ids).start_processing(input_id, ["sorting"], production)


async def test_revert_rejection_reopens_input(db, ids, qa, running_input):
    material_input, steps = running_input
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa, material_input_id=material_input.id)).primary
    await service.reject(sample.id, qa)

    result = await service.revert_rejection(sample.id, qa)

    assert result.primary.status == SampleStatus.IN_ANALYSIS.value
    assert result.outcome("material_input:in_processing").ok
    refreshed = await db.get(MaterialInput, material_input.id, populate_existing=True)
    assert refreshed.status == MaterialInputStatus.IN_PROCESSING.value

    approved = await service.approve(sample.id, qa)
    assert approved.primary.status == SampleStatus.APPROVED.value


async def test_only_rejected_samples_can_be_reverted(db, ids, qa):
    service = SampleService(db, ids=ids)
    sample = (await service.create_sample("Jana Weber", qa)).primary

    with pytest.raises(ConflictError):
        await service.revert_rejection(sample.id, qa)


async def test_failing_audit_degrades_rejection(db, ids, qa, running_input):
    material_input, steps = running_input
    service = SampleService(db, ids=ids, flow=FailingFlowRecorder(db))
    sample = (await service.create_sample("Jana Weber", qa, material_input_id=material_input.id)).primary

    result = await service.reject(sample.id, qa)

    assert result.degraded
    assert not result.outcome("audit:sample_rejected").ok
    assert result.outcome("material_input:rejected").ok
    refreshed = await SampleService(db).get_sample(sample.id)
    assert refreshed.status == SampleStatus.REJECTED.value
