"""Intake and container handling."""

import uuid
from decimal import Decimal

import pytest

from recytrack.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from recytrack.models.container import Container, ContainerStatus
from recytrack.models.material import MaterialInputStatus
from recytrack.services.container_service import ContainerService
from recytrack.services.intake_service import IntakeService
from recytrack.services.material_flow_service import MaterialFlowService

from tests.conftest import FailingFlowRecorder


# =============================================================================
# CONTAINERS
# =============================================================================

@pytest.mark.parametrize("container_type, prefix", [
    ("bigbag", "BB"), ("box", "BX"), ("cage", "GX"), ("container", "CT"),
])
async def test_container_code_prefix_follows_type(db, ids, admin, container_type, prefix):
    result = await ContainerService(db, ids=ids).create_container(container_type, admin)

    assert result.primary.container_id == f"{prefix}-T-0001"
    assert result.primary.status == ContainerStatus.EMPTY.value


async def test_container_validation_reports_all_errors(db, ids, admin):
    with pytest.raises(ValidationError) as exc_info:
        await ContainerService(db, ids=ids).create_container("barrel", admin, volume_liters=0, weight_kg="-3")

    assert len(exc_info.value.errors) == 3


async def test_assignable_containers_by_purpose(db, ids, admin):
    service = ContainerService(db, ids=ids)
    empty = (await service.create_container("bigbag", admin)).primary
    filling = (await service.create_container("bigbag", admin)).primary
    in_use = (await service.create_container("box", admin)).primary
    full = (await service.create_container("box", admin)).primary
    filling.status = ContainerStatus.FILLING.value
    in_use.status = ContainerStatus.IN_USE.value
    full.status = ContainerStatus.FULL.value
    await db.commit()

    intake = {c.container_id for c in await service.list_assignable_containers("intake")}
    output = {c.container_id for c in await service.list_assignable_containers("output")}

    assert intake == {empty.container_id, filling.container_id}
    assert output == {empty.container_id, in_use.container_id}


async def test_unknown_container_purpose_is_rejected(db, ids):
    with pytest.raises(ValidationError):
        await ContainerService(db, ids=ids).list_assignable_containers("storage")


async def test_supplier_cannot_create_containers(db, ids):
    from recytrack.core.permissions import Actor

    with pytest.raises(PermissionDenied):
        await ContainerService(db, ids=ids).create_container("box", Actor(user_id="s-1", role="supplier"))


# =============================================================================
# INTAKE
# =============================================================================

async def test_receive_material(db, ids, admin):
    result = await IntakeService(db, ids=ids).receive_material(
        " Rotor Blades GmbH ", "gfk", "1250.5", admin, waste_code="170203"
    )

    material_input = result.primary
    assert material_input.input_id == "ME-T-0001"
    assert material_input.supplier == "Rotor Blades GmbH"
    assert material_input.weight_kg == Decimal("1250.500")
    assert material_input.status == MaterialInputStatus.RECEIVED.value
    assert result.outcome("audit:intake_received").ok

    events = await MaterialFlowService(db).list_events(material_input_id=material_input.id)
    assert [e.event_type for e in events] == ["intake_received"]


async def test_receive_material_fills_container(db, ids, admin):
    container = (await ContainerService(db, ids=ids).create_container("bigbag", admin)).primary

    result = await IntakeService(db, ids=ids).receive_material(
        "Rotor Blades GmbH", "gfk", 500, admin, container_id=container.id
    )

    assert result.outcome("container:filling").ok
    refreshed = await db.get(Container, container.id, populate_existing=True)
    assert refreshed.status == ContainerStatus.FILLING.value


async def test_intake_validation_reports_all_errors(db, ids, admin):
    with pytest.raises(ValidationError) as exc_info:
        await IntakeService(db, ids=ids).receive_material("", None, "zero", admin)

    assert exc_info.value.errors == [
        "supplier is required",
        "material_type is required",
        "weight_kg must be a number greater than 0",
    ]
    assert await IntakeService(db).list_material_inputs() == []


async def test_intake_with_unknown_container_is_not_found(db, ids, admin):
    with pytest.raises(NotFoundError):
        await IntakeService(db, ids=ids).receive_material(
            "Rotor Blades GmbH", "gfk", 500, admin, container_id=uuid.uuid4()
        )


async def test_intake_survives_failing_flow_history(db, ids, admin):
    service = IntakeService(db, ids=ids, flow=FailingFlowRecorder(db))

    result = await service.receive_material("Rotor Blades GmbH", "gfk", 500, admin)

    assert result.degraded
    stored = await IntakeService(db).get_material_input(result.primary.id)
    assert stored.input_id == "ME-T-0001"


async def test_list_material_inputs_by_status(db, ids, admin, make_input):
    first = await make_input()
    await make_input(supplier="Second Supplier")
    first.status = MaterialInputStatus.PROCESSED.value
    await db.commit()

    processed = await IntakeService(db).list_material_inputs(status="processed")
    received = await IntakeService(db).list_material_inputs(status=MaterialInputStatus.RECEIVED)

    assert [m.input_id for m in processed] == [first.input_id]
    assert len(received) == 1
