"""Output materials, orders and the order deadline job."""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from recytrack.core.exceptions import IdGenerationError, NotFoundError, PermissionDenied, ValidationError
from recytrack.jobs.order_jobs import check_order_deadlines
from recytrack.models.container import Container, ContainerStatus
from recytrack.models.order import OrderStatus
from recytrack.models.output_material import OutputMaterialStatus
from recytrack.services.container_service import ContainerService
from recytrack.services.order_service import OrderService
from recytrack.services.output_material_service import OutputMaterialService

from tests.conftest import FailingFlowRecorder, UnreachableIdGenerator


# =============================================================================
# OUTPUT MATERIALS
# =============================================================================

async def test_create_output(db, ids, production):
    result = await OutputMaterialService(db, ids=ids).create_output(
        "glass_fiber", "B-2026-07", "812.25", production,
        quality_grade="A", attributes={"moisture": "0.3"},
    )

    output = result.primary
    assert output.output_id == "OUT-T-0001"
    assert output.weight_kg == Decimal("812.250")
    assert output.status == OutputMaterialStatus.IN_STOCK.value
    assert output.attributes == {"moisture": "0.3"}
    assert result.outcome("audit:output_created").ok


async def test_output_binds_container(db, ids, admin):
    container = (await ContainerService(db, ids=ids).create_container("bigbag", admin)).primary

    result = await OutputMaterialService(db, ids=ids).create_output(
        "resin_powder", "B-1", 100, admin, container_id=container.id
    )

    assert result.outcome("container:in_use").ok
    refreshed = await db.get(Container, container.id, populate_existing=True)
    assert refreshed.status == ContainerStatus.IN_USE.value


async def test_output_validation_reports_all_errors(db, ids, admin):
    with pytest.raises(ValidationError) as exc_info:
        await OutputMaterialService(db, ids=ids).create_output(" ", "", 0, admin)

    assert exc_info.value.errors == [
        "output_type is required",
        "batch_id is required",
        "weight_kg must be a number greater than 0",
    ]


async def test_output_weight_beyond_column_range_is_invalid_input(db, ids, admin):
    with pytest.raises(ValidationError) as exc_info:
        await OutputMaterialService(db, ids=ids).create_output("glass_fiber", "B-1", "1000000000", admin)

    assert exc_info.value.errors == ["weight_kg must be a number greater than 0"]


async def test_output_with_unknown_sample_is_not_found(db, ids, admin):
    with pytest.raises(NotFoundError):
        await OutputMaterialService(db, ids=ids).create_output(
            "glass_fiber", "B-1", 10, admin, sample_id=uuid.uuid4()
        )


async def test_output_survives_failing_flow_history(db, ids, admin):
    service = OutputMaterialService(db, ids=ids, flow=FailingFlowRecorder(db))

    result = await service.create_output("glass_fiber", "B-1", 10, admin)

    assert result.degraded
    assert result.outcome("audit:output_created").error == "flow history unavailable"
    outputs = await OutputMaterialService(db).list_outputs(batch_id="B-1")
    assert [o.output_id for o in outputs] == ["OUT-T-0001"]


async def test_unreachable_identifier_generator_aborts_creation(db, admin):
    service = OutputMaterialService(db, ids=UnreachableIdGenerator())

    with pytest.raises(IdGenerationError) as exc_info:
        await service.create_output("glass_fiber", "B-1", 10, admin)

    assert exc_info.value.details == {"prefix": "OUT"}
    assert exc_info.value.to_dict()["error"] == "system_error"
    assert await OutputMaterialService(db).list_outputs() == []


async def test_qa_cannot_create_outputs(db, ids, qa):
    with pytest.raises(PermissionDenied):
        await OutputMaterialService(db, ids=ids).create_output("glass_fiber", "B-1", 10, qa)


# =============================================================================
# ORDERS
# =============================================================================

async def test_customer_can_create_order(db, ids, customer):
    today = date.today()
    result = await OrderService(db, ids=ids).create_order(
        customer_name="Acme Composites",
        product_category="fiber",
        product_grain_size="0-2mm",
        product_subcategory="milled",
        quantity_kg="1000",
        production_deadline=today + timedelta(days=5),
        delivery_deadline=today + timedelta(days=10),
        actor=customer,
    )

    order = result.primary
    assert order.order_id == "AUF-T-0001"
    assert order.status == OrderStatus.PENDING.value
    assert order.quantity_kg == Decimal("1000.000")
    assert order.created_by == "cust-1"


async def test_order_validation_reports_all_errors(db, ids, admin):
    today = date.today()
    with pytest.raises(ValidationError) as exc_info:
        await OrderService(db, ids=ids).create_order(
            customer_name="",
            product_category="fiber",
            product_grain_size=None,
            product_subcategory="milled",
            quantity_kg=-5,
            production_deadline=today + timedelta(days=10),
            delivery_deadline=today + timedelta(days=5),
            actor=admin,
        )

    assert exc_info.value.errors == [
        "customer_name is required",
        "product_grain_size is required",
        "quantity_kg must be a number greater than 0",
        "delivery_deadline must not be before production_deadline",
    ]


async def test_allocatable_orders_sorted_by_deadline(db, make_order):
    today = date.today()
    late = await make_order(customer_name="Late", production_deadline=today + timedelta(days=20),
                            delivery_deadline=today + timedelta(days=30))
    early = await make_order(customer_name="Early", production_deadline=today + timedelta(days=2),
                             delivery_deadline=today + timedelta(days=3))
    delivered = await make_order(customer_name="Done")
    delivered.status = OrderStatus.DELIVERED.value
    await db.commit()

    orders = await OrderService(db).list_allocatable_orders()

    assert [o.order_id for o in orders] == [early.order_id, late.order_id]


# =============================================================================
# DEADLINE JOB
# =============================================================================

async def test_deadline_check_reports_overdue_open_orders(db, make_order, caplog):
    today = date.today()
    overdue = await make_order(production_deadline=today - timedelta(days=3),
                               delivery_deadline=today + timedelta(days=1))
    await make_order(customer_name="On Time")
    cancelled = await make_order(customer_name="Cancelled", production_deadline=today - timedelta(days=9),
                                 delivery_deadline=today - timedelta(days=1))
    cancelled.status = OrderStatus.CANCELLED.value
    await db.commit()

    with caplog.at_level("WARNING", logger="recytrack.jobs.order_jobs"):
        summary = await check_order_deadlines(session=db, today=today)

    assert summary == {"checked": 2, "overdue": [overdue.order_id]}
    assert overdue.order_id in caplog.text
    assert "3 day(s)" in caplog.text

    await db.refresh(overdue)
    assert overdue.status == OrderStatus.PENDING.value
