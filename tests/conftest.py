"""Shared fixtures for the RecyTrack test suite.

Every test gets its own SQLite database file, created through init_db so the
conservation trigger is installed exactly as in production.
"""

from collections import defaultdict
from datetime import date, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from recytrack.core.permissions import Actor
from recytrack.database import create_engine_for_url, create_session_factory, get_db, init_db
from recytrack.services.material_flow_service import MaterialFlowService


# =============================================================================
# TEST DOUBLES
# =============================================================================

class FakeIdGenerator:
    """Deterministic codes: OUT-T-0001, OUT-T-0002, ..."""

    def __init__(self):
        self.counters = defaultdict(int)

    async def generate_unique_id(self, prefix: str) -> str:
        self.counters[prefix] += 1
        return f"{prefix}-T-{self.counters[prefix]:04d}"


class UnreachableIdGenerator:
    """Identifier generator whose backend is down."""

    async def generate_unique_id(self, prefix: str) -> str:
        raise ConnectionError("identifier service unreachable")


class FailingFlowRecorder(MaterialFlowService):
    """Flow recorder whose writes always fail."""

    async def record(self, *args, **kwargs):
        raise RuntimeError("flow history unavailable")


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
async def engine(tmp_path):
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'recytrack.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def ids():
    return FakeIdGenerator()


# =============================================================================
# ACTORS
# =============================================================================

@pytest.fixture
def admin():
    return Actor(user_id="admin-1", role="admin")


@pytest.fixture
def production():
    return Actor(user_id="prod-1", role="production")


@pytest.fixture
def qa():
    return Actor(user_id="qa-1", role="qa")


@pytest.fixture
def customer():
    return Actor(user_id="cust-1", role="customer")


# =============================================================================
# SEED HELPERS
# =============================================================================

@pytest.fixture
def make_output(db, ids, admin):
    from recytrack.services.output_material_service import OutputMaterialService

    async def _make(weight="100.000", batch_id="B-1", output_type="glass_fiber", **kwargs):
        service = OutputMaterialService(db, ids=ids)
        result = await service.create_output(output_type, batch_id, weight, admin, **kwargs)
        return result.primary

    return _make


@pytest.fixture
def make_order(db, ids, admin):
    from recytrack.services.order_service import OrderService

    async def _make(customer_name="Acme Composites", quantity="500", **kwargs):
        today = date.today()
        kwargs.setdefault("production_deadline", today + timedelta(days=7))
        kwargs.setdefault("delivery_deadline", today + timedelta(days=14))
        service = OrderService(db, ids=ids)
        result = await service.create_order(
            customer_name=customer_name,
            product_category="fiber",
            product_grain_size="0-2mm",
            product_subcategory="milled",
            quantity_kg=quantity,
            actor=admin,
            **kwargs,
        )
        return result.primary

    return _make


@pytest.fixture
def make_input(db, ids, admin):
    from recytrack.services.intake_service import IntakeService

    async def _make(weight="750", supplier="Rotor Blades GmbH", material_type="gfk", **kwargs):
        service = IntakeService(db, ids=ids)
        result = await service.receive_material(supplier, material_type, weight, admin, **kwargs)
        return result.primary

    return _make


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
def api_actor():
    """Actor returned by the overridden auth dependency; tests may reassign .role."""
    return {"actor": Actor(user_id="api-admin", role="admin")}


@pytest.fixture
async def client(session_factory, api_actor):
    from recytrack.api.deps import get_current_actor, get_id_generator
    from recytrack.main import app

    ids = FakeIdGenerator()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_current_actor():
        return api_actor["actor"]

    async def override_get_id_generator():
        return ids

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_actor] = override_get_current_actor
    app.dependency_overrides[get_id_generator] = override_get_id_generator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
