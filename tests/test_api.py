"""HTTP surface: the full lifecycle scenario, error bodies and authentication."""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from recytrack.core.permissions import Actor
from recytrack.core.security import create_access_token


def _order_payload(customer_name):
    today = date.today()
    return {
        "customer_name": customer_name,
        "product_category": "fiber",
        "product_grain_size": "0-2mm",
        "product_subcategory": "milled",
        "quantity_kg": "500",
        "production_deadline": (today + timedelta(days=7)).isoformat(),
        "delivery_deadline": (today + timedelta(days=14)).isoformat(),
    }


async def _create(client, path, payload):
    response = await client.post(path, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# =============================================================================
# END-TO-END SCENARIO
# =============================================================================

async def test_material_lifecycle_end_to_end(client):
    material_input = await _create(client, "/api/v1/intake", {
        "supplier": "Rotor Blades GmbH", "material_type": "gfk", "weight_kg": 1000,
    })
    assert material_input["status"] == "received"

    steps = await _create(client, "/api/v1/processing", {
        "material_input_id": material_input["id"], "steps": ["shredding", "sorting"],
    })
    assert [s["status"] for s in steps] == ["running", "pending"]
    response = await client.get(f"/api/v1/intake/{material_input['id']}")
    assert response.json()["status"] == "in_processing"

    output = await _create(client, "/api/v1/outputs", {
        "output_type": "glass_fiber", "batch_id": "B1", "weight_kg": 400,
    })
    assert output["status"] == "in_stock"

    order_7 = await _create(client, "/api/v1/orders", _order_payload("Order Seven"))
    order_9 = await _create(client, "/api/v1/orders", _order_payload("Order Nine"))

    # 150 kg to order 7
    response = await client.post("/api/v1/allocations", json={
        "output_material_id": output["id"], "order_id": order_7["id"], "allocated_weight_kg": 150,
    })
    assert response.status_code == 201, response.text
    body = response.json()
    assert Decimal(body["data"]["remaining_kg"]) == Decimal("250")
    assert body["data"]["order_status"] == "in_production"
    assert body["degraded"] is False

    # Same pair again
    response = await client.post("/api/v1/allocations", json={
        "output_material_id": output["id"], "order_id": order_7["id"], "allocated_weight_kg": 150,
    })
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"
    assert response.json()["message"] == "already allocated to this order"

    # More than what is left
    response = await client.post("/api/v1/allocations", json={
        "output_material_id": output["id"], "order_id": order_9["id"], "allocated_weight_kg": 260,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"
    assert response.json()["message"] == "exceeds remaining weight"
    assert Decimal(response.json()["details"]["remaining_kg"]) == Decimal("250")

    # Exactly what is left
    response = await client.post("/api/v1/allocations", json={
        "output_material_id": output["id"], "order_id": order_9["id"], "allocated_weight_kg": "250",
    })
    assert response.status_code == 201, response.text
    assert Decimal(response.json()["data"]["remaining_kg"]) == Decimal("0")

    detail = (await client.get(f"/api/v1/outputs/{output['id']}")).json()
    assert Decimal(detail["allocated_kg"]) == Decimal("400")
    assert Decimal(detail["remaining_kg"]) == Decimal("0")

    allocations = (await client.get(f"/api/v1/outputs/{output['id']}/allocations")).json()
    assert sorted(a["order_code"] for a in allocations) == sorted([order_7["order_id"], order_9["order_id"]])

    note = await _create(client, "/api/v1/delivery-notes", {
        "type": "outgoing",
        "partner_name": "Spedition Nord",
        "material_description": "Glass fiber B1",
        "weight_kg": 400,
        "output_material_id": output["id"],
    })
    assert note["type"] == "outgoing"

    response = await client.get(f"/api/v1/outputs/{output['id']}")
    assert response.json()["status"] == "shipped"

    events = (await client.get("/api/v1/material-flow", params={"output_material_id": output["id"]})).json()
    event_types = {e["event_type"] for e in events}
    assert {"output_created", "batch_allocated", "delivery_note_created"} <= event_types


# =============================================================================
# SAMPLES OVER HTTP
# =============================================================================

async def test_sample_results_and_rejection(client):
    material_input = await _create(client, "/api/v1/intake", {
        "supplier": "Rotor Blades GmbH", "material_type": "gfk", "weight_kg": 300,
    })
    sample = await _create(client, "/api/v1/samples", {
        "sampler_name": "Jana Weber", "material_input_id": material_input["id"],
    })

    response = await client.post(f"/api/v1/samples/{sample['id']}/results", json={
        "results": [{"parameter_name": "moisture", "parameter_value": "0.4", "unit": "%"}],
    })
    assert response.status_code == 200, response.text
    assert response.json()["data"]["status"] == "in_analysis"

    response = await client.post(f"/api/v1/samples/{sample['id']}/reject", json={"reason": "wet"})
    assert response.status_code == 200, response.text
    outcomes = {s["name"]: s["ok"] for s in response.json()["side_effects"]}
    assert outcomes["material_input:rejected"] is True

    detail = (await client.get(f"/api/v1/samples/{sample['id']}")).json()
    assert detail["status"] == "rejected"
    assert [r["parameter_name"] for r in detail["results"]] == ["moisture"]
    response = await client.get(f"/api/v1/intake/{material_input['id']}")
    assert response.json()["status"] == "rejected"

    response = await client.post(f"/api/v1/samples/{sample['id']}/revert-rejection")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "in_analysis"


async def test_complete_step_without_body(client):
    material_input = await _create(client, "/api/v1/intake", {
        "supplier": "Rotor Blades GmbH", "material_type": "gfk", "weight_kg": 300,
    })
    steps = await _create(client, "/api/v1/processing", {
        "material_input_id": material_input["id"], "steps": ["milling"],
    })

    response = await client.post(f"/api/v1/processing/steps/{steps[0]['id']}/complete")

    assert response.status_code == 200, response.text
    assert response.json()["data"]["status"] == "completed"
    response = await client.get(f"/api/v1/intake/{material_input['id']}")
    assert response.json()["status"] == "processed"


# =============================================================================
# ERROR BODIES
# =============================================================================

async def test_aggregated_validation_errors(client):
    response = await client.post("/api/v1/intake", json={"supplier": " ", "weight_kg": -4})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "invalid_input"
    assert len(body["details"]["errors"]) == 3


async def test_malformed_payload_is_invalid_input(client):
    response = await client.post("/api/v1/allocations", json={"output_material_id": "not-a-uuid"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


async def test_unknown_output_is_not_found(client):
    response = await client.get(f"/api/v1/outputs/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_identifier_failure_is_system_error(client):
    from recytrack.api.deps import get_id_generator
    from recytrack.main import app

    from tests.conftest import UnreachableIdGenerator

    app.dependency_overrides[get_id_generator] = lambda: UnreachableIdGenerator()

    response = await client.post("/api/v1/containers", json={"type": "box"})

    assert response.status_code == 502
    assert response.json()["error"] == "system_error"
    assert response.json()["details"] == {"prefix": "BX"}


async def test_role_is_checked_per_operation(client, api_actor):
    api_actor["actor"] = Actor(user_id="qa-1", role="qa")

    response = await client.post("/api/v1/outputs", json={
        "output_type": "glass_fiber", "batch_id": "B1", "weight_kg": 10,
    })

    assert response.status_code == 403
    assert response.json()["error"] == "not_authorized"


async def test_container_listing_by_purpose(client):
    await _create(client, "/api/v1/containers", {"type": "bigbag"})

    response = await client.get("/api/v1/containers", params={"purpose": "output"})
    assert response.status_code == 200
    assert [c["container_id"] for c in response.json()] == ["BB-T-0001"]

    response = await client.get("/api/v1/containers", params={"purpose": "nowhere"})
    assert response.status_code == 400


async def test_attach_document_upload(client):
    from recytrack.core.storage import get_storage_client
    from recytrack.main import app

    from tests.test_delivery_notes_and_storage import FakeStorage

    storage = FakeStorage()
    app.dependency_overrides[get_storage_client] = lambda: storage
    note = await _create(client, "/api/v1/delivery-notes", {
        "type": "incoming",
        "partner_name": "Rotor Blades GmbH",
        "material_description": "GFK segments",
        "weight_kg": 750,
    })

    response = await client.post(
        f"/api/v1/delivery-notes/{note['id']}/document",
        files={"file": ("note.pdf", b"%PDF-1.7", "application/pdf")},
    )

    assert response.status_code == 200, response.text
    assert response.json()["data"]["pdf_url"].endswith(f"delivery-notes/{note['note_id']}.pdf")
    assert storage.uploads[0][1] == b"%PDF-1.7"


# =============================================================================
# AUTHENTICATION
# =============================================================================

@pytest.fixture
def real_auth(client):
    """Drop the actor override so requests go through JWT verification."""
    from recytrack.api.deps import get_current_actor
    from recytrack.main import app

    app.dependency_overrides.pop(get_current_actor, None)
    return client


async def test_request_with_valid_token(real_auth):
    token = create_access_token("user-42", "production")

    response = await real_auth.post(
        "/api/v1/containers",
        json={"type": "box"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 201, response.text
    assert response.json()["data"]["container_id"] == "BX-T-0001"


async def test_request_without_token_is_rejected(real_auth):
    response = await real_auth.get("/api/v1/orders")

    assert response.status_code in (401, 403)


async def test_request_with_invalid_token_is_unauthorized(real_auth):
    response = await real_auth.get("/api/v1/orders", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


async def test_token_role_is_enforced(real_auth):
    token = create_access_token("user-42", "customer")

    response = await real_auth.post(
        "/api/v1/containers",
        json={"type": "box"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 403


async def test_health(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


def test_module_runner_serves_the_app(monkeypatch):
    import uvicorn

    from recytrack.__main__ import main

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    main()

    assert calls[0][0] == "recytrack.main:app"
    assert calls[0][1]["port"] == 8000
