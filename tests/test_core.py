"""Identifiers, permissions, error translation, tokens and weight parsing."""

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from recytrack.core.exceptions import (
    BackendError, ConflictError, IdGenerationError, PermissionDenied, ValidationError, translate_db_error,
)
from recytrack.core.permissions import Actor, Operation, get_default_permissions_for_role, require_role
from recytrack.core.security import create_access_token, decode_token, verify_access_token
from recytrack.services.identifier_service import SequenceIdGenerator
from recytrack.services.state_machine import (
    ORDER_TRANSITIONS, SAMPLE_TRANSITIONS, STEP_TRANSITIONS, can_transition, validate_transition,
)
from recytrack.services.validators import clean, parse_weight, to_weight


# =============================================================================
# IDENTIFIERS
# =============================================================================

async def test_sequence_generator_counts_per_prefix(db):
    ids = SequenceIdGenerator(db)
    year = datetime.now(timezone.utc).year

    first = await ids.generate_unique_id("OUT")
    second = await ids.generate_unique_id("OUT")
    other = await ids.generate_unique_id("prb")
    await db.commit()

    assert first == f"OUT-{year}-00001"
    assert second == f"OUT-{year}-00002"
    assert other == f"PRB-{year}-00001"


async def test_sequence_generator_honours_padding(db):
    code = await SequenceIdGenerator(db, padding=3).generate_unique_id("LS")

    assert re.fullmatch(r"LS-\d{4}-001", code)


async def test_sequence_counter_rolls_back_with_transaction(db):
    ids = SequenceIdGenerator(db)
    await ids.generate_unique_id("AUF")
    await db.commit()
    await ids.generate_unique_id("AUF")
    await db.rollback()

    code = await ids.generate_unique_id("AUF")

    assert code.endswith("-00002")


async def test_blank_prefix_is_identifier_error(db):
    with pytest.raises(IdGenerationError):
        await SequenceIdGenerator(db).generate_unique_id("  ")


# =============================================================================
# PERMISSIONS
# =============================================================================

@pytest.mark.parametrize("role, operation, allowed", [
    ("admin", Operation.ALLOCATION_CREATE, True),
    ("production", Operation.ALLOCATION_CREATE, True),
    ("betriebsleiter", Operation.ALLOCATION_CREATE, True),
    ("qa", Operation.ALLOCATION_CREATE, False),
    ("customer", Operation.ORDER_CREATE, True),
    ("customer", Operation.OUTPUT_CREATE, False),
    ("qa", Operation.SAMPLE_VERDICT, True),
    ("intake", Operation.PROCESSING_START, False),
    ("logistics", Operation.DELIVERY_CREATE, True),
    ("unknown", Operation.INTAKE_CREATE, False),
])
def test_role_matrix(role, operation, allowed):
    assert Actor(user_id="u", role=role).can(operation) is allowed


def test_require_role_names_allowed_roles():
    with pytest.raises(PermissionDenied) as exc_info:
        require_role(Actor(user_id="u", role="supplier"), Operation.SAMPLE_CREATE)

    assert exc_info.value.status_code == 403
    assert exc_info.value.details["allowed_roles"] == "admin, production, qa"


def test_default_permissions_for_qa():
    assert get_default_permissions_for_role("qa") == {
        Operation.SAMPLE_CREATE, Operation.SAMPLE_RESULTS, Operation.SAMPLE_VERDICT,
    }


# =============================================================================
# ERROR TRANSLATION
# =============================================================================

class _DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity(message, sqlstate=None):
    return IntegrityError("INSERT ...", {}, _DriverError(message, sqlstate))


def test_duplicate_allocation_pair_is_conflict():
    error = translate_db_error(_integrity(
        'duplicate key value violates unique constraint "uq_batch_allocation_output_order"', "23505"
    ))

    assert isinstance(error, ConflictError)
    assert error.message == "already allocated to this order"


def test_other_unique_violation_uses_conflict_message():
    error = translate_db_error(
        _integrity("UNIQUE constraint failed: orders.order_id"), "order code already exists"
    )

    assert isinstance(error, ConflictError)
    assert error.message == "order code already exists"


def test_conservation_trigger_is_validation_error():
    error = translate_db_error(_integrity("allocation exceeds remaining weight", "23514"))

    assert isinstance(error, ValidationError)
    assert error.message == "exceeds remaining weight"


def test_row_level_security_is_permission_denied():
    error = translate_db_error(OperationalError(
        "INSERT ...", {}, _DriverError('new row violates row-level security policy for table "orders"', "42501")
    ))

    assert isinstance(error, PermissionDenied)


def test_unknown_store_error_is_backend_error():
    error = translate_db_error(OperationalError("SELECT 1", {}, _DriverError("disk I/O error", "58030")))

    assert isinstance(error, BackendError)
    assert error.code == "58030"
    assert error.to_dict()["error"] == "system_error"


# =============================================================================
# STATE MACHINES
# =============================================================================

def test_step_transitions():
    assert can_transition(STEP_TRANSITIONS, "running", "paused")
    assert can_transition(STEP_TRANSITIONS, "sample_required", "completed")
    assert not can_transition(STEP_TRANSITIONS, "paused", "completed")
    assert STEP_TRANSITIONS["completed"] == []


def test_sample_transitions():
    assert can_transition(SAMPLE_TRANSITIONS, "rejected", "in_analysis")
    assert not can_transition(SAMPLE_TRANSITIONS, "approved", "rejected")


def test_orders_only_move_forward():
    assert not can_transition(ORDER_TRANSITIONS, "in_production", "pending")
    assert not can_transition(ORDER_TRANSITIONS, "delivered", "ready")
    with pytest.raises(ConflictError) as exc_info:
        validate_transition(ORDER_TRANSITIONS, "cancelled", "pending", "order")
    assert "cannot be changed" in exc_info.value.message


# =============================================================================
# WEIGHTS
# =============================================================================

@pytest.mark.parametrize("value, expected", [
    ("12.5", Decimal("12.500")),
    (7, Decimal("7.000")),
    (0.1 + 0.2, Decimal("0.300")),
    (" 3.0005 ", Decimal("3.001")),
    ("0.0004", None),
    ("999999999.999", Decimal("999999999.999")),
    ("1000000000", None),
    ("1e400", None),
    (float("nan"), None),
    (float("inf"), None),
    ("-1", None),
    (False, None),
    ([], None),
])
def test_parse_weight(value, expected):
    assert parse_weight(value) == expected


def test_to_weight_and_clean():
    assert to_weight(None) == Decimal("0.000")
    assert to_weight(59.49999999) == Decimal("59.500")
    assert clean("  ") is None
    assert clean(" x ") == "x"


# =============================================================================
# TOKENS
# =============================================================================

def test_access_token_round_trip():
    token = create_access_token("user-7", "qa")

    claims = verify_access_token(token)

    assert claims["sub"] == "user-7"
    assert claims["role"] == "qa"
    assert claims["type"] == "access"


def test_expired_token_is_rejected():
    token = create_access_token("user-7", "qa", expires_delta=timedelta(seconds=-5))

    assert verify_access_token(token) is None


def test_token_without_access_type_is_rejected():
    token = create_access_token("user-7", "qa", additional_claims={"type": "refresh"})

    assert decode_token(token) is not None
    assert verify_access_token(token) is None


def test_token_signed_with_other_key_is_rejected():
    from jose import jwt

    token = jwt.encode(
        {"sub": "user-7", "role": "admin", "type": "access"}, "not-the-secret", algorithm="HS256"
    )

    assert verify_access_token(token) is None
