"""
Lifecycle state machines.

All status changes of processing steps, samples and orders are checked
against the tables in this module.
"""

from typing import Dict, List

from recytrack.core.exceptions import ConflictError
from recytrack.models.material import ProcessingStepStatus
from recytrack.models.order import OrderStatus
from recytrack.models.sample import SampleStatus


# =============================================================================
# PROCESSING STEPS
# =============================================================================

STEP_TRANSITIONS: Dict[str, List[str]] = {
    ProcessingStepStatus.PENDING.value: [
        ProcessingStepStatus.RUNNING.value,          # Previous step completed
    ],
    ProcessingStepStatus.RUNNING.value: [
        ProcessingStepStatus.PAUSED.value,           # Pause
        ProcessingStepStatus.SAMPLE_REQUIRED.value,  # Hold for QA
        ProcessingStepStatus.COMPLETED.value,        # Complete
    ],
    ProcessingStepStatus.PAUSED.value: [
        ProcessingStepStatus.RUNNING.value,          # Resume
    ],
    ProcessingStepStatus.SAMPLE_REQUIRED.value: [
        ProcessingStepStatus.RUNNING.value,          # Resume once a sample is approved
        ProcessingStepStatus.COMPLETED.value,        # Complete with sample
    ],
    ProcessingStepStatus.COMPLETED.value: [],        # Terminal
}


# =============================================================================
# SAMPLES
# =============================================================================

SAMPLE_TRANSITIONS: Dict[str, List[str]] = {
    SampleStatus.PENDING.value: [
        SampleStatus.IN_ANALYSIS.value,
        SampleStatus.APPROVED.value,
        SampleStatus.REJECTED.value,
    ],
    SampleStatus.IN_ANALYSIS.value: [
        SampleStatus.IN_ANALYSIS.value,              # Further results
        SampleStatus.APPROVED.value,
        SampleStatus.REJECTED.value,
    ],
    SampleStatus.APPROVED.value: [],
    SampleStatus.REJECTED.value: [
        SampleStatus.IN_ANALYSIS.value,              # Revert rejection
    ],
}


# =============================================================================
# ORDERS (forward only)
# =============================================================================

ORDER_TRANSITIONS: Dict[str, List[str]] = {
    OrderStatus.PENDING.value: [
        OrderStatus.IN_PRODUCTION.value,
        OrderStatus.CONFIRMED.value,
        OrderStatus.CANCELLED.value,
    ],
    OrderStatus.IN_PRODUCTION.value: [
        OrderStatus.CONFIRMED.value,
        OrderStatus.READY.value,
        OrderStatus.CANCELLED.value,
    ],
    OrderStatus.CONFIRMED.value: [
        OrderStatus.READY.value,
        OrderStatus.CANCELLED.value,
    ],
    OrderStatus.READY.value: [
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    ],
    OrderStatus.DELIVERED.value: [],
    OrderStatus.CANCELLED.value: [],
}


def can_transition(table: Dict[str, List[str]], current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in table.get(current_status, [])


def validate_transition(
    table: Dict[str, List[str]],
    current_status: str,
    new_status: str,
    entity: str,
) -> None:
    """Raise ConflictError if the transition is not allowed."""
    if can_transition(table, current_status, new_status):
        return

    allowed = table.get(current_status, [])
    if not allowed:
        raise ConflictError(
            f"{entity} in '{current_status}' status cannot be changed",
            details={"status": current_status},
        )
    raise ConflictError(
        f"Cannot change {entity} from '{current_status}' to '{new_status}'",
        details={"status": current_status, "allowed": allowed},
    )
