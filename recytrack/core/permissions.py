"""
Role-based pre-checks for lifecycle operations.

The database enforces row-level authorization. These checks only fail fast
with a readable PermissionDenied before any write is attempted.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Set

from recytrack.core.exceptions import PermissionDenied


class Role(str, Enum):
    """Application roles."""
    ADMIN = "admin"
    INTAKE = "intake"
    PRODUCTION = "production"
    QA = "qa"
    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    LOGISTICS = "logistics"
    BETRIEBSLEITER = "betriebsleiter"  # plant manager


class Operation:
    """Permission codes for lifecycle operations."""
    INTAKE_CREATE = "intake:create"
    PROCESSING_START = "processing:start"
    PROCESSING_UPDATE = "processing:update"
    SAMPLE_CREATE = "sample:create"
    SAMPLE_RESULTS = "sample:results"
    SAMPLE_VERDICT = "sample:verdict"
    OUTPUT_CREATE = "output:create"
    ALLOCATION_CREATE = "allocation:create"
    ORDER_CREATE = "order:create"
    CONTAINER_CREATE = "container:create"
    DELIVERY_CREATE = "delivery:create"


# Roles allowed per operation
OPERATION_ROLES: Dict[str, FrozenSet[str]] = {
    Operation.INTAKE_CREATE: frozenset({"admin", "intake", "production", "betriebsleiter"}),
    Operation.PROCESSING_START: frozenset({"admin", "production", "betriebsleiter"}),
    Operation.PROCESSING_UPDATE: frozenset({"admin", "production", "betriebsleiter"}),
    Operation.SAMPLE_CREATE: frozenset({"admin", "production", "qa"}),
    Operation.SAMPLE_RESULTS: frozenset({"admin", "production", "qa"}),
    Operation.SAMPLE_VERDICT: frozenset({"admin", "production", "qa"}),
    Operation.OUTPUT_CREATE: frozenset({"admin", "production", "betriebsleiter"}),
    Operation.ALLOCATION_CREATE: frozenset({"admin", "production", "betriebsleiter"}),
    Operation.ORDER_CREATE: frozenset({"admin", "production", "betriebsleiter", "customer"}),
    Operation.CONTAINER_CREATE: frozenset({"admin", "intake", "production", "logistics", "betriebsleiter"}),
    Operation.DELIVERY_CREATE: frozenset({"admin", "intake", "logistics", "production", "betriebsleiter"}),
}


def get_default_permissions_for_role(role: str) -> Set[str]:
    """Return the operation codes a role may perform."""
    role = role.value if isinstance(role, Role) else role
    return {
        operation
        for operation, roles in OPERATION_ROLES.items()
        if role in roles
    }


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf an operation runs."""
    user_id: Optional[str]
    role: str

    def can(self, operation: str) -> bool:
        return self.role in OPERATION_ROLES.get(operation, frozenset())


def require_role(actor: Actor, operation: str) -> None:
    """Raise PermissionDenied unless the actor's role may perform the operation."""
    if not actor.can(operation):
        allowed = ", ".join(sorted(OPERATION_ROLES.get(operation, ())))
        raise PermissionDenied(
            f"Role '{actor.role}' may not perform {operation}",
            details={"operation": operation, "allowed_roles": allowed},
        )
