"""Response envelope for mutating operations."""
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from recytrack.services.results import OperationResult

T = TypeVar("T")


class SideEffectOutcomeSchema(BaseModel):
    """Outcome of one best-effort side effect."""
    name: str
    ok: bool
    error: Optional[str] = None


class OperationResponse(BaseModel, Generic[T]):
    """Primary result plus side-effect outcomes."""
    data: T
    side_effects: List[SideEffectOutcomeSchema] = []
    degraded: bool = False


class ErrorResponse(BaseModel):
    """Body of every lifecycle error response."""
    error: str
    message: str
    details: Dict[str, Any] = {}


def operation_response(result: OperationResult, data: Any = None) -> Dict[str, Any]:
    """Build the envelope; ORM objects in data are validated by the response model."""
    return {
        "data": result.primary if data is None else data,
        "side_effects": [
            {"name": s.name, "ok": s.ok, "error": s.error}
            for s in result.side_effects
        ],
        "degraded": result.degraded,
    }
