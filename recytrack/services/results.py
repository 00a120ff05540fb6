"""
Operation results and transaction helpers shared by the lifecycle services.

A mutating operation commits its primary write as one transaction. Side
effects marked best-effort (audit events, container status flips) run in a
SAVEPOINT each; a failing side effect is rolled back on its own, logged, and
reported in the OperationResult instead of failing the operation.
"""
import functools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recytrack.core.exceptions import LifecycleError, translate_db_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SideEffectOutcome:
    """Outcome of one best-effort side effect."""
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class OperationResult(Generic[T]):
    """Primary result of an operation plus the outcomes of its side effects."""
    primary: T
    side_effects: List[SideEffectOutcome] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when the primary write succeeded but a side effect failed."""
        return any(not outcome.ok for outcome in self.side_effects)

    def outcome(self, name: str) -> Optional[SideEffectOutcome]:
        for item in self.side_effects:
            if item.name == name:
                return item
        return None


async def run_side_effect(
    db: AsyncSession,
    name: str,
    action: Callable[[], Awaitable[object]],
) -> SideEffectOutcome:
    """
    Run a best-effort side effect inside a SAVEPOINT.

    Any exception rolls back the savepoint only and is reported as a failed
    outcome; the enclosing transaction stays usable.
    """
    try:
        async with db.begin_nested():
            await action()
    except Exception as e:
        logger.warning(f"Side effect '{name}' failed: {e}")
        return SideEffectOutcome(name=name, ok=False, error=str(e))
    return SideEffectOutcome(name=name, ok=True)


def transactional(conflict_message: str = "record already exists"):
    """
    Commit on success, roll back on any failure.

    Store errors are translated into the lifecycle taxonomy so the caller
    never sees a raw SQLAlchemy exception.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                result = await func(self, *args, **kwargs)
                await self.db.commit()
                return result
            except LifecycleError:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise translate_db_error(e, conflict_message) from e
            except Exception:
                await self.db.rollback()
                raise
        return wrapper
    return decorator
