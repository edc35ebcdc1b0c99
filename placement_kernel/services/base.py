"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor, the flush-only session contract, and
    the conditional-update primitive every lifecycle write goes through.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Services flush within the caller's transaction and never commit or
      rollback themselves.  LifecycleOrchestrator owns the boundary.
    - Status and stage writes are ``UPDATE ... WHERE <column> = :expected``.
      A write that matches no row means another transaction moved the
      record first; it raises ConcurrentModificationError instead of
      overwriting.
"""

from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import update
from sqlalchemy.orm import InstrumentedAttribute, Session

from placement_kernel.db.base import Base
from placement_kernel.domain.clock import Clock, SystemClock
from placement_kernel.exceptions import ConcurrentModificationError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide reporting queries -- those belong in
          ``placement_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _conditional_update(
        self,
        target: ModelType,
        guard: InstrumentedAttribute,
        expected: Any,
        values: dict[str, Any],
    ) -> None:
        """
        Write ``values`` to ``target`` only if ``guard`` still equals ``expected``.

        Pending ORM changes are flushed first; ``target`` is refreshed from
        the database afterwards.

        Raises:
            ConcurrentModificationError: If no row matched.
        """
        model = type(target)
        self.session.flush()
        result = self.session.execute(
            update(model)
            .where(model.id == target.id, guard == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                entity_type=model.__name__,
                entity_id=str(target.id),
                expected=f"{guard.key}={expected}",
            )
        self.session.refresh(target)
