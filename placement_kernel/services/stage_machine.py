"""
StageMachine -- the authoritative candidate pipeline position.

Responsibility:
    Loads candidates, guards free-form stage selection, and writes stage
    changes together with their stage-specific timestamp.

Architecture position:
    Kernel > Services -- flush-only; called by LifecycleOrchestrator, which
    decides what else a stage change implies (offer mirror, revenue).

Invariants enforced:
    - ``current_stage`` changes are conditional UPDATEs keyed on the stage
      the caller observed; a lost race raises ConcurrentModificationError.
    - Every move stamps ``last_activity_date`` and the stage timestamp
      column; ``joined`` stamps ``date_joined`` with the joining date.
    - Entering ``on_hold`` remembers ``stage_before_hold``; leaving it
      clears it.
"""

from datetime import date
from typing import Any
from uuid import UUID

from placement_kernel.domain.stages import (
    STAGE_TIMESTAMP_FIELDS,
    CandidateStage,
    check_stage_move,
)
from placement_kernel.exceptions import (
    CandidateNotFoundError,
    IllegalStageTransitionError,
)
from placement_kernel.logging_config import get_logger
from placement_kernel.models.candidate import Candidate
from placement_kernel.services.base import BaseService

logger = get_logger("services.stage_machine")


class StageMachine(BaseService[Candidate]):

    def get_candidate(self, candidate_id: UUID) -> Candidate:
        candidate = self.session.get(Candidate, candidate_id)
        if candidate is None:
            raise CandidateNotFoundError(str(candidate_id))
        return candidate

    def ensure_allowed(self, candidate: Candidate, target: CandidateStage) -> None:
        """Raise IllegalStageTransitionError if the move is refused outright."""
        allowed, reason = check_stage_move(candidate.stage, target)
        if not allowed:
            raise IllegalStageTransitionError(
                str(candidate.id), candidate.current_stage, target.value, reason
            )

    def move(
        self,
        candidate: Candidate,
        target: CandidateStage,
        actor_id: str,
        *,
        joined_on: date | None = None,
        extra_values: dict[str, Any] | None = None,
    ) -> CandidateStage:
        """
        Move ``candidate`` to ``target`` and return the stage it left.

        ``extra_values`` are written in the same conditional UPDATE
        (revenue and renege columns travel with the stage they belong to).
        """
        previous = candidate.stage
        now = self.clock.now()

        values: dict[str, Any] = {
            "current_stage": target.value,
            "last_activity_date": now,
            "updated_by_id": actor_id,
        }
        stamp = STAGE_TIMESTAMP_FIELDS.get(target)
        if stamp is not None:
            values[stamp] = now
        if target == CandidateStage.JOINED:
            values["date_joined"] = joined_on

        if target == CandidateStage.ON_HOLD:
            values["stage_before_hold"] = previous.value
        elif previous == CandidateStage.ON_HOLD:
            values["stage_before_hold"] = None

        if extra_values:
            values.update(extra_values)

        self._conditional_update(candidate, Candidate.current_stage, previous.value, values)

        logger.info(
            "stage_transitioned",
            extra={
                "from_stage": previous.value,
                "to_stage": target.value,
            },
        )
        return previous
