"""
Stage Machine tables (``placement_kernel.domain.stages``).

Responsibility
--------------
Declares the candidate pipeline stages, the offer status lifecycle, and
the mirror between the two.  The candidate's ``current_stage`` is the
authoritative pipeline position; an active offer's status must always be
one the stage allows (and vice versa).

Pipeline::

    sourced -> screening -> interview_scheduled -> interview_completed
        -> offer_extended -> offer_accepted -> documentation -> joined

    rejected, dropped   terminal side exits, reachable from any stage
    on_hold             reachable from any active stage; resume returns
                        to the stage it came from

Stage selection is deliberately permissive (recruiters correct mistakes by
picking any stage).  Only two moves are refused outright: leaving
``joined`` other than by ``dropped`` (that is a renege) and parking a
terminal candidate ``on_hold``.  Moves that would desynchronise an active
offer are refused by ``plan_offer_mirror``.

Offer lifecycle::

    extended -> accepted -> joined
    extended -> rejected | expired
    accepted -> rejected | renege
    joined   -> renege

Architecture position
---------------------
**Kernel domain layer** -- pure tables and functions.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from placement_kernel.domain.workflow import Guard, Transition, Workflow
from placement_kernel.exceptions import InvalidStageError


class CandidateStage(str, Enum):
    SOURCED = "sourced"
    SCREENING = "screening"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    OFFER_EXTENDED = "offer_extended"
    OFFER_ACCEPTED = "offer_accepted"
    DOCUMENTATION = "documentation"
    JOINED = "joined"
    REJECTED = "rejected"
    DROPPED = "dropped"
    ON_HOLD = "on_hold"


class OfferStatus(str, Enum):
    EXTENDED = "extended"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    JOINED = "joined"
    RENEGE = "renege"


PIPELINE_ORDER: tuple[CandidateStage, ...] = (
    CandidateStage.SOURCED,
    CandidateStage.SCREENING,
    CandidateStage.INTERVIEW_SCHEDULED,
    CandidateStage.INTERVIEW_COMPLETED,
    CandidateStage.OFFER_EXTENDED,
    CandidateStage.OFFER_ACCEPTED,
    CandidateStage.DOCUMENTATION,
    CandidateStage.JOINED,
)

TERMINAL_STAGES: frozenset[CandidateStage] = frozenset({
    CandidateStage.JOINED,
    CandidateStage.REJECTED,
    CandidateStage.DROPPED,
})

# Stages from which on_hold may be entered
ACTIVE_STAGES: frozenset[CandidateStage] = frozenset(
    s for s in PIPELINE_ORDER if s not in TERMINAL_STAGES
)

# Offer statuses that count as "the" active offer (at most one per candidate)
ACTIVE_OFFER_STATUSES: frozenset[OfferStatus] = frozenset({
    OfferStatus.EXTENDED,
    OfferStatus.ACCEPTED,
    OfferStatus.JOINED,
})

# Stage reached -> candidate column stamped with the event time.
# date_joined is stamped with the joining date itself, not the event time.
STAGE_TIMESTAMP_FIELDS: dict[CandidateStage, str] = {
    CandidateStage.SOURCED: "date_sourced",
    CandidateStage.SCREENING: "date_screening_started",
    CandidateStage.INTERVIEW_SCHEDULED: "date_interview_scheduled",
    CandidateStage.INTERVIEW_COMPLETED: "date_interview_completed",
    CandidateStage.OFFER_EXTENDED: "date_offer_extended",
    CandidateStage.OFFER_ACCEPTED: "date_offer_accepted",
    CandidateStage.DOCUMENTATION: "date_documentation_started",
    CandidateStage.REJECTED: "date_rejected",
    CandidateStage.DROPPED: "date_dropped",
    CandidateStage.ON_HOLD: "date_on_hold",
}

# Offer status -> the stage the candidate is driven to
STAGE_FOR_OFFER_STATUS: dict[OfferStatus, CandidateStage] = {
    OfferStatus.EXTENDED: CandidateStage.OFFER_EXTENDED,
    OfferStatus.ACCEPTED: CandidateStage.OFFER_ACCEPTED,
    OfferStatus.JOINED: CandidateStage.JOINED,
    OfferStatus.REJECTED: CandidateStage.REJECTED,
    OfferStatus.RENEGE: CandidateStage.DROPPED,
}

# Active offer status -> stages the candidate may sit in meanwhile
STAGES_FOR_ACTIVE_OFFER: dict[OfferStatus, frozenset[CandidateStage]] = {
    OfferStatus.EXTENDED: frozenset({CandidateStage.OFFER_EXTENDED}),
    OfferStatus.ACCEPTED: frozenset({
        CandidateStage.OFFER_ACCEPTED,
        CandidateStage.DOCUMENTATION,
    }),
    OfferStatus.JOINED: frozenset({CandidateStage.JOINED}),
}


JOIN_DATE_SUPPLIED = Guard("join_date_supplied", "Actual joining date supplied and valid")
RENEGE_REASON_SUPPLIED = Guard("renege_reason_supplied", "Reason for the renege recorded")

OFFER_WORKFLOW = Workflow(
    name="offer",
    description="Offer status lifecycle",
    initial_state=OfferStatus.EXTENDED.value,
    states=tuple(s.value for s in OfferStatus),
    transitions=(
        Transition("extended", "accepted", action="accept"),
        Transition("extended", "rejected", action="reject"),
        Transition("extended", "expired", action="expire"),
        Transition("accepted", "rejected", action="reject"),
        Transition(
            "accepted", "joined", action="join",
            guard=JOIN_DATE_SUPPLIED, recognises_revenue=True,
        ),
        Transition("accepted", "renege", action="renege", guard=RENEGE_REASON_SUPPLIED),
        Transition(
            "joined", "renege", action="renege",
            guard=RENEGE_REASON_SUPPLIED, reverses_revenue=True,
        ),
    ),
    terminal_states=("rejected", "expired", "renege"),
)


def parse_stage(value: str | CandidateStage) -> CandidateStage:
    """Coerce a stage value; unknown values raise InvalidStageError."""
    if isinstance(value, CandidateStage):
        return value
    try:
        return CandidateStage(str(value).strip().lower())
    except ValueError:
        raise InvalidStageError(str(value)) from None


def parse_offer_status(value: str | OfferStatus) -> OfferStatus:
    """Coerce an offer status value; unknown values raise InvalidStageError."""
    if isinstance(value, OfferStatus):
        return value
    try:
        return OfferStatus(str(value).strip().lower())
    except ValueError:
        raise InvalidStageError(str(value)) from None


def stage_matches_offer(
    stage: CandidateStage,
    offer_status: OfferStatus | None,
    stage_before_hold: CandidateStage | None = None,
) -> bool:
    """
    True when the candidate stage and active offer status agree.

    A candidate on hold is judged by the stage it will resume to.  No
    active offer imposes no constraint.
    """
    if offer_status is None or offer_status not in ACTIVE_OFFER_STATUSES:
        return True
    effective = stage_before_hold if stage == CandidateStage.ON_HOLD else stage
    if effective is None:
        return False
    return effective in STAGES_FOR_ACTIVE_OFFER[offer_status]


def check_stage_move(
    current: CandidateStage,
    target: CandidateStage,
) -> tuple[bool, str]:
    """
    Central guard for free-form stage selection.

    Returns (allowed, reason).  Same-stage moves are always allowed
    ("noop"); the caller treats them as idempotent.
    """
    if current == target:
        return True, "noop"

    if current == CandidateStage.JOINED and target != CandidateStage.DROPPED:
        return False, "a joined candidate can only leave through a renege (dropped)"

    if target == CandidateStage.ON_HOLD and current not in ACTIVE_STAGES:
        return False, f"{current.value} is not an active stage"

    return True, "ok"


@dataclass(frozen=True)
class OfferMirror:
    """
    What a stage change does to the candidate's active offer.

    ``offer_status`` is the status the offer must move to (None = leave it).
    """
    allowed: bool
    offer_status: OfferStatus | None = None
    reason: str = ""


def plan_offer_mirror(
    target: CandidateStage,
    offer_status: OfferStatus | None,
) -> OfferMirror:
    """
    Decide how a stage change mirrors onto the active offer.

    Stage changes that have no legal counterpart in the offer workflow
    are refused so that stage and offer can never diverge.
    """
    if offer_status is None or offer_status not in ACTIVE_OFFER_STATUSES:
        return OfferMirror(allowed=True)

    if target == CandidateStage.ON_HOLD:
        return OfferMirror(allowed=True)

    if target in STAGES_FOR_ACTIVE_OFFER[offer_status]:
        return OfferMirror(allowed=True)

    if target in (CandidateStage.OFFER_ACCEPTED, CandidateStage.DOCUMENTATION):
        if offer_status == OfferStatus.EXTENDED:
            return OfferMirror(allowed=True, offer_status=OfferStatus.ACCEPTED)
        return OfferMirror(allowed=False, reason="offer has already joined")

    if target == CandidateStage.JOINED:
        return OfferMirror(allowed=True, offer_status=OfferStatus.JOINED)

    if target == CandidateStage.REJECTED:
        if offer_status == OfferStatus.JOINED:
            return OfferMirror(allowed=False, reason="a joined offer can only be reneged")
        return OfferMirror(allowed=True, offer_status=OfferStatus.REJECTED)

    if target == CandidateStage.DROPPED:
        if offer_status == OfferStatus.EXTENDED:
            return OfferMirror(allowed=True, offer_status=OfferStatus.REJECTED)
        return OfferMirror(allowed=True, offer_status=OfferStatus.RENEGE)

    return OfferMirror(
        allowed=False,
        reason=f"active offer is {offer_status.value}; close it before moving back",
    )
