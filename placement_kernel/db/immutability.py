"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Placement history is evidence: the timeline is what a recruiter, a manager
or a client dispute looks at to see who moved a candidate, when, and what
the revenue was at the time.  Candidates and offers in terminal states are
kept for revenue history.

    session.flush()
         |
         v
    [before_update event] --> _check_timeline_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() ---------------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Rule                              | Why
----------------|-----------------------------------|----------------------------
TimelineEntry   | No UPDATE, no DELETE              | Hash-chained audit trail
Candidate       | No DELETE                         | Revenue and placement history
Offer           | No DELETE                         | Fee captured per offer

Candidates and offers stay mutable: their changes are themselves recorded
on the timeline.

===============================================================================
USAGE
===============================================================================

    from placement_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    from placement_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
"""

from sqlalchemy import event

from placement_kernel.exceptions import ImmutabilityViolationError
from placement_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, target, operation: str, reason: str) -> ImmutabilityViolationError:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_timeline_immutability(mapper, connection, target):
    """Timeline entries are never modified."""
    raise _blocked(
        "TimelineEntry", target, "UPDATE",
        "Timeline entries are immutable and cannot be modified",
    )


def _check_timeline_delete(mapper, connection, target):
    raise _blocked(
        "TimelineEntry", target, "DELETE",
        "Timeline entries cannot be deleted",
    )


def _check_candidate_delete(mapper, connection, target):
    raise _blocked(
        "Candidate", target, "DELETE",
        "Candidates are retained for audit and revenue history",
    )


def _check_offer_delete(mapper, connection, target):
    raise _blocked(
        "Offer", target, "DELETE",
        "Offers are retained for audit and revenue history",
    )


def _listeners():
    from placement_kernel.models.candidate import Candidate
    from placement_kernel.models.offer import Offer
    from placement_kernel.models.timeline import TimelineEntry

    return (
        (TimelineEntry, "before_update", _check_timeline_immutability),
        (TimelineEntry, "before_delete", _check_timeline_delete),
        (Candidate, "before_delete", _check_candidate_delete),
        (Offer, "before_delete", _check_offer_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent.  Call after models are importable, before any writes.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
