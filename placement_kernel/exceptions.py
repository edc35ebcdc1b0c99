"""
Typed Exception Hierarchy for the Placement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Lifecycle errors are surfaced to operators who must decide what to do next
(fix the input, pick a different action, or escalate).  Callers catch by
type, never by message:

    try:
        orchestrator.create_offer(candidate_id, terms, actor)
    except ActiveOfferExistsError as e:
        show(f"Candidate already has offer {e.offer_id} ({e.status})")

Every exception has:
  1. A class-level CODE (machine-readable, API-safe)
  2. Structured attributes (entity id, attempted transition, ...)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PlacementKernelError (base)
    |
    +-- ValidationError              caller must fix input and resubmit
    |   +-- MissingJoinDateError
    |   +-- InvalidJoinDateError
    |   +-- InvalidOfferTermsError
    |   +-- InvalidStageError
    |   +-- MissingRenegeReasonError
    |   +-- FutureSweepDateError
    |
    +-- ConflictError                state precondition violated
    |   +-- ActiveOfferExistsError
    |   +-- IllegalOfferTransitionError
    |   +-- IllegalStageTransitionError
    |   +-- OfferNotEditableError
    |   +-- NoRenegeableOfferError
    |   +-- ConcurrentModificationError
    |
    +-- NotFoundError                referenced record missing
    |   +-- CandidateNotFoundError
    |   +-- OfferNotFoundError
    |   +-- ClientNotFoundError
    |   +-- SafetyRecordNotFoundError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
        +-- TimelineChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                        | When Raised
------------|-----------------------------|------------------------------------
Validation  | MISSING_JOIN_DATE           | joined requested without a date
            | INVALID_JOIN_DATE           | unparseable or future join date
            | INVALID_OFFER_TERMS         | missing/negative CTC, bad dates
            | INVALID_STAGE               | value is not a pipeline stage
            | MISSING_RENEGE_REASON       | renege without a reason
------------|-----------------------------|------------------------------------
Conflict    | ACTIVE_OFFER_EXISTS         | second non-terminal offer
            | ILLEGAL_OFFER_TRANSITION    | e.g. rejected -> joined
            | ILLEGAL_STAGE_TRANSITION    | stage change with no offer mirror
            | OFFER_NOT_EDITABLE          | editing terms after extended
            | NO_RENEGEABLE_OFFER         | renege with nothing accepted/joined
            | CONCURRENT_MODIFICATION     | conditional update matched no row
------------|-----------------------------|------------------------------------
NotFound    | CANDIDATE_NOT_FOUND         | candidate id doesn't exist
            | OFFER_NOT_FOUND             | offer id doesn't exist
            | CLIENT_NOT_FOUND            | client id doesn't exist
            | SAFETY_RECORD_NOT_FOUND     | joined candidate has no record
------------|-----------------------------|------------------------------------
Immutable   | IMMUTABILITY_VIOLATION      | timeline UPDATE/DELETE, hard delete
------------|-----------------------------|------------------------------------
Audit       | TIMELINE_CHAIN_BROKEN       | recomputed timeline hash mismatch

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Nothing here is retried automatically.  A financial operation retried
   after a partial failure risks double revenue recognition, so every
   error propagates to the caller with enough context to render a message.

2. ConcurrentModificationError is a ConflictError, not a separate branch:
   to the operator a lost race looks exactly like a stale screen.
"""


class PlacementKernelError(Exception):
    """
    Base exception for all placement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PLACEMENT_KERNEL_ERROR"


# Validation


class ValidationError(PlacementKernelError):
    """Malformed or missing required input."""

    code: str = "VALIDATION_ERROR"


class MissingJoinDateError(ValidationError):
    """A joined transition was requested without a joining date."""

    code: str = "MISSING_JOIN_DATE"

    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        super().__init__(
            f"Candidate {candidate_id}: a joining date is required to mark as joined"
        )


class InvalidJoinDateError(ValidationError):
    """Joining date does not parse as a calendar date or lies in the future."""

    code: str = "INVALID_JOIN_DATE"

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid joining date {value!r}: {reason}")


class InvalidOfferTermsError(ValidationError):
    """Offer compensation or dates failed validation."""

    code: str = "INVALID_OFFER_TERMS"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid offer terms ({field}): {reason}")


class InvalidStageError(ValidationError):
    """Value is not a known pipeline stage or offer status."""

    code: str = "INVALID_STAGE"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unknown stage or status: {value!r}")


class MissingRenegeReasonError(ValidationError):
    """A renege was recorded without a reason."""

    code: str = "MISSING_RENEGE_REASON"

    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        super().__init__(f"Candidate {candidate_id}: a renege reason is required")


class FutureSweepDateError(ValidationError):
    """A sweep was asked to run as of a date after today."""

    code: str = "FUTURE_SWEEP_DATE"

    def __init__(self, sweep: str, as_of: str, today: str):
        self.sweep = sweep
        self.as_of = as_of
        self.today = today
        super().__init__(f"{sweep}: as_of {as_of} is after today ({today})")


# Conflicts


class ConflictError(PlacementKernelError):
    """State precondition violated; needs a manual decision."""

    code: str = "CONFLICT"


class ActiveOfferExistsError(ConflictError):
    """Candidate already has an offer in extended/accepted/joined."""

    code: str = "ACTIVE_OFFER_EXISTS"

    def __init__(self, candidate_id: str, offer_id: str | None, status: str | None):
        self.candidate_id = candidate_id
        self.offer_id = offer_id
        self.status = status
        super().__init__(
            f"Candidate {candidate_id} already has an active offer "
            f"{offer_id} in status {status}"
        )


class IllegalOfferTransitionError(ConflictError):
    """Offer status change not permitted by the offer workflow."""

    code: str = "ILLEGAL_OFFER_TRANSITION"

    def __init__(self, offer_id: str, from_status: str, to_status: str):
        self.offer_id = offer_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Offer {offer_id}: cannot move from {from_status} to {to_status}"
        )


class IllegalStageTransitionError(ConflictError):
    """Stage change would leave candidate and active offer out of step."""

    code: str = "ILLEGAL_STAGE_TRANSITION"

    def __init__(self, candidate_id: str, from_stage: str, to_stage: str, reason: str):
        self.candidate_id = candidate_id
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.reason = reason
        super().__init__(
            f"Candidate {candidate_id}: cannot move from {from_stage} "
            f"to {to_stage}: {reason}"
        )


class OfferNotEditableError(ConflictError):
    """Offer terms may only be edited while the offer is extended."""

    code: str = "OFFER_NOT_EDITABLE"

    def __init__(self, offer_id: str, status: str):
        self.offer_id = offer_id
        self.status = status
        super().__init__(
            f"Offer {offer_id} is {status}; terms can only change while extended"
        )


class NoRenegeableOfferError(ConflictError):
    """Renege requested but the candidate has no accepted or joined offer."""

    code: str = "NO_RENEGEABLE_OFFER"

    def __init__(self, candidate_id: str, stage: str):
        self.candidate_id = candidate_id
        self.stage = stage
        super().__init__(
            f"Candidate {candidate_id} (stage {stage}) has no accepted or "
            "joined placement to renege"
        )


class ConcurrentModificationError(ConflictError):
    """Conditional update matched no row: another writer got there first."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str, expected: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected = expected
        super().__init__(
            f"{entity_type} {entity_id} is no longer {expected}: "
            "it was modified by another transaction"
        )


# Not found


class NotFoundError(PlacementKernelError):
    """Referenced record is missing."""

    code: str = "NOT_FOUND"


class CandidateNotFoundError(NotFoundError):
    code: str = "CANDIDATE_NOT_FOUND"

    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        super().__init__(f"Candidate not found: {candidate_id}")


class OfferNotFoundError(NotFoundError):
    code: str = "OFFER_NOT_FOUND"

    def __init__(self, offer_id: str):
        self.offer_id = offer_id
        super().__init__(f"Offer not found: {offer_id}")


class ClientNotFoundError(NotFoundError):
    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class SafetyRecordNotFoundError(NotFoundError):
    code: str = "SAFETY_RECORD_NOT_FOUND"

    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        super().__init__(f"No placement safety record for candidate {candidate_id}")


# Immutability


class ImmutabilityError(PlacementKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Timeline entries are append-only; candidates and offers are never
    hard-deleted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Audit trail


class AuditError(PlacementKernelError):
    """Base exception for audit-trail errors."""

    code: str = "AUDIT_ERROR"


class TimelineChainBrokenError(AuditError):
    """Timeline hash chain validation failed."""

    code: str = "TIMELINE_CHAIN_BROKEN"

    def __init__(self, entry_id: str, expected_hash: str, actual_hash: str):
        self.entry_id = entry_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Timeline chain broken at {entry_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )
