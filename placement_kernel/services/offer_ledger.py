"""
OfferLedger -- offer records and their status lifecycle.

Responsibility:
    Creates offers (capturing the client's fee at that instant), edits the
    terms of an extended offer, and moves offers through OFFER_WORKFLOW.

Architecture position:
    Kernel > Services -- flush-only; called by LifecycleOrchestrator, which
    mirrors every offer change onto the candidate's stage.

Invariants enforced:
    - One active offer (extended/accepted/joined) per candidate: checked
      before insert and backed by the partial unique index, so a racing
      second insert fails with ActiveOfferExistsError instead of slipping
      through.
    - ``revenue_percentage`` is copied from the client at creation and never
      written again.
    - offered_ctc = fixed_ctc + variable_ctc; billable_ctc = fixed_ctc.
    - Status changes follow OFFER_WORKFLOW and are conditional UPDATEs keyed
      on the prior status.
    - Terms are editable only while the offer is ``extended``.
"""

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from placement_kernel.domain.clock import Clock
from placement_kernel.domain.policy import DEFAULT_POLICY, LifecyclePolicy
from placement_kernel.domain.revenue import compensation_breakdown
from placement_kernel.domain.stages import (
    ACTIVE_OFFER_STATUSES,
    OFFER_WORKFLOW,
    OfferStatus,
)
from placement_kernel.domain.validation import (
    validate_money,
    validate_offer_date,
    validate_percentage,
)
from placement_kernel.domain.workflow import Transition
from placement_kernel.exceptions import (
    ActiveOfferExistsError,
    IllegalOfferTransitionError,
    InvalidOfferTermsError,
    OfferNotEditableError,
    OfferNotFoundError,
)
from placement_kernel.logging_config import get_logger
from placement_kernel.models.candidate import Candidate
from placement_kernel.models.client import Client
from placement_kernel.models.offer import Offer
from placement_kernel.services.base import BaseService

logger = get_logger("services.offer_ledger")


@dataclass(frozen=True)
class OfferTerms:
    """Compensation, dates and job details of a new offer."""

    fixed_ctc: Any
    variable_ctc: Any = None
    expected_joining_date: date | str | None = None
    offer_date: date | str | None = None
    offer_valid_until: date | str | None = None
    designation: str | None = None
    department: str | None = None
    work_location: str | None = None
    reporting_to: str | None = None
    notes: str | None = None


EDITABLE_FIELDS = frozenset(f.name for f in fields(OfferTerms))

_MONEY_FIELDS = ("fixed_ctc", "variable_ctc")
_DATE_FIELDS = ("expected_joining_date", "offer_date", "offer_valid_until")


class OfferLedger(BaseService[Offer]):

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        policy: LifecyclePolicy = DEFAULT_POLICY,
    ):
        super().__init__(session, clock)
        self._policy = policy

    # Reads

    def get(self, offer_id: UUID) -> Offer:
        offer = self.session.get(Offer, offer_id)
        if offer is None:
            raise OfferNotFoundError(str(offer_id))
        return offer

    def get_active_offer(self, candidate_id: UUID) -> Offer | None:
        return self.session.execute(
            select(Offer).where(
                Offer.candidate_id == candidate_id,
                Offer.status.in_([s.value for s in ACTIVE_OFFER_STATUSES]),
            )
        ).scalar_one_or_none()

    # Validation

    def _normalise(self, values: Mapping[str, Any], *, creating: bool) -> dict[str, Any]:
        unknown = set(values) - EDITABLE_FIELDS
        if unknown:
            name = sorted(unknown)[0]
            raise InvalidOfferTermsError(name, "not an offer term")

        clean: dict[str, Any] = {}
        for name, value in values.items():
            if name in _MONEY_FIELDS:
                required = name == "fixed_ctc"
                amount = validate_money(name, value, required=required)
                clean[name] = amount if amount is not None else Decimal("0")
            elif name in _DATE_FIELDS:
                required = (
                    name == "expected_joining_date"
                    and self._policy.require_expected_joining_date
                )
                clean[name] = validate_offer_date(name, value, required=required)
            else:
                clean[name] = value

        if creating:
            clean.setdefault("variable_ctc", Decimal("0"))

        offer_date = clean.get("offer_date")
        valid_until = clean.get("offer_valid_until")
        if offer_date and valid_until and valid_until < offer_date:
            raise InvalidOfferTermsError("offer_valid_until", "is before offer_date")
        return clean

    def validate_terms(self, terms: OfferTerms) -> dict[str, Any]:
        """Return the normalised column values for ``terms``."""
        raw = {f.name: getattr(terms, f.name) for f in fields(OfferTerms)}
        return self._normalise(raw, creating=True)

    # Writes

    def create(
        self,
        candidate: Candidate,
        client: Client,
        terms: OfferTerms,
        actor_id: str,
    ) -> Offer:
        """
        Persist a new ``extended`` offer for ``candidate``.

        Raises:
            InvalidOfferTermsError: Terms failed validation.
            ActiveOfferExistsError: Candidate already has an active offer.
        """
        values = self.validate_terms(terms)

        existing = self.get_active_offer(candidate.id)
        if existing is not None:
            raise ActiveOfferExistsError(str(candidate.id), str(existing.id), existing.status)

        fee = client.fee_percentage
        if fee is None:
            fee = self._policy.default_fee_percentage
        fee = validate_percentage("revenue_percentage", fee)

        breakdown = compensation_breakdown(values["fixed_ctc"], values["variable_ctc"])
        offer = Offer(
            candidate_id=candidate.id,
            client_id=client.id,
            status=OfferStatus.EXTENDED.value,
            status_changed_at=self.clock.now(),
            offered_ctc=breakdown.offered_ctc,
            billable_ctc=breakdown.billable_ctc,
            revenue_percentage=fee,
            created_by_id=actor_id,
            **values,
        )

        try:
            with self.session.begin_nested():
                self.session.add(offer)
        except IntegrityError:
            logger.warning(
                "active_offer_race_lost",
                extra={"candidate_id": str(candidate.id)},
            )
            raise ActiveOfferExistsError(str(candidate.id), None, None) from None

        logger.info(
            "offer_created",
            extra={
                "offer_id": str(offer.id),
                "fixed_ctc": breakdown.fixed_ctc,
                "revenue_percentage": fee,
            },
        )
        return offer

    def update_terms(
        self,
        offer: Offer,
        changes: Mapping[str, Any],
        actor_id: str,
    ) -> dict[str, tuple[Any, Any]]:
        """
        Edit an extended offer in place.

        Returns:
            ``{field: (old, new)}`` for every field that actually changed,
            including recomputed offered/billable CTC.

        Raises:
            OfferNotEditableError: Offer is no longer ``extended``.
        """
        if offer.status != OfferStatus.EXTENDED.value:
            raise OfferNotEditableError(str(offer.id), offer.status)

        clean = self._normalise(changes, creating=False)
        merged_until = clean.get("offer_valid_until", offer.offer_valid_until)
        merged_date = clean.get("offer_date", offer.offer_date)
        if merged_date and merged_until and merged_until < merged_date:
            raise InvalidOfferTermsError("offer_valid_until", "is before offer_date")

        if "fixed_ctc" in clean or "variable_ctc" in clean:
            breakdown = compensation_breakdown(
                clean.get("fixed_ctc", offer.fixed_ctc),
                clean.get("variable_ctc", offer.variable_ctc),
            )
            clean["offered_ctc"] = breakdown.offered_ctc
            clean["billable_ctc"] = breakdown.billable_ctc

        diff = {
            name: (getattr(offer, name), value)
            for name, value in clean.items()
            if getattr(offer, name) != value
        }
        if not diff:
            return {}

        values = {name: new for name, (_, new) in diff.items()}
        values["updated_by_id"] = actor_id
        self._conditional_update(offer, Offer.status, OfferStatus.EXTENDED.value, values)

        logger.info("offer_terms_updated", extra={"fields": sorted(diff)})
        return diff

    def set_status(
        self,
        offer: Offer,
        new_status: OfferStatus,
        actor_id: str,
        **values: Any,
    ) -> Transition:
        """
        Move ``offer`` to ``new_status`` along OFFER_WORKFLOW.

        Raises:
            IllegalOfferTransitionError: No such transition.
            ConcurrentModificationError: Offer left its prior status first.
        """
        current = offer.status
        transition = OFFER_WORKFLOW.find(current, new_status.value)
        if transition is None:
            raise IllegalOfferTransitionError(str(offer.id), current, new_status.value)

        self._conditional_update(
            offer,
            Offer.status,
            current,
            {
                "status": new_status.value,
                "status_changed_at": self.clock.now(),
                "updated_by_id": actor_id,
                **values,
            },
        )
        logger.info(
            "offer_status_changed",
            extra={
                "offer_id": str(offer.id),
                "from_status": current,
                "to_status": new_status.value,
            },
        )
        return transition

    def expirable(self, as_of: date) -> list[Offer]:
        """Extended offers whose validity ended before ``as_of``."""
        return list(
            self.session.execute(
                select(Offer)
                .where(
                    Offer.status == OfferStatus.EXTENDED.value,
                    Offer.offer_valid_until.is_not(None),
                    Offer.offer_valid_until < as_of,
                )
                .order_by(Offer.offer_valid_until)
            ).scalars()
        )
