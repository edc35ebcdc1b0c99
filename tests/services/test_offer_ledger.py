"""
Offer Ledger: creation, term edits, status changes and expiry.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from placement_kernel.domain.policy import LifecyclePolicy
from placement_kernel.exceptions import (
    ActiveOfferExistsError,
    FutureSweepDateError,
    IllegalOfferTransitionError,
    InvalidOfferTermsError,
    OfferNotEditableError,
    OfferNotFoundError,
)
from placement_kernel.selectors.timeline_selector import TimelineSelector
from placement_kernel.services.lifecycle_orchestrator import LifecycleOrchestrator
from tests.factories import TEST_TODAY, default_terms


class TestCreateOffer:

    def test_extends_offer_and_moves_stage(self, session, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        outcome = orchestrator.create_offer(candidate.id, default_terms(), actor)

        offer = outcome.offer
        assert offer.status == "extended"
        assert offer.offered_ctc == Decimal("1200000")
        assert offer.billable_ctc == Decimal("1000000")
        assert offer.revenue_percentage == Decimal("8.33")
        assert candidate.current_stage == "offer_extended"
        assert candidate.date_offer_extended is not None
        assert candidate.offered_ctc == Decimal("1200000")
        assert candidate.billable_ctc == Decimal("1000000")
        assert TimelineSelector(session).for_candidate(candidate.id).last.activity_type == "offer_created"

    def test_variable_defaults_to_zero(self, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        offer = orchestrator.create_offer(
            candidate.id, default_terms(variable_ctc=None), actor
        ).offer
        assert offer.variable_ctc == Decimal("0")
        assert offer.offered_ctc == offer.fixed_ctc

    def test_second_active_offer_refused(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        with pytest.raises(ActiveOfferExistsError) as exc_info:
            orchestrator.create_offer(candidate.id, default_terms(), actor)
        assert exc_info.value.offer_id == str(offer.id)

    def test_new_offer_after_rejection(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.update_offer_status(offer.id, "rejected", actor, reason="Counter offer")
        assert offer.rejection_reason == "Counter offer"

        second = orchestrator.create_offer(
            candidate.id, default_terms(fixed_ctc=Decimal("1100000")), actor
        ).offer
        assert second.id != offer.id
        assert candidate.current_stage == "offer_extended"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"fixed_ctc": Decimal("-1")},
            {"fixed_ctc": None},
            {"fixed_ctc": "abc"},
            {"variable_ctc": Decimal("-5")},
            {"offer_valid_until": date(2024, 1, 1)},
            {"expected_joining_date": None},
        ],
    )
    def test_invalid_terms(self, session, orchestrator, create_candidate, actor, overrides):
        candidate = create_candidate()
        with pytest.raises(InvalidOfferTermsError):
            orchestrator.create_offer(candidate.id, default_terms(**overrides), actor)
        assert candidate.current_stage == "sourced"

    def test_expected_joining_date_optional_by_policy(
        self, session, deterministic_clock, create_candidate, actor
    ):
        relaxed = LifecycleOrchestrator(
            session, deterministic_clock, LifecyclePolicy(require_expected_joining_date=False)
        )
        candidate = create_candidate()
        offer = relaxed.create_offer(
            candidate.id, default_terms(expected_joining_date=None), actor
        ).offer
        assert offer.expected_joining_date is None


class TestUpdateOfferTerms:

    def test_recomputes_and_mirrors(self, session, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()

        orchestrator.update_offer_terms(
            offer.id, {"fixed_ctc": "1500000", "variable_ctc": "0"}, actor
        )

        assert offer.offered_ctc == Decimal("1500000")
        assert offer.billable_ctc == Decimal("1500000")
        assert candidate.billable_ctc == Decimal("1500000")
        last = TimelineSelector(session).for_candidate(candidate.id).last
        assert last.activity_type == "offer_updated"
        assert last.payload["new"]["fixed_ctc"] == "1500000"

    def test_fee_is_not_editable(self, orchestrator, offered_candidate, actor):
        _, offer = offered_candidate()
        with pytest.raises(InvalidOfferTermsError):
            orchestrator.update_offer_terms(offer.id, {"revenue_percentage": "12"}, actor)

    def test_unchanged_terms_write_nothing(self, session, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        before = len(TimelineSelector(session).for_candidate(candidate.id).entries)

        orchestrator.update_offer_terms(offer.id, {"designation": offer.designation}, actor)

        assert len(TimelineSelector(session).for_candidate(candidate.id).entries) == before

    def test_not_editable_after_accept(self, orchestrator, offered_candidate, actor):
        _, offer = offered_candidate()
        orchestrator.update_offer_status(offer.id, "accepted", actor)
        with pytest.raises(OfferNotEditableError):
            orchestrator.update_offer_terms(offer.id, {"designation": "Lead"}, actor)

    def test_valid_until_checked_against_stored_offer_date(self, orchestrator, offered_candidate, actor):
        _, offer = offered_candidate()
        with pytest.raises(InvalidOfferTermsError):
            orchestrator.update_offer_terms(offer.id, {"offer_valid_until": "2024-01-15"}, actor)

    def test_unknown_offer(self, orchestrator, actor):
        with pytest.raises(OfferNotFoundError):
            orchestrator.update_offer_terms(uuid4(), {"designation": "Lead"}, actor)


class TestOfferStatus:

    def test_accept_drives_stage(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        outcome = orchestrator.update_offer_status(offer.id, "accepted", actor)
        assert outcome.previous_status.value == "extended"
        assert candidate.current_stage == "offer_accepted"

    def test_same_status_is_noop(self, session, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        before = len(TimelineSelector(session).for_candidate(candidate.id).entries)
        orchestrator.update_offer_status(offer.id, "extended", actor)
        assert len(TimelineSelector(session).for_candidate(candidate.id).entries) == before

    def test_extended_cannot_join_directly_through_status(self, orchestrator, offered_candidate, actor):
        _, offer = offered_candidate()
        with pytest.raises(IllegalOfferTransitionError):
            orchestrator.update_offer_status(offer.id, "joined", actor, joining_date="2024-03-15")

    def test_accepted_can_be_rejected(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.update_offer_status(offer.id, "accepted", actor)
        orchestrator.update_offer_status(offer.id, "rejected", actor)
        assert candidate.current_stage == "rejected"

    def test_terminal_status_is_final(self, orchestrator, offered_candidate, actor):
        _, offer = offered_candidate()
        orchestrator.update_offer_status(offer.id, "rejected", actor)
        with pytest.raises(IllegalOfferTransitionError):
            orchestrator.update_offer_status(offer.id, "accepted", actor)


class TestExpireOffers:

    def test_expires_past_validity_only(self, session, orchestrator, create_candidate, actor):
        stale = create_candidate("Stale Offer")
        fresh = create_candidate("Fresh Offer")
        stale_offer = orchestrator.create_offer(
            stale.id, default_terms(offer_valid_until=date(2024, 3, 10)), actor
        ).offer
        fresh_offer = orchestrator.create_offer(
            fresh.id, default_terms(offer_valid_until=date(2024, 3, 15)), actor
        ).offer

        outcome = orchestrator.expire_offers(actor)

        assert outcome.affected == (stale_offer.id,)
        assert stale_offer.status == "expired"
        assert fresh_offer.status == "extended"
        assert stale.current_stage == "offer_extended"
        assert TimelineSelector(session).for_candidate(stale.id).last.activity_type == "offer_expired"

    def test_new_offer_allowed_after_expiry(self, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        orchestrator.create_offer(
            candidate.id, default_terms(offer_valid_until=date(2024, 3, 1)), actor
        )
        orchestrator.expire_offers(actor)

        outcome = orchestrator.create_offer(candidate.id, default_terms(), actor)
        assert outcome.offer.status == "extended"
        assert candidate.current_stage == "offer_extended"

    def test_as_of_replays_an_earlier_day(self, orchestrator, offered_candidate, actor):
        _, offer = offered_candidate(offer_valid_until=date(2024, 3, 10))
        assert orchestrator.expire_offers(actor, as_of=date(2024, 3, 10)).count == 0
        assert orchestrator.expire_offers(actor, as_of=date(2024, 3, 11)).count == 1
        assert offer.status == "expired"

    def test_future_as_of_refused(self, session, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate(offer_valid_until=TEST_TODAY + timedelta(days=30))

        with pytest.raises(FutureSweepDateError) as exc_info:
            orchestrator.expire_offers(actor, as_of=TEST_TODAY + timedelta(days=60))

        assert exc_info.value.code == "FUTURE_SWEEP_DATE"
        session.refresh(offer)
        assert offer.status == "extended"
        assert candidate.current_stage == "offer_extended"
