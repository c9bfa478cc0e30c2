"""Unit tests for the seller verification state machine"""

from datetime import datetime, timedelta, timezone

import pytest

from domain.sellers import (
    DEFAULT_REJECTION_REASON,
    ROLE_FOR_STATUS,
    SellerStatus,
    StateTransitionError,
    VerificationActor,
    VerificationFields,
    apply_transition,
    can_transition,
    get_allowed_transitions,
    parse_status,
    validate_transition,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def fields(status, rejection_reason=None, verification_date=None):
    return VerificationFields(
        status=status,
        rejection_reason=rejection_reason,
        verification_date=verification_date,
    )


def assert_invariants(result: VerificationFields):
    if result.status == SellerStatus.APPROVED:
        assert result.verification_date is not None
        assert result.rejection_reason is None
    elif result.status == SellerStatus.REJECTED:
        assert result.rejection_reason
        assert result.verification_date is None
    else:
        assert result.verification_date is None
        assert result.rejection_reason is None


class TestParseStatus:

    @pytest.mark.parametrize("value", ["pending", "approved", "rejected"])
    def test_valid_values(self, value):
        assert parse_status(value).value == value

    @pytest.mark.parametrize("value", ["APPROVED", "verified", "all", ""])
    def test_invalid_values(self, value):
        with pytest.raises(ValueError, match="Invalid status"):
            parse_status(value)


class TestTransitions:
    """Admins can move between any statuses; sellers can only re-apply"""

    @pytest.mark.parametrize("from_status", list(SellerStatus))
    @pytest.mark.parametrize("to_status", list(SellerStatus))
    def test_admin_can_reach_every_status(self, from_status, to_status):
        assert can_transition(from_status, to_status, VerificationActor.ADMIN) is True

    def test_seller_can_only_reapply_after_rejection(self):
        assert get_allowed_transitions(SellerStatus.REJECTED, VerificationActor.SELLER) == [SellerStatus.PENDING]
        assert get_allowed_transitions(SellerStatus.PENDING, VerificationActor.SELLER) == []
        assert get_allowed_transitions(SellerStatus.APPROVED, VerificationActor.SELLER) == []

    def test_validate_transition_raises_for_seller_approval(self):
        with pytest.raises(StateTransitionError, match="pending -> approved"):
            validate_transition(SellerStatus.PENDING, SellerStatus.APPROVED, VerificationActor.SELLER)

    def test_roles_for_status(self):
        assert ROLE_FOR_STATUS[SellerStatus.APPROVED] == "seller"
        assert ROLE_FOR_STATUS[SellerStatus.REJECTED] == "customer"
        assert ROLE_FOR_STATUS[SellerStatus.PENDING] == "seller_pending"


class TestApplyTransition:

    def test_approve_sets_verification_date(self):
        result = apply_transition(fields(SellerStatus.PENDING), SellerStatus.APPROVED, now=NOW)
        assert result == fields(SellerStatus.APPROVED, verification_date=NOW)

    def test_approve_ignores_notes(self):
        result = apply_transition(fields(SellerStatus.PENDING), SellerStatus.APPROVED, notes="looks good", now=NOW)
        assert result.rejection_reason is None

    def test_reapprove_keeps_original_date(self):
        earlier = NOW - timedelta(days=30)
        current = fields(SellerStatus.APPROVED, verification_date=earlier)
        result = apply_transition(current, SellerStatus.APPROVED, now=NOW)
        assert result.verification_date == earlier

    def test_reject_records_notes(self):
        result = apply_transition(fields(SellerStatus.PENDING), SellerStatus.REJECTED, notes="missing tax id", now=NOW)
        assert result == fields(SellerStatus.REJECTED, rejection_reason="missing tax id")

    def test_reject_without_notes_uses_default_reason(self):
        result = apply_transition(fields(SellerStatus.PENDING), SellerStatus.REJECTED, notes="   ", now=NOW)
        assert result.rejection_reason == DEFAULT_REJECTION_REASON

    def test_rereject_without_notes_keeps_previous_reason(self):
        current = fields(SellerStatus.REJECTED, rejection_reason="blurry permit")
        result = apply_transition(current, SellerStatus.REJECTED, now=NOW)
        assert result.rejection_reason == "blurry permit"

    def test_revoke_approval_clears_date(self):
        current = fields(SellerStatus.APPROVED, verification_date=NOW)
        result = apply_transition(current, SellerStatus.REJECTED, notes="fraud report", now=NOW)
        assert result.verification_date is None

    def test_reset_to_pending_clears_everything(self):
        current = fields(SellerStatus.REJECTED, rejection_reason="missing tax id")
        result = apply_transition(current, SellerStatus.PENDING, now=NOW)
        assert result == fields(SellerStatus.PENDING)

    @pytest.mark.parametrize("start", [
        fields(SellerStatus.PENDING),
        fields(SellerStatus.APPROVED, verification_date=NOW),
        fields(SellerStatus.REJECTED, rejection_reason="missing tax id"),
    ])
    @pytest.mark.parametrize("to_status", list(SellerStatus))
    @pytest.mark.parametrize("notes", [None, "", "incomplete documents"])
    def test_invariants_hold_after_every_transition(self, start, to_status, notes):
        assert_invariants(apply_transition(start, to_status, notes=notes, now=NOW))
