"""SellerStatus state machine for the verification lifecycle.

State flow:
    pending -> approved | rejected   (admin decision)
    approved -> rejected             (admin revokes)
    rejected -> pending              (seller re-applies)

Admins may move a seller between any two statuses; re-asserting the current
status is idempotent.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


class SellerStatus(str, Enum):
    """Seller application status. Values are stored as TEXT."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationActor(str, Enum):
    """Who triggers a transition."""
    ADMIN = "admin"
    SELLER = "seller"


# (from, to) -> actor allowed to trigger it. Same-status re-asserts are
# handled by can_transition, not listed here.
ALLOWED_TRANSITIONS: Dict[SellerStatus, Dict[SellerStatus, List[VerificationActor]]] = {
    SellerStatus.PENDING: {
        SellerStatus.APPROVED: [VerificationActor.ADMIN],
        SellerStatus.REJECTED: [VerificationActor.ADMIN],
    },
    SellerStatus.APPROVED: {
        SellerStatus.REJECTED: [VerificationActor.ADMIN],
        SellerStatus.PENDING: [VerificationActor.ADMIN],
    },
    SellerStatus.REJECTED: {
        SellerStatus.PENDING: [VerificationActor.SELLER, VerificationActor.ADMIN],
        SellerStatus.APPROVED: [VerificationActor.ADMIN],
    },
}

# Linked user role after the seller enters a status
ROLE_FOR_STATUS: Dict[SellerStatus, str] = {
    SellerStatus.PENDING: "seller_pending",
    SellerStatus.APPROVED: "seller",
    SellerStatus.REJECTED: "customer",
}

# Stored when an admin rejects without notes, so a rejected row always
# carries a reason.
DEFAULT_REJECTION_REASON = "No reason provided"


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


@dataclass(frozen=True)
class VerificationFields:
    """Seller columns written by a transition."""
    status: SellerStatus
    rejection_reason: Optional[str]
    verification_date: Optional[datetime]


def parse_status(value: str) -> SellerStatus:
    """Parse a raw status string.

    Raises:
        ValueError: If value is not pending/approved/rejected
    """
    try:
        return SellerStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in SellerStatus)
        raise ValueError(f"Invalid status. Must be one of: {valid}")


def can_transition(
    from_status: SellerStatus,
    to_status: SellerStatus,
    actor: VerificationActor = VerificationActor.ADMIN,
) -> bool:
    """Check if a transition is allowed for the given actor.

    Example:
        >>> can_transition(SellerStatus.PENDING, SellerStatus.APPROVED)
        True
        >>> can_transition(SellerStatus.PENDING, SellerStatus.APPROVED, VerificationActor.SELLER)
        False
    """
    if from_status == to_status:
        return actor == VerificationActor.ADMIN
    allowed_actors = ALLOWED_TRANSITIONS.get(from_status, {}).get(to_status, [])
    return actor in allowed_actors


def validate_transition(
    from_status: SellerStatus,
    to_status: SellerStatus,
    actor: VerificationActor = VerificationActor.ADMIN,
) -> None:
    """Raise StateTransitionError if the transition is not allowed."""
    if not can_transition(from_status, to_status, actor):
        raise StateTransitionError(
            f"Invalid transition: {from_status.value} -> {to_status.value} "
            f"(actor: {actor.value})"
        )


def get_allowed_transitions(
    from_status: SellerStatus,
    actor: VerificationActor = VerificationActor.ADMIN,
) -> List[SellerStatus]:
    """List target statuses reachable from from_status by actor."""
    return [s for s in SellerStatus if can_transition(from_status, s, actor)]


def apply_transition(
    current: VerificationFields,
    to_status: SellerStatus,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> VerificationFields:
    """Compute the verification columns after moving to to_status.

    Keeps the invariants:
    - approved: verification_date set, rejection_reason null
    - rejected: rejection_reason = notes (or DEFAULT_REJECTION_REASON),
      verification_date null
    - pending: both null

    Re-approving an already approved seller keeps the original
    verification_date. Rejection without notes is accepted; re-rejecting
    without notes keeps the earlier reason.
    """
    now = now or datetime.now(timezone.utc)

    if to_status == SellerStatus.APPROVED:
        keep_date = current.status == SellerStatus.APPROVED and current.verification_date is not None
        return VerificationFields(
            status=to_status,
            rejection_reason=None,
            verification_date=current.verification_date if keep_date else now,
        )

    if to_status == SellerStatus.REJECTED:
        reason = notes.strip() if notes and notes.strip() else None
        if reason is None and current.status == SellerStatus.REJECTED:
            reason = current.rejection_reason
        return VerificationFields(
            status=to_status,
            rejection_reason=reason or DEFAULT_REJECTION_REASON,
            verification_date=None,
        )

    return VerificationFields(status=to_status, rejection_reason=None, verification_date=None)
