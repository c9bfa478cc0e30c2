"""Sellers domain module - verification state machine and error taxonomy"""

from .status import (
    SellerStatus,
    VerificationActor,
    VerificationFields,
    StateTransitionError,
    ALLOWED_TRANSITIONS,
    ROLE_FOR_STATUS,
    DEFAULT_REJECTION_REASON,
    parse_status,
    can_transition,
    validate_transition,
    get_allowed_transitions,
    apply_transition,
)
from .errors import (
    SellerOnboardingError,
    ValidationError,
    ConflictError,
    NotFoundError,
    AuthenticationError,
    AuthorizationError,
    StorageError,
    DatabaseError,
)

__all__ = [
    "SellerStatus",
    "VerificationActor",
    "VerificationFields",
    "StateTransitionError",
    "ALLOWED_TRANSITIONS",
    "ROLE_FOR_STATUS",
    "DEFAULT_REJECTION_REASON",
    "parse_status",
    "can_transition",
    "validate_transition",
    "get_allowed_transitions",
    "apply_transition",
    "SellerOnboardingError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "AuthenticationError",
    "AuthorizationError",
    "StorageError",
    "DatabaseError",
]
