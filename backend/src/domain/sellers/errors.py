"""Error taxonomy for seller onboarding.

Every error carries an HTTP-equivalent status code so the API layer can map
it without knowing about individual subclasses.
"""

from typing import Any, Dict, List, Optional


class SellerOnboardingError(Exception):
    """Base exception for the seller onboarding domain."""

    status_code: int = 500
    error_code: str = "seller_onboarding_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": False,
            "error": self.error_code,
            "message": self.message,
        }
        body.update(self.details)
        return body


class ValidationError(SellerOnboardingError):
    """Bad input: file type/size, missing application fields, unknown status.

    Never retried automatically; the caller must correct the input.
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message, {"errors": errors} if errors else None)
        self.errors = errors or []


class ConflictError(SellerOnboardingError):
    """Request conflicts with the current state of the seller row.

    Raised on re-application while an application is pending/approved and on
    stale concurrent writes. `current_status` lets the caller decide what to
    do next.
    """

    status_code = 409
    error_code = "conflict"

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message, {"status": current_status} if current_status else None)
        self.current_status = current_status


class NotFoundError(SellerOnboardingError):
    status_code = 404
    error_code = "not_found"


class AuthenticationError(SellerOnboardingError):
    """Missing or invalid identity token."""

    status_code = 401
    error_code = "unauthenticated"


class AuthorizationError(SellerOnboardingError):
    """Caller role insufficient. Raised before any side effect."""

    status_code = 403
    error_code = "forbidden"


class StorageError(SellerOnboardingError):
    """Object store or legacy filesystem failure."""

    status_code = 502
    error_code = "storage_error"


class DatabaseError(SellerOnboardingError):
    status_code = 500
    error_code = "database_error"
