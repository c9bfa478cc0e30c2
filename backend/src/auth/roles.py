"""User roles and the admin authorization gate.

Roles (stored as TEXT on users.role):
- CUSTOMER: Default role for every signed-up user
- SELLER_PENDING: Applied to sell, awaiting verification
- SELLER: Verified seller
- ADMIN: Marketplace operator, reviews applications

Role transitions driven by seller verification:
    customer --apply--> seller_pending --approve--> seller
                                       --reject---> customer
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from domain.sellers.errors import AuthorizationError


class UserRole(str, Enum):
    """User roles. Values must match the users.role check constraint."""
    CUSTOMER = "customer"
    SELLER_PENDING = "seller_pending"
    SELLER = "seller"
    ADMIN = "admin"


# Roles allowed to read their own seller profile
SELLER_ROLES = {UserRole.SELLER, UserRole.SELLER_PENDING}


@dataclass(frozen=True)
class CallerIdentity:
    """Who is making the request.

    Attributes:
        external_id: Identity provider user ID (Clerk `sub`)
        email: Email from the token, lower-cased
        role: Role resolved from the users table
    """
    external_id: str
    email: Optional[str]
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def parse_role(value: Optional[str]) -> UserRole:
    """Map a stored role to UserRole. Unknown or missing roles are customers."""
    try:
        return UserRole(value)
    except ValueError:
        return UserRole.CUSTOMER


def require_admin(caller: CallerIdentity) -> CallerIdentity:
    """Admin authorization gate.

    Must run before any read, mutation or file stream on admin operations.

    Raises:
        AuthorizationError: If the caller is not an admin

    Examples:
        >>> require_admin(CallerIdentity("user_1", "a@b.com", UserRole.ADMIN)).is_admin
        True
    """
    if not caller.is_admin:
        raise AuthorizationError("Access denied. Admin privileges required.")
    return caller


def require_seller_role(caller: CallerIdentity) -> CallerIdentity:
    """Gate for the seller's own profile.

    Raises:
        AuthorizationError: If the caller is neither seller nor seller_pending
    """
    if caller.role not in SELLER_ROLES:
        raise AuthorizationError("Access denied. Seller privileges required.")
    return caller
