"""FastAPI dependencies for authentication and authorization.

This module provides dependency injection functions for:
- Extracting and validating the Clerk session token from requests
- Resolving the caller's role from the users table
- Enforcing the admin gate

Usage:
    @router.get("/application/status")
    def status(caller: CallerIdentity = Depends(get_current_caller)):
        ...

    @router.get("/verification/pending")
    def pending(admin: CallerIdentity = Depends(get_current_admin)):
        ...
"""

import logging
from typing import Annotated, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from domain.sellers.errors import AuthenticationError
from infrastructure.repositories.seller_repository import UserRepository
from .jwt import decode_token
from .roles import CallerIdentity, UserRole, parse_role, require_admin

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our own 401 body
security = HTTPBearer(auto_error=False)


def resolve_caller(payload: dict, db: Session) -> CallerIdentity:
    """Build the caller identity from decoded claims.

    The role always comes from the users table, never from the token.
    Callers without a users row are treated as customers.
    """
    external_id = payload.get("sub")
    if not external_id:
        raise AuthenticationError("Invalid token: missing user ID claim")

    user = UserRepository(db).get_by_clerk_id(external_id)
    email = payload.get("email") or (user.email if user else None)

    return CallerIdentity(
        external_id=external_id,
        email=email.strip().lower() if email else None,
        role=parse_role(user.role) if user else UserRole.CUSTOMER,
    )


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> CallerIdentity:
    """Extract and validate the Bearer token, returning the caller.

    Raises:
        AuthenticationError: If token is missing, invalid or expired
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(str(e))
    except ValueError as e:
        # Missing CLERK_JWT_KEY: nothing can be verified
        logger.error(f"Token verification is not configured: {e}")
        raise AuthenticationError("Token verification is not configured")

    return resolve_caller(payload, db)


def get_current_admin(caller: CallerIdentity = Depends(get_current_caller)) -> CallerIdentity:
    """Convenience dependency for admin-only endpoints.

    Raises:
        AuthorizationError: If the caller is not an admin
    """
    return require_admin(caller)


# Type aliases for dependency injection
CurrentCaller = Annotated[CallerIdentity, Depends(get_current_caller)]
CurrentAdmin = Annotated[CallerIdentity, Depends(get_current_admin)]
