"""Clerk session token validation

Clerk issues short-lived RS256 session tokens. The frontend sends them in the
`Authorization: Bearer` header; the backend verifies them against the
instance's PEM public key (Clerk dashboard > API Keys > JWT public key).

Claims used:
- sub: Clerk user ID, e.g. "user_2aBcDeFgHiJ"
- email: Primary email address. Clerk does not include it by default; the
  session token template must add `"email": "{{user.primary_email_address}}"`
- exp / nbf / iat: Standard lifetime claims (verified by PyJWT)
- iss: Frontend API URL, checked when CLERK_ISSUER is set

Example Token Payload:
{
  "sub": "user_2aBcDeFgHiJ",
  "email": "owner@acme-supplies.com",
  "iss": "https://clerk.acme.com",
  "iat": 1704368400,
  "nbf": 1704368395,
  "exp": 1704368460
}
"""

from typing import Any, Dict, Optional

import jwt

from config import get_settings

ALGORITHMS = ["RS256"]

# Tolerated clock drift between Clerk and this server (seconds)
LEEWAY_SECONDS = 5


def _get_public_key() -> str:
    """Get CLERK_JWT_KEY from settings.

    Raises:
        ValueError: If CLERK_JWT_KEY is not set
    """
    key = get_settings().CLERK_JWT_KEY
    if not key:
        raise ValueError("CLERK_JWT_KEY environment variable is not set")
    # .env files often carry the PEM with literal \n sequences
    return key.replace("\\n", "\n")


def decode_token(
    token: str,
    public_key: Optional[str] = None,
    issuer: Optional[str] = None,
) -> Dict[str, Any]:
    """Decode and validate a Clerk session token.

    Args:
        token: JWT string from the Authorization header
        public_key: PEM public key (default: CLERK_JWT_KEY)
        issuer: Expected `iss` (default: CLERK_ISSUER, unchecked when unset)

    Returns:
        dict: Decoded token payload

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If CLERK_JWT_KEY is not set
    """
    key = public_key or _get_public_key()
    issuer = issuer or get_settings().CLERK_ISSUER

    options = {"require": ["sub", "exp"]}
    kwargs: Dict[str, Any] = {"algorithms": ALGORITHMS, "leeway": LEEWAY_SECONDS, "options": options}
    if issuer:
        kwargs["issuer"] = issuer

    try:
        return jwt.decode(token, key, **kwargs)
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
