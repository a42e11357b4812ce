"""
security.py — Authentication Utilities (Supabase JWT Verification)

Purpose:
- Validate Supabase-issued access tokens without a network round trip.
- Extract the current user from the `Authorization: Bearer <token>` header.

Key Constraints:
- Passwords never touch this service's database; Supabase Auth owns them.
- Tokens are HS256 JWTs signed with the project's JWT secret and carry
  `aud = "authenticated"`.
- Logout is handled by Supabase (see api/routes/auth.py).

This module does NOT:
- Define API routes → that lives in wasteintel/api/routes/auth.py
- Query the database.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from wasteintel.core.config import settings
from wasteintel.core.errors import ServiceUnavailableError
from wasteintel.core.logging import get_logger

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthUser:
    """Identity extracted from a verified Supabase access token."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        full_name = self.user_metadata.get("full_name")
        if full_name:
            return full_name
        if self.email:
            return self.email.split("@")[0]
        return "User"


# -----------------------------------------------------------------------------
# JWT Token Handling
# -----------------------------------------------------------------------------

def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a Supabase JWT.
    Returns the payload dict if valid, None if invalid or expired.
    """
    if not settings.SUPABASE_JWT_SECRET:
        raise ServiceUnavailableError("Authentication service not configured")
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.info("Rejected access token: %s", e)
        return None


# -----------------------------------------------------------------------------
# Current User Dependency
# -----------------------------------------------------------------------------

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    """
    Extract and return the authenticated user from the bearer token.

    Flow:
    - Read Authorization header.
    - Decode token.
    - Validate 'sub' (Supabase user id).
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or not credentials.credentials:
        raise unauthorized

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise unauthorized

    return AuthUser(
        id=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role"),
        user_metadata=payload.get("user_metadata") or {},
    )


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Raw bearer token (needed to sign the session out at Supabase)."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return credentials.credentials
