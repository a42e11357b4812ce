"""
auth.py — Supabase Auth Delegation

Purpose:
- Sign users in / up, send password-reset emails and revoke sessions by
  calling Supabase Auth through supabase-py.
- Validate registration input before it reaches Supabase.

Passwords are never stored or hashed here.

This module does NOT:
- Verify bearer tokens (see core/security.py).
- Manage user_profiles rows (see services/profiles.py).
"""

import re
from typing import Any, Dict, List, Optional

from supabase import AuthError, Client

from wasteintel.core.config import settings
from wasteintel.core.errors import ValidationFailedError
from wasteintel.core.logging import get_logger

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
PASSWORD_MIN_LENGTH = 8


class InvalidCredentialsError(Exception):
    """Supabase rejected the email / password pair."""


class AuthRequestError(Exception):
    """Supabase rejected a sign-up, reset or sign-out request."""


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------

def registration_errors(
    full_name: str,
    email: str,
    password: str,
    confirm_password: str,
    accept_terms: bool,
) -> List[str]:
    """Return human-readable problems with a registration form (empty if valid)."""
    errors = []
    if not (full_name or "").strip():
        errors.append("Full name is required")
    if not email:
        errors.append("Email is required")
    elif not EMAIL_RE.search(email):
        errors.append("Please enter a valid email address")

    if not password:
        errors.append("Password is required")
    elif len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    elif not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)):
        errors.append(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )

    if not confirm_password:
        errors.append("Please confirm your password")
    elif password != confirm_password:
        errors.append("Passwords do not match")

    if not accept_terms:
        errors.append("You must accept the terms of service")
    return errors


# -----------------------------------------------------------------------------
# Supabase calls
# -----------------------------------------------------------------------------

def _user_dict(user: Any) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": user.user_metadata or {},
    }


def sign_in(client: Client, email: str, password: str) -> Dict[str, Any]:
    """
    Password sign-in.

    Raises:
        InvalidCredentialsError: If Supabase rejects the credentials.
    """
    try:
        response = client.auth.sign_in_with_password({"email": email, "password": password})
    except AuthError as e:
        logger.info(f"Sign-in rejected for {email}: {e}")
        raise InvalidCredentialsError(str(e)) from e

    session = response.session
    if session is None:
        raise InvalidCredentialsError("Invalid login credentials")

    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "token_type": session.token_type or "bearer",
        "expires_in": session.expires_in,
        "user": _user_dict(response.user),
    }


def sign_up(
    client: Client,
    full_name: str,
    email: str,
    password: str,
    confirm_password: str,
    accept_terms: bool,
) -> Dict[str, Any]:
    errors = registration_errors(full_name, email, password, confirm_password, accept_terms)
    if errors:
        raise ValidationFailedError(errors[0])

    try:
        response = client.auth.sign_up({
            "email": email,
            "password": password,
            "options": {"data": {"full_name": full_name.strip()}},
        })
    except AuthError as e:
        logger.warning(f"Sign-up failed for {email}: {e}")
        raise AuthRequestError(str(e)) from e

    logger.info(f"Registered user {email}")
    return {
        "user": _user_dict(response.user),
        "message": "Account created. Please check your email to verify your account.",
    }


def send_password_reset(client: Client, email: str) -> Dict[str, Any]:
    if not email or not EMAIL_RE.search(email):
        raise ValidationFailedError("Please enter a valid email address")
    try:
        client.auth.reset_password_for_email(email, {"redirect_to": settings.AUTH_REDIRECT_URL})
    except AuthError as e:
        logger.warning(f"Password reset failed for {email}: {e}")
        raise AuthRequestError(str(e)) from e
    return {"message": "Password reset email sent. Please check your email for instructions."}


def sign_out(client: Client, access_token: str) -> Dict[str, Any]:
    """Revoke the session belonging to `access_token`."""
    try:
        client.auth.admin.sign_out(access_token)
    except AuthError as e:
        logger.warning(f"Sign-out failed: {e}")
        raise AuthRequestError(str(e)) from e
    return {"message": "You have been successfully signed out."}
