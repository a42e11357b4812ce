"""
auth.py — Authentication Endpoints (API Layer)

Purpose:
- Defines HTTP endpoints for sign-in, registration, password reset and logout.
- Delegates every credential check to Supabase Auth via services/auth.py.

This file should be thin — minimal logic. Token verification for protected
routes lives in core/security.py.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from supabase import Client

from wasteintel.core.errors import ValidationFailedError
from wasteintel.core.logging import get_logger
from wasteintel.core.security import get_bearer_token
from wasteintel.core.supabase import get_auth_client
from wasteintel.services import auth as auth_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)

# -----------------------------------------------------------------------------
# Request / Response Schemas
# -----------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """
    Schema for login POST.
    - `email`: User's login email.
    - `password`: Raw password supplied by the user (forwarded to Supabase).
    """
    email: str
    password: str


class RegisterRequest(BaseModel):
    full_name: str = Field("", alias="fullName")
    email: str
    password: str
    confirm_password: str = Field("", alias="confirmPassword")
    accept_terms: bool = Field(False, alias="acceptTerms")

    model_config = ConfigDict(populate_by_name=True)


class ResetPasswordRequest(BaseModel):
    email: str


class TokenResponse(BaseModel):
    """
    Response schema when a Supabase session is issued.
    - `access_token`: Supabase JWT for the Authorization header.
    - `token_type`: Typically 'bearer'.
    """
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: Optional[Dict[str, Any]] = None


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, client: Client = Depends(get_auth_client)):
    """
    POST /auth/login

    Returns:
        Supabase session tokens and the user.

    Raises:
        401: Invalid credentials
        503: Supabase Auth not configured
    """
    try:
        session = auth_service.sign_in(client, payload.email, payload.password)
    except auth_service.InvalidCredentialsError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return TokenResponse(**session)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, client: Client = Depends(get_auth_client)):
    """
    POST /auth/register

    The account must be confirmed through the email Supabase sends.
    """
    try:
        result = auth_service.sign_up(
            client,
            full_name=payload.full_name,
            email=payload.email,
            password=payload.password,
            confirm_password=payload.confirm_password,
            accept_terms=payload.accept_terms,
        )
    except ValidationFailedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except auth_service.AuthRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "data": result}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, client: Client = Depends(get_auth_client)):
    try:
        result = auth_service.send_password_reset(client, payload.email)
    except ValidationFailedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except auth_service.AuthRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "data": result}


@router.post("/logout")
def logout(token: str = Depends(get_bearer_token), client: Client = Depends(get_auth_client)):
    """
    POST /auth/logout

    Revokes the bearer token's session at Supabase; the client should also
    drop its stored tokens.
    """
    try:
        result = auth_service.sign_out(client, token)
    except auth_service.AuthRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "data": result}
