"""
users.py — Current-User Profile Endpoints

Endpoints (all require a Supabase bearer token):
- GET   /users/me                 → profile (created as a viewer on first access)
- PATCH /users/me                 → update full_name / company_name / role
                                     (admin and manager only assignable by an admin)
- POST  /users/me/avatar          → upload avatar to storage, store public URL
- GET   /users/me/companies       → organizations the user can switch to
- POST  /users/me/switch-company  → set the active organization
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session
from supabase import Client

from wasteintel.core.config import settings
from wasteintel.core.database import get_db
from wasteintel.core.errors import NotFoundError, ServiceUnavailableError, ValidationFailedError
from wasteintel.core.logging import get_logger
from wasteintel.core.security import AuthUser, get_current_user
from wasteintel.core.supabase import get_admin_client
from wasteintel.services import profiles

logger = get_logger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"]
)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    role: Optional[str] = None


class SwitchCompanyRequest(BaseModel):
    company_id: str


@router.get("/me")
def get_my_profile(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        profile = profiles.get_or_create_profile(db, user)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error loading profile for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load profile")
    return {"success": True, "data": profiles.profile_dict(profile)}


@router.patch("/me")
def update_my_profile(
    payload: ProfileUpdate,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        profile = profiles.update_profile(db, user, payload.model_dump())
    except ValidationFailedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except profiles.RoleChangeForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating profile for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")
    return {"success": True, "data": profiles.profile_dict(profile)}


@router.post("/me/avatar")
async def upload_my_avatar(
    file: Optional[UploadFile] = File(None),
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: Client = Depends(get_admin_client),
):
    """
    POST /users/me/avatar

    Stored at <AVATAR_BUCKET>/<user_id>/avatar.<ext>, overwriting any
    previous avatar.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    content = await file.read()
    if len(content) > settings.AVATAR_MAX_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Avatar exceeds the maximum size of {settings.AVATAR_MAX_BYTES // (1024 * 1024)}MB",
        )

    try:
        url = profiles.upload_avatar(db, storage, user, file.filename, content, file.content_type)
    except ValidationFailedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except profiles.AvatarUploadError as e:
        raise HTTPException(status_code=502, detail=f"Avatar upload failed: {e}")
    return {"success": True, "data": {"url": url}}


@router.get("/me/companies")
def list_my_companies(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        organizations = profiles.list_organizations(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error loading organizations for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load companies")
    return {"success": True, "data": organizations}


@router.post("/me/switch-company")
def switch_company(
    payload: SwitchCompanyRequest,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        profile = profiles.switch_organization(db, user, payload.company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error switching company for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to switch company")
    return {"success": True, "data": profiles.profile_dict(profile)}
