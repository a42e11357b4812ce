"""
profiles.py — User Profile Management

Purpose:
- Load (or lazily create) the caller's user_profiles row.
- Update editable profile fields.
- Upload avatars to Supabase Storage and record their public URL.
- List organizations and switch the caller's active organization.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from supabase import Client

from wasteintel.core.config import settings
from wasteintel.core.errors import NotFoundError, ValidationFailedError
from wasteintel.core.logging import get_logger
from wasteintel.core.security import AuthUser
from wasteintel.models.base import utcnow
from wasteintel.models.organization import Organization
from wasteintel.models.user_profile import ROLES, UserProfile

logger = get_logger(__name__)

DEFAULT_ROLE = "viewer"
ORGANIZATION_LIMIT = 10
EDITABLE_FIELDS = ("full_name", "company_name", "role")

# Roles a non-admin may give themselves; admin and manager are granted by an admin
SELF_ASSIGNABLE_ROLES = ("analyst", "viewer")


class AvatarUploadError(Exception):
    """Storage rejected the avatar upload."""


class RoleChangeForbiddenError(Exception):
    """The caller may not give themselves the requested role."""


def profile_dict(profile: UserProfile) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "full_name": profile.full_name,
        "avatar_url": profile.avatar_url,
        "company_id": profile.company_id,
        "company_name": profile.company_name,
        "role": profile.role,
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
        "updated_at": profile.updated_at.isoformat() if profile.updated_at else None,
    }


def get_or_create_profile(db: Session, user: AuthUser) -> UserProfile:
    profile = db.query(UserProfile).filter(UserProfile.user_id == user.id).first()
    if profile is not None:
        return profile

    profile = UserProfile(
        user_id=user.id,
        full_name=user.display_name,
        role=DEFAULT_ROLE,
        company_id=None,
        company_name=None,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info(f"Created default profile for user {user.id}")
    return profile


def update_profile(db: Session, user: AuthUser, updates: Dict[str, Any]) -> UserProfile:
    """
    Apply non-null values for full_name / company_name / role.

    Raises:
        ValidationFailedError: Unknown role or blank full name.
        RoleChangeForbiddenError: A non-admin asked for admin or manager.
    """
    profile = get_or_create_profile(db, user)
    changes = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS and v is not None}

    role = changes.get("role")
    if role is not None:
        if role not in ROLES:
            raise ValidationFailedError(f"role must be one of: {', '.join(ROLES)}")
        if role != profile.role and role not in SELF_ASSIGNABLE_ROLES and profile.role != "admin":
            raise RoleChangeForbiddenError(f"Only an admin can assign the {role} role")
    if "full_name" in changes and not changes["full_name"].strip():
        raise ValidationFailedError("Full name is required")

    for name, value in changes.items():
        setattr(profile, name, value)
    profile.updated_at = utcnow()
    db.commit()
    db.refresh(profile)
    return profile


def avatar_path(user_id: str, filename: str) -> str:
    """'<user_id>/avatar.<ext>'"""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "png"
    return f"{user_id}/avatar.{ext}"


def upload_avatar(
    db: Session,
    storage_client: Client,
    user: AuthUser,
    filename: str,
    content: bytes,
    content_type: Optional[str],
) -> str:
    """
    Upload (overwrite) the caller's avatar and store its public URL.

    Returns:
        The public avatar URL.
    """
    if not content:
        raise ValidationFailedError("No file provided")
    if not (content_type or "").startswith("image/"):
        raise ValidationFailedError("Avatar must be an image")

    path = avatar_path(user.id, filename or "")
    bucket = storage_client.storage.from_(settings.AVATAR_BUCKET)
    try:
        bucket.upload(path, content, {"content-type": content_type, "upsert": "true"})
    except Exception as e:
        logger.error(f"Avatar upload failed for {user.id}: {e}")
        raise AvatarUploadError(str(e)) from e

    avatar_url = bucket.get_public_url(path)

    profile = get_or_create_profile(db, user)
    profile.avatar_url = avatar_url
    profile.updated_at = utcnow()
    db.commit()
    return avatar_url


def organization_dict(organization: Organization) -> Dict[str, Any]:
    return {
        "id": organization.id,
        "name": organization.name,
        "logo_url": organization.logo_url,
        "subscription_tier": organization.subscription_tier,
    }


def list_organizations(db: Session) -> List[Dict[str, Any]]:
    organizations = (
        db.query(Organization)
        .order_by(Organization.name.asc())
        .limit(ORGANIZATION_LIMIT)
        .all()
    )
    return [organization_dict(o) for o in organizations]


def switch_organization(db: Session, user: AuthUser, organization_id: str) -> UserProfile:
    organization = db.get(Organization, organization_id)
    if organization is None:
        raise NotFoundError("Company not found")

    profile = get_or_create_profile(db, user)
    profile.company_id = organization.id
    profile.company_name = organization.name
    profile.updated_at = utcnow()
    db.commit()
    db.refresh(profile)
    logger.info(f"User {user.id} switched to organization {organization.name}")
    return profile
