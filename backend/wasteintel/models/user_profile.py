"""
user_profile.py — ORM Model for Dashboard User Profiles

Purpose:
- Application-side profile for a Supabase Auth user.
- Authentication fields (email, password hash) live in Supabase's auth
  schema; this row only stores display data and the active organization.

Used by:
- api/routes/users.py (profile read / update / avatar / switch organization)
"""

from sqlalchemy import Column, DateTime, ForeignKey, String

from wasteintel.models.base import Base, new_id, utcnow

ROLES = ("admin", "manager", "analyst", "viewer")


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(String, primary_key=True, default=new_id)

    # Supabase auth.users id
    user_id = Column(String, unique=True, index=True, nullable=False)

    full_name = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)

    # Active organization
    company_id = Column(String, ForeignKey("organizations.id"), nullable=True)
    company_name = Column(String, nullable=True)

    role = Column(String, nullable=False, default="viewer")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<UserProfile {self.user_id} {self.role}>"
