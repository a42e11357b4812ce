"""
organization.py — ORM Model for Tenant Organizations

Purpose:
- Represent the account a dashboard user works under (a consultancy,
  recycler, or corporate sustainability team).
- Users switch between organizations; the active one is copied onto their
  profile (user_profiles.company_id / company_name).

Not to be confused with `companies`, which are the disclosing companies
whose waste data is analysed.
"""

from sqlalchemy import Column, DateTime, String

from wasteintel.models.base import Base, new_id, utcnow

SUBSCRIPTION_TIERS = ("free", "professional", "enterprise")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=new_id)

    # Human-friendly organization name
    name = Column(String, unique=True, nullable=False)
    logo_url = Column(String, nullable=True)

    # free | professional | enterprise
    subscription_tier = Column(String, nullable=False, default="free")

    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Organization {self.name} ({self.subscription_tier})>"
