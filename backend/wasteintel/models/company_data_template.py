"""
company_data_template.py — ORM Model for Per-Company Data Templates

Purpose:
- Hold semi-structured documents collected for a company outside the
  disclosure tables:
    * profile          → description, website, headquarters, ...
    * waste_management → totals, hazardous split, waste_types, treatment_methods
    * performance      → free-form performance indicators
- Track synchronisation with the master company row (template versioning).

One template per company (company_id is UNIQUE).
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from wasteintel.models.base import Base, new_id, utcnow


class CompanyDataTemplate(Base):
    __tablename__ = "company_data_templates"

    id = Column(String, primary_key=True, default=new_id)
    company_id = Column(String, ForeignKey("companies.id"), nullable=False, unique=True)

    profile = Column(JSON, nullable=True)
    waste_management = Column(JSON, nullable=True)
    performance = Column(JSON, nullable=True)

    # Master template synchronisation
    csv_company_id = Column(String, nullable=True)
    master_template_version = Column(String, nullable=True)
    is_synced_with_master = Column(Boolean, default=False)
    last_sync_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="template")

    def __repr__(self):
        return f"<CompanyDataTemplate {self.company_id} synced={self.is_synced_with_master}>"
