"""
company.py — ORM Model for Company Entities

Purpose:
- Represent a company whose waste disclosures are tracked by the platform.
- Provides stable identifiers for linking:
    * Aggregated yearly metrics (company_metrics)
    * Detailed waste stream rows (waste_streams)
    * Per-company data templates (company_data_templates)

Field groups:
- Identity: company_name, country, sector, industry, employees, year_of_disclosure
- Market identifiers: ticker, exchange, isin, lei, figi, perm_id
- Map position: latitude, longitude
- Profile: description, business_overview, website_url, founded_year, ...
- Enrichment bookkeeping: industry_detail, data_source, last_enriched

Important Design Rule:
- This table stores *metadata only*, not tonnages.
- Waste values live in company_metrics / waste_streams.
"""

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from wasteintel.models.base import Base, new_id, utcnow


class Company(Base):
    __tablename__ = "companies"

    # Primary key
    id = Column(String, primary_key=True, default=new_id)

    # Identity
    company_name = Column(String, nullable=False)
    country = Column(String, nullable=False)
    sector = Column(String, nullable=False)
    industry = Column(String, nullable=False)
    employees = Column(Integer, nullable=True)
    year_of_disclosure = Column(Integer, nullable=False)

    # Market identifiers
    ticker = Column(String, nullable=True)
    exchange = Column(String, nullable=True)
    isin = Column(String, nullable=True)
    lei = Column(String, nullable=True)
    figi = Column(String, nullable=True)
    perm_id = Column(String, nullable=True)

    # Map position
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Profile
    description = Column(Text, nullable=True)
    business_overview = Column(Text, nullable=True)
    website_url = Column(String, nullable=True)
    founded_year = Column(Integer, nullable=True)
    headquarters = Column(String, nullable=True)
    revenue_usd = Column(Float, nullable=True)
    market_cap_usd = Column(Float, nullable=True)
    is_public = Column(Boolean, nullable=True)
    stock_exchange = Column(String, nullable=True)

    # Enrichment bookkeeping
    industry_detail = Column(String, nullable=True)
    data_source = Column(String, nullable=True)
    last_enriched = Column(DateTime, nullable=True)

    # Master template linkage
    csv_company_id = Column(String, nullable=True)
    template_version = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    metrics = relationship("CompanyMetric", back_populates="company", cascade="all, delete-orphan")
    waste_streams = relationship("WasteStream", back_populates="company", cascade="all, delete-orphan")
    template = relationship(
        "CompanyDataTemplate",
        back_populates="company",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_companies_country", "country"),
        Index("idx_companies_sector", "sector"),
        Index("idx_companies_industry", "industry"),
        Index("idx_companies_name", "company_name"),
    )

    def __repr__(self):
        return f"<Company {self.company_name} | {self.country} | {self.sector}>"
