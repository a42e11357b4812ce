"""
company_metric.py — ORM Model for Aggregated Yearly Waste Metrics

Purpose:
- One row per (company, reporting_period) with pre-aggregated tonnages.
- Feeds the company detail page, recovery-rate distribution, and list filters.

**Important Constraint:**
- (company_id, reporting_period) must be UNIQUE.

Units: metric tonnes. Rates: percentages (0-100).
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from wasteintel.models.base import Base, new_id, utcnow


class CompanyMetric(Base):
    __tablename__ = "company_metrics"

    id = Column(String, primary_key=True, default=new_id)

    company_id = Column(String, ForeignKey("companies.id"), nullable=False)
    reporting_period = Column(Integer, nullable=False)

    # Totals
    total_waste_generated = Column(Float, default=0)
    total_waste_recovered = Column(Float, default=0)
    total_waste_disposed = Column(Float, default=0)

    # Hazardous split
    hazardous_waste_generated = Column(Float, default=0)
    hazardous_waste_recovered = Column(Float, default=0)
    hazardous_waste_disposed = Column(Float, default=0)

    non_hazardous_waste_generated = Column(Float, default=0)
    non_hazardous_waste_recovered = Column(Float, default=0)
    non_hazardous_waste_disposed = Column(Float, default=0)

    # Rates (percent)
    recovery_rate = Column(Float, default=0)
    hazardous_recovery_rate = Column(Float, default=0)
    non_hazardous_recovery_rate = Column(Float, default=0)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="metrics")

    __table_args__ = (
        UniqueConstraint("company_id", "reporting_period", name="uq_company_metrics_company_period"),
        Index("idx_company_metrics_company_id", "company_id"),
        Index("idx_company_metrics_period", "reporting_period"),
        Index("idx_company_metrics_recovery_rate", "recovery_rate"),
    )

    def __repr__(self):
        return f"<CompanyMetric {self.company_id} @ {self.reporting_period} rate={self.recovery_rate}>"
