"""
waste_stream.py — ORM Model for Detailed Waste Stream Disclosures

Purpose:
- Store disclosures in long format: one row per (company, period, metric,
  hazardousness, treatment method) with a single tonnage value.
- KPI, trend, and hazardous-breakdown aggregations read the `metric` labels
  below; treatment-method keywords classify recovered vs disposed tonnage.
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from wasteintel.models.base import Base, new_id, utcnow

# Metric labels as they appear in source disclosures
TOTAL_GENERATED = "Total Waste Generated"
TOTAL_RECOVERED = "Total Waste Recovered"
TOTAL_DISPOSED = "Total Waste Disposed"
HAZARDOUS_GENERATED = "Total Hazardous Waste Generated"
NON_HAZARDOUS_GENERATED = "Total Non-Hazardous Waste Generated"
HAZARDOUS_RECOVERED = "Hazardous Waste Recovered"
NON_HAZARDOUS_RECOVERED = "Non-Hazardous Waste Recovered"
HAZARDOUS_DISPOSED = "Hazardous Waste Disposed"
NON_HAZARDOUS_DISPOSED = "Non-Hazardous Waste Disposed"

DEFAULT_UNIT = "Metric Tonnes"


class WasteStream(Base):
    __tablename__ = "waste_streams"

    id = Column(String, primary_key=True, default=new_id)

    company_id = Column(String, ForeignKey("companies.id"), nullable=False)
    reporting_period = Column(Integer, nullable=False)

    metric = Column(String, nullable=False)
    hazardousness = Column(String, nullable=False)
    treatment_method = Column(String, nullable=False)
    value = Column(Float, nullable=False)
    unit = Column(String, nullable=False, default=DEFAULT_UNIT)
    incomplete_boundaries = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="waste_streams")

    __table_args__ = (
        Index("idx_waste_streams_company_id", "company_id"),
        Index("idx_waste_streams_period", "reporting_period"),
        Index("idx_waste_streams_metric", "metric"),
    )

    def __repr__(self):
        return f"<WasteStream {self.company_id} @ {self.reporting_period} {self.metric}={self.value}>"
