"""
company_detail.py — Company Detail Page Data

Purpose:
- Assemble the blocks shown on a single company's page:
    * profile (identity + latest metrics + profile fields with template fallback)
    * waste metrics history (company_metrics, else template waste_management)
    * waste streams grouped by reporting year
    * performance document
    * benchmark against sector, country and industry peers
- Aggregate template waste_management documents across companies.
- Sync a company's data template with the master company row.

Notes:
- Company columns win over template values; template documents only fill gaps.
- Waste-stream recovered / disposed tonnages are not disclosed per stream, so
  they are apportioned from the same-period metrics row by the stream's share
  of total generated waste.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from wasteintel.core.logging import get_logger
from wasteintel.models.base import utcnow
from wasteintel.models.company import Company
from wasteintel.models.company_data_template import CompanyDataTemplate
from wasteintel.models.company_metric import CompanyMetric
from wasteintel.models.waste_stream import WasteStream
from wasteintel.services.companies import get_company_or_404, latest_metrics_by_company
from wasteintel.utils.numbers import percentage, round2, to_float

logger = get_logger(__name__)

PROFILE_FIELDS = (
    "description",
    "business_overview",
    "website_url",
    "founded_year",
    "headquarters",
    "revenue_usd",
    "market_cap_usd",
    "is_public",
    "stock_exchange",
)

WASTE_TYPES = ("municipal", "industrial", "construction", "electronic", "medical")
TREATMENT_METHODS = ("recycling", "composting", "energy_recovery", "landfill", "incineration")


def _template_for(db: Session, company_id: str) -> Optional[CompanyDataTemplate]:
    return (
        db.query(CompanyDataTemplate)
        .filter(CompanyDataTemplate.company_id == company_id)
        .first()
    )


def _metrics_for(db: Session, company_id: str) -> List[CompanyMetric]:
    """All metrics rows, newest reporting period first."""
    return (
        db.query(CompanyMetric)
        .filter(CompanyMetric.company_id == company_id)
        .order_by(CompanyMetric.reporting_period.desc())
        .all()
    )


def metric_row(metric: CompanyMetric) -> Dict[str, Any]:
    """Flat dict of a company_metrics row."""
    return {
        "id": metric.id,
        "company_id": metric.company_id,
        "reporting_period": metric.reporting_period,
        "total_waste_generated": metric.total_waste_generated,
        "total_waste_recovered": metric.total_waste_recovered,
        "total_waste_disposed": metric.total_waste_disposed,
        "hazardous_waste_generated": metric.hazardous_waste_generated,
        "hazardous_waste_recovered": metric.hazardous_waste_recovered,
        "hazardous_waste_disposed": metric.hazardous_waste_disposed,
        "non_hazardous_waste_generated": metric.non_hazardous_waste_generated,
        "non_hazardous_waste_recovered": metric.non_hazardous_waste_recovered,
        "non_hazardous_waste_disposed": metric.non_hazardous_waste_disposed,
        "recovery_rate": metric.recovery_rate,
        "hazardous_recovery_rate": metric.hazardous_recovery_rate,
        "non_hazardous_recovery_rate": metric.non_hazardous_recovery_rate,
    }


# -----------------------------------------------------------------------------
# Profile
# -----------------------------------------------------------------------------

def get_company_profile(db: Session, company_id: str) -> Dict[str, Any]:
    company = get_company_or_404(db, company_id)
    metrics = _metrics_for(db, company_id)
    template = _template_for(db, company_id)

    latest = metric_row(metrics[0]) if metrics else None
    if latest:
        latest.pop("id")
        latest.pop("company_id")

    template_profile = (template.profile if template else None) or {}
    profile = {
        name: getattr(company, name) or template_profile.get(name) or None
        for name in PROFILE_FIELDS
    }

    return {
        "company": {
            "id": company.id,
            "name": company.company_name,
            "country": company.country,
            "sector": company.sector,
            "industry": company.industry,
            "employees": company.employees,
            "year_of_disclosure": company.year_of_disclosure,
            "ticker": company.ticker,
            "exchange": company.exchange,
            "isin": company.isin,
            "lei": company.lei,
            "figi": company.figi,
            "perm_id": company.perm_id,
        },
        "metrics": latest,
        "profile": profile,
        "waste_management": template.waste_management if template else None,
        "performance": template.performance if template else None,
    }


# -----------------------------------------------------------------------------
# Waste metrics history
# -----------------------------------------------------------------------------

def _reshape_metric(metric: CompanyMetric) -> Dict[str, Any]:
    return {
        "total_waste_generated": metric.total_waste_generated,
        "total_waste_recovered": metric.total_waste_recovered,
        "total_waste_disposed": metric.total_waste_disposed,
        "recovery_rate": metric.recovery_rate,
        "hazardous_waste": {
            "generated": metric.hazardous_waste_generated,
            "recovered": metric.hazardous_waste_recovered,
            "disposed": metric.hazardous_waste_disposed,
            "recovery_rate": metric.hazardous_recovery_rate,
        },
        "non_hazardous_waste": {
            "generated": metric.non_hazardous_waste_generated,
            "recovered": metric.non_hazardous_waste_recovered,
            "disposed": metric.non_hazardous_waste_disposed,
            "recovery_rate": metric.non_hazardous_recovery_rate,
        },
        "reporting_period": metric.reporting_period,
    }


def get_waste_metrics(db: Session, company_id: str) -> Dict[str, Any]:
    """
    Returns:
        {"data": [...], "latest": {...}}   from company_metrics, or
        {"data": {...}}                    from the template document, or
        {"data": None}
    """
    metrics = _metrics_for(db, company_id)
    if metrics:
        reshaped = [_reshape_metric(m) for m in metrics]
        return {"data": reshaped, "latest": reshaped[0]}

    template = _template_for(db, company_id)
    if template is not None and template.waste_management:
        return {"data": template.waste_management}

    return {"data": None}


# -----------------------------------------------------------------------------
# Waste streams
# -----------------------------------------------------------------------------

def get_waste_streams(db: Session, company_id: str) -> Dict[str, Any]:
    streams = (
        db.query(WasteStream)
        .filter(WasteStream.company_id == company_id)
        .order_by(WasteStream.reporting_period.desc())
        .all()
    )
    metrics = _metrics_for(db, company_id)
    metrics_by_period = {m.reporting_period: m for m in metrics}

    transformed = []
    for stream in streams:
        recovered = None
        disposed = None
        period_metrics = metrics_by_period.get(stream.reporting_period)
        if period_metrics is not None and stream.value:
            total_generated = period_metrics.total_waste_generated or 0
            if total_generated > 0:
                share = stream.value / total_generated
                recovered = (period_metrics.total_waste_recovered or 0) * share
                disposed = (period_metrics.total_waste_disposed or 0) * share

        transformed.append({
            "id": stream.id,
            "waste_type": stream.metric,
            "generated": stream.value,
            "recovered": recovered,
            "disposed": disposed,
            "hazardousness": stream.hazardousness,
            "treatment_method": stream.treatment_method,
            "unit": stream.unit,
            "data_quality": "Complete",
            "reporting_period": stream.reporting_period,
        })

    grouped: Dict[str, List[Dict[str, Any]]] = OrderedDict()
    for stream in transformed:
        grouped.setdefault(str(stream["reporting_period"]), []).append(stream)

    years = sorted(grouped.keys(), reverse=True)
    latest_year = years[0] if years else None

    year_summaries = {}
    for year in years:
        year_streams = grouped[year]
        total_generated = sum(s["generated"] or 0 for s in year_streams)
        total_recovered = sum(s["recovered"] or 0 for s in year_streams)
        total_disposed = sum(s["disposed"] or 0 for s in year_streams)
        year_summaries[year] = {
            "totalGenerated": total_generated,
            "totalRecovered": total_recovered,
            "totalDisposed": total_disposed,
            "recoveryRate": percentage(total_recovered, total_generated),
        }

    return {
        "data": transformed,
        "groupedByYear": grouped,
        "years": years,
        "latestYear": latest_year,
        "latest": grouped.get(latest_year, []) if latest_year else [],
        "yearSummaries": year_summaries,
        "metricsData": [metric_row(m) for m in metrics],
    }


def get_performance(db: Session, company_id: str) -> Dict[str, Any]:
    template = _template_for(db, company_id)
    return (template.performance if template else None) or {}


# -----------------------------------------------------------------------------
# Benchmark
# -----------------------------------------------------------------------------

def _average(rates: List[float]) -> float:
    return round2(sum(rates) / len(rates)) if rates else 0.0


def get_benchmark(db: Session, company_id: str) -> Dict[str, Any]:
    """
    Compare a company's latest recovery rate with its peers.

    Peers are every company's latest metrics row with a positive recovery
    rate, grouped by the company's sector, country and industry.

    Output:
    {
      "sectorAverage", "countryAverage", "industryAverage",
      "percentileRanking",     # % of sector peers with a lower rate (50 if unranked)
      "improvementPotential",  # points below the best of the three averages
      "companyRecoveryRate", "companyWasteVolume", "sector", "country", "industry"
    }
    """
    company = get_company_or_404(db, company_id)

    own_metric = None
    sector_rates: List[float] = []
    country_rates: List[float] = []
    industry_rates: List[float] = []
    for peer, metric in latest_metrics_by_company(db):
        if peer.id == company.id:
            own_metric = metric
        rate = metric.recovery_rate
        if rate is None or rate <= 0:
            continue
        if peer.sector == company.sector:
            sector_rates.append(rate)
        if peer.country == company.country:
            country_rates.append(rate)
        if peer.industry == company.industry:
            industry_rates.append(rate)

    own_rate = own_metric.recovery_rate if own_metric else None
    sector_average = _average(sector_rates)
    country_average = _average(country_rates)
    industry_average = _average(industry_rates)

    if own_rate is not None and own_rate > 0 and sector_rates:
        lower = sum(1 for rate in sector_rates if rate < own_rate)
        percentile = round2(percentage(lower, len(sector_rates)))
    else:
        percentile = 50.0

    best_average = max(sector_average, country_average, industry_average)

    return {
        "sectorAverage": sector_average,
        "countryAverage": country_average,
        "industryAverage": industry_average,
        "percentileRanking": percentile,
        "improvementPotential": round2(max(0.0, best_average - (own_rate or 0.0))),
        "companyRecoveryRate": own_rate,
        "companyWasteVolume": own_metric.total_waste_generated if own_metric else None,
        "sector": company.sector,
        "country": company.country,
        "industry": company.industry,
    }


# -----------------------------------------------------------------------------
# Aggregate waste metrics (template documents)
# -----------------------------------------------------------------------------

def _template_metrics(waste_management: Dict[str, Any]) -> Dict[str, Any]:
    total_waste = to_float(waste_management.get("total_waste_generated"))
    total_recovered = to_float(waste_management.get("total_waste_recovered"))
    hazardous = to_float((waste_management.get("hazardous_waste") or {}).get("generated"))
    non_hazardous = to_float((waste_management.get("non_hazardous_waste") or {}).get("generated"))
    stored_rate = to_float(waste_management.get("recovery_rate"))

    calculated_rate = percentage(total_recovered, total_waste) if total_waste > 0 else stored_rate
    waste_types = waste_management.get("waste_types") or {}
    treatment_methods = waste_management.get("treatment_methods") or {}

    return {
        "has_hazardous_waste": hazardous > 0,
        "recovery_rate": calculated_rate or stored_rate,
        "total_waste_generated": total_waste,
        "total_waste_recovered": total_recovered,
        "hazardous_waste_generated": hazardous,
        "non_hazardous_waste_generated": non_hazardous,
        "hazardous_waste_percentage": percentage(hazardous, total_waste),
        "waste_types": {name: to_float(waste_types.get(name)) for name in WASTE_TYPES},
        "treatment_methods": {name: to_float(treatment_methods.get(name)) for name in TREATMENT_METHODS},
    }


def aggregate_waste_metrics(db: Session) -> Dict[str, Any]:
    """
    Per-company filterable metrics keyed by company id.

    Returns:
        {"data": {company_id: {...}}, "count": int}
    """
    templates = (
        db.query(CompanyDataTemplate)
        .filter(CompanyDataTemplate.waste_management.isnot(None))
        .all()
    )
    processed = {}
    for template in templates:
        if not template.waste_management:
            continue
        processed[template.company_id] = _template_metrics(template.waste_management)

    return {"data": processed, "count": len(processed)}


# -----------------------------------------------------------------------------
# Template sync
# -----------------------------------------------------------------------------

def sync_template(db: Session, company_id: str) -> Dict[str, Any]:
    """
    Upsert the company's template row and mark it in sync with the master row.
    """
    company: Company = get_company_or_404(db, company_id)
    template = _template_for(db, company_id)
    if template is None:
        template = CompanyDataTemplate(company_id=company_id)
        db.add(template)

    now = utcnow()
    template.csv_company_id = company.csv_company_id
    template.master_template_version = company.template_version
    template.is_synced_with_master = True
    template.last_sync_at = now
    template.updated_at = now

    db.commit()
    db.refresh(template)

    logger.info(f"Synced data template for company {company_id}")
    return {
        "template_id": template.id,
        "synced_at": template.last_sync_at.isoformat(),
        "message": "Template synchronized successfully",
    }
