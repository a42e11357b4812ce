"""
companies.py — Company Directory Queries

Purpose:
- Search / filter / paginate the company directory.
- Create companies from the admin form.
- Provide filter dropdown options and name autocomplete.
- Build the map feed (companies with coordinates).

Every listing row is a company joined with its *latest* company_metrics row
(highest reporting_period), so recovery-rate and tonnage filters apply to the
most recent disclosure.

This module does NOT:
- Build HTTP responses (see api/routes/companies.py).
- Compute dashboard-wide KPIs (see services/kpis.py).
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session, aliased

from wasteintel.core.cache import cache_delete, cache_get, cache_set, cache_stored_at, make_key
from wasteintel.core.config import settings
from wasteintel.core.errors import NotFoundError, ValidationFailedError
from wasteintel.core.logging import get_logger
from wasteintel.models.company import Company
from wasteintel.models.company_metric import CompanyMetric

logger = get_logger(__name__)

SORTABLE_COLUMNS = (
    "company_name",
    "country",
    "sector",
    "industry",
    "employees",
    "total_waste_generated",
    "recovery_rate",
)

REQUIRED_COMPANY_FIELDS = ("company_name", "country", "sector", "industry")

SUGGESTION_LIMIT = 10
MAP_CACHE_KEY = make_key("companies", "with-coordinates")


@dataclass
class CompanySearchParams:
    page: int = 1
    limit: int = 10
    countries: List[str] = field(default_factory=list)
    sector: Optional[str] = None
    industry: Optional[str] = None
    search: Optional[str] = None
    min_waste: Optional[float] = None
    max_waste: Optional[float] = None
    min_recovery_rate: Optional[float] = None
    max_recovery_rate: Optional[float] = None
    sort_by: str = "company_name"
    sort_order: str = "asc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# -----------------------------------------------------------------------------
# Query helpers
# -----------------------------------------------------------------------------

def _latest_metrics_query(db: Session) -> Tuple[Query, Any]:
    """
    Company rows outer-joined with their most recent metrics row.

    Returns (query yielding (Company, CompanyMetric|None), metric alias).
    """
    latest_period = (
        db.query(
            CompanyMetric.company_id.label("company_id"),
            func.max(CompanyMetric.reporting_period).label("period"),
        )
        .group_by(CompanyMetric.company_id)
        .subquery()
    )
    latest = aliased(CompanyMetric)

    query = (
        db.query(Company, latest)
        .outerjoin(latest_period, latest_period.c.company_id == Company.id)
        .outerjoin(
            latest,
            and_(
                latest.company_id == Company.id,
                latest.reporting_period == latest_period.c.period,
            ),
        )
    )
    return query, latest


def latest_metrics_by_company(db: Session) -> List[Tuple[Company, CompanyMetric]]:
    """(company, latest metrics row) for every company that has metrics."""
    query, latest = _latest_metrics_query(db)
    return query.filter(latest.id.isnot(None)).all()


def company_summary(company: Company, metric: Optional[CompanyMetric] = None) -> Dict[str, Any]:
    """Directory / table row shape."""
    return {
        "id": company.id,
        "name": company.company_name,
        "country": company.country,
        "sector": company.sector,
        "industry": company.industry,
        "employees": company.employees,
        "yearOfDisclosure": company.year_of_disclosure,
        "ticker": company.ticker,
        "exchange": company.exchange,
        "coordinates": {
            "lat": company.latitude or 0,
            "lng": company.longitude or 0,
        },
        "totalWasteGenerated": metric.total_waste_generated if metric else None,
        "totalWasteRecovered": metric.total_waste_recovered if metric else None,
        "recoveryRate": metric.recovery_rate if metric else None,
        "lastReportingPeriod": metric.reporting_period if metric else None,
    }


# -----------------------------------------------------------------------------
# Search
# -----------------------------------------------------------------------------

def search_companies(db: Session, params: CompanySearchParams) -> Dict[str, Any]:
    """
    Filtered, sorted, paginated company directory.

    Returns:
        {"data": [...], "pagination": {"page", "limit", "total", "totalPages"}}
    """
    if params.sort_by not in SORTABLE_COLUMNS:
        raise ValidationFailedError(f"sortBy must be one of: {', '.join(SORTABLE_COLUMNS)}")

    query, latest = _latest_metrics_query(db)

    if params.countries:
        query = query.filter(Company.country.in_(params.countries))
    if params.sector:
        query = query.filter(Company.sector == params.sector)
    if params.industry:
        query = query.filter(Company.industry == params.industry)
    if params.search:
        pattern = f"%{params.search}%"
        query = query.filter(
            or_(
                Company.company_name.ilike(pattern),
                Company.country.ilike(pattern),
                Company.sector.ilike(pattern),
            )
        )
    if params.min_waste is not None:
        query = query.filter(latest.total_waste_generated >= params.min_waste)
    if params.max_waste is not None:
        query = query.filter(latest.total_waste_generated <= params.max_waste)
    if params.min_recovery_rate is not None:
        query = query.filter(latest.recovery_rate >= params.min_recovery_rate)
    if params.max_recovery_rate is not None:
        query = query.filter(latest.recovery_rate <= params.max_recovery_rate)

    total = query.count()

    if params.sort_by in ("total_waste_generated", "recovery_rate"):
        sort_column = getattr(latest, params.sort_by)
    else:
        sort_column = getattr(Company, params.sort_by)
    # Companies without metrics sort last in both directions
    ordering = sort_column.desc() if params.sort_order == "desc" else sort_column.asc()
    ordering = ordering.nulls_last()

    rows = (
        query.order_by(ordering, Company.id.asc())
        .offset(params.offset)
        .limit(params.limit)
        .all()
    )

    logger.info(f"Company search page={params.page} limit={params.limit} matched={total} returned={len(rows)}")

    return {
        "data": [company_summary(company, metric) for company, metric in rows],
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "totalPages": -(-total // params.limit) if params.limit else 0,
        },
    }


def get_company(db: Session, company_id: str) -> Dict[str, Any]:
    query, latest = _latest_metrics_query(db)
    row = query.filter(Company.id == company_id).first()
    if row is None:
        raise NotFoundError("Company not found")
    company, metric = row
    return company_summary(company, metric)


def get_company_or_404(db: Session, company_id: str) -> Company:
    company = db.get(Company, company_id)
    if company is None:
        raise NotFoundError("Company not found")
    return company


# -----------------------------------------------------------------------------
# Create
# -----------------------------------------------------------------------------

def create_company(db: Session, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert a company row.

    Required: company_name, country, sector, industry.
    year_of_disclosure defaults to the current year.
    """
    missing = [name for name in REQUIRED_COMPANY_FIELDS if not (payload.get(name) or "").strip()]
    if missing:
        raise ValidationFailedError(
            f"Missing required fields: {', '.join(REQUIRED_COMPANY_FIELDS)}"
        )

    coordinates = payload.get("coordinates") or {}
    company = Company(
        company_name=payload["company_name"].strip(),
        country=payload["country"].strip(),
        sector=payload["sector"].strip(),
        industry=payload["industry"].strip(),
        employees=payload.get("employees"),
        year_of_disclosure=payload.get("year_of_disclosure") or datetime.date.today().year,
        latitude=coordinates.get("lat"),
        longitude=coordinates.get("lng"),
        description=payload.get("description"),
        website_url=payload.get("website_url"),
    )
    db.add(company)
    db.commit()
    db.refresh(company)

    # Map feed must show the new pin
    cache_delete(MAP_CACHE_KEY)

    logger.info(f"Created company {company.company_name} ({company.id})")
    return {
        "id": company.id,
        "name": company.company_name,
        "country": company.country,
        "sector": company.sector,
        "industry": company.industry,
        "employees": company.employees,
        "yearOfDisclosure": company.year_of_disclosure,
        "coordinates": {
            "lat": company.latitude or 0,
            "lng": company.longitude or 0,
        },
    }


# -----------------------------------------------------------------------------
# Filter options / suggestions
# -----------------------------------------------------------------------------

def _distinct_values(db: Session, column) -> List[str]:
    rows = db.query(column).filter(column.isnot(None)).distinct().all()
    return sorted(value for (value,) in rows if value)


def get_filter_options(db: Session) -> Dict[str, List[str]]:
    return {
        "countries": _distinct_values(db, Company.country),
        "sectors": _distinct_values(db, Company.sector),
        "industries": _distinct_values(db, Company.industry),
    }


def get_name_suggestions(db: Session, term: Optional[str]) -> List[Dict[str, str]]:
    """Autocomplete; terms shorter than 2 characters return nothing."""
    term = (term or "").strip()
    if len(term) < 2:
        return []
    rows = (
        db.query(Company.id, Company.company_name)
        .filter(Company.company_name.ilike(f"%{term}%"))
        .order_by(Company.company_name.asc())
        .limit(SUGGESTION_LIMIT)
        .all()
    )
    return [{"id": company_id, "name": name} for company_id, name in rows]


# -----------------------------------------------------------------------------
# Map feed
# -----------------------------------------------------------------------------

def _load_map_points(db: Session) -> List[Dict[str, Any]]:
    query, latest = _latest_metrics_query(db)
    rows = (
        query.filter(Company.latitude.isnot(None), Company.longitude.isnot(None))
        .order_by(Company.company_name.asc())
        .all()
    )
    return [
        {
            "id": company.id,
            "name": company.company_name,
            "country": company.country,
            "sector": company.sector,
            "industry": company.industry,
            "employees": company.employees,
            "lat": company.latitude,
            "lng": company.longitude,
            "recoveryRate": metric.recovery_rate if metric else None,
            "totalWasteGenerated": metric.total_waste_generated if metric else None,
            "reportingPeriod": metric.reporting_period if metric else None,
        }
        for company, metric in rows
    ]


def get_map_points(db: Session) -> Tuple[List[Dict[str, Any]], str, Optional[float]]:
    """
    Map feed with a per-process TTL cache.

    Returns:
        (points, cache_status, cached_at_epoch) where cache_status is
        "HIT", "MISS" or "STALE" (query failed, expired copy served).
    """
    cached = cache_get(MAP_CACHE_KEY)
    if cached is not None:
        return cached, "HIT", cache_stored_at(MAP_CACHE_KEY)

    try:
        points = _load_map_points(db)
    except Exception:
        stale = cache_get(MAP_CACHE_KEY, allow_stale=True)
        if stale is not None:
            logger.exception("Map feed query failed; serving stale cache")
            return stale, "STALE", cache_stored_at(MAP_CACHE_KEY)
        raise

    cache_set(MAP_CACHE_KEY, points, ttl_seconds=settings.CACHE_TTL_SECONDS)
    return points, "MISS", cache_stored_at(MAP_CACHE_KEY)
