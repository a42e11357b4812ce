"""
companies.py — Company Directory API Endpoints

Purpose:
- Expose the searchable company directory (list, create, fetch one).
- Provide filter dropdown options and name autocomplete.
- Serve the public map feed of companies with coordinates.

Endpoints:
- GET  /companies                     → paginated, filtered, sorted list
- POST /companies                     → create a company
- GET  /companies/filters/options     → distinct countries / sectors / industries
- GET  /companies/search/suggestions  → name autocomplete
- GET  /companies/{company_id}        → one company summary
- GET  /companies-with-coordinates    → map points (cached, rate limited)

Delegates all querying to services/companies.py.
"""

import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from wasteintel.core.config import settings
from wasteintel.core.database import get_db
from wasteintel.core.errors import NotFoundError, ServiceUnavailableError, ValidationFailedError
from wasteintel.core.logging import get_logger
from wasteintel.core.rate_limit import rate_limiter
from wasteintel.services import companies as company_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/companies",
    tags=["companies"]
)

coordinates_router = APIRouter(tags=["companies"])

# -----------------------------------------------------------------------------
# Schemas
# -----------------------------------------------------------------------------

class Coordinates(BaseModel):
    lat: float
    lng: float


class CompanyCreate(BaseModel):
    """
    Body for POST /companies.

    company_name, country, sector and industry are required; they are typed
    optional so a missing field reaches the service and gets the standard
    "Missing required fields" message.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "company_name": "Veolia Environnement SA",
                "country": "France",
                "sector": "Utilities",
                "industry": "Multi-Utilities",
                "employees": 218000,
                "coordinates": {"lat": 48.8566, "lng": 2.3522},
            }
        }
    )

    company_name: Optional[str] = None
    country: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    employees: Optional[int] = None
    year_of_disclosure: Optional[int] = None
    coordinates: Optional[Coordinates] = None
    description: Optional[str] = None
    website_url: Optional[str] = None


class FilterOptions(BaseModel):
    countries: List[str]
    sectors: List[str]
    industries: List[str]


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

@router.get("")
def list_companies(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    country: Optional[str] = Query(None, description="Country, or comma-separated list of countries"),
    sector: Optional[str] = Query(None),
    industry: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches company name, country or sector"),
    min_waste: Optional[float] = Query(None, alias="minWaste", ge=0),
    max_waste: Optional[float] = Query(None, alias="maxWaste", ge=0),
    min_recovery_rate: Optional[float] = Query(None, alias="minRecoveryRate", ge=0, le=100),
    max_recovery_rate: Optional[float] = Query(None, alias="maxRecoveryRate", ge=0, le=100),
    sort_by: str = Query("company_name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    """
    GET /companies

    Latest-metrics filters (minWaste, maxRecoveryRate, ...) exclude companies
    without any metrics row.
    """
    countries = [c.strip() for c in (country or "").split(",") if c.strip()]
    params = company_service.CompanySearchParams(
        page=page,
        limit=limit,
        countries=countries,
        sector=sector,
        industry=industry,
        search=search.strip() if search else None,
        min_waste=min_waste,
        max_waste=max_waste,
        min_recovery_rate=min_recovery_rate,
        max_recovery_rate=max_recovery_rate,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    try:
        result = company_service.search_companies(db, params)
    except ValidationFailedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching companies: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch companies")

    return {
        "success": True,
        "data": result["data"],
        "pagination": result["pagination"],
        "filters": {
            "country": country,
            "sector": sector,
            "industry": industry,
            "search": search,
            "minWaste": min_waste,
            "maxWaste": max_waste,
            "minRecoveryRate": min_recovery_rate,
            "maxRecoveryRate": max_recovery_rate,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_company(payload: CompanyCreate, db: Session = Depends(get_db)):
    """POST /companies"""
    try:
        company = company_service.create_company(db, payload.model_dump())
    except ValidationFailedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating company: {e}")
        raise HTTPException(status_code=500, detail="Failed to create company")

    return {"success": True, "data": company}


@router.get("/filters/options")
def get_filter_options(db: Session = Depends(get_db)):
    """GET /companies/filters/options"""
    try:
        options = company_service.get_filter_options(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching filter options: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch filter options")
    return {"success": True, "data": FilterOptions(**options).model_dump()}


@router.get("/search/suggestions")
def get_search_suggestions(
    q: Optional[str] = Query(None, description="Partial company name (2+ characters)"),
    db: Session = Depends(get_db),
):
    """GET /companies/search/suggestions?q=..."""
    try:
        suggestions = company_service.get_name_suggestions(db, q)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching suggestions for '{q}': {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch suggestions")
    return {"success": True, "data": suggestions}


@router.get("/{company_id}")
def get_company(company_id: str, db: Session = Depends(get_db)):
    """GET /companies/{company_id}"""
    try:
        company = company_service.get_company(db, company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching company {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch company")
    return {"success": True, "data": company}


# -----------------------------------------------------------------------------
# Map feed
# -----------------------------------------------------------------------------

def _cache_headers(cache_status: str, cached_at: Optional[float]) -> Dict[str, Any]:
    max_age = "public, max-age=60" if cache_status == "STALE" else "public, max-age=300, stale-while-revalidate=600"
    headers = {"Cache-Control": max_age, "X-Cache": cache_status}
    if cached_at is not None:
        headers["X-Cache-Updated"] = datetime.datetime.fromtimestamp(
            cached_at, tz=datetime.timezone.utc
        ).isoformat()
    return headers


@coordinates_router.get(
    "/companies-with-coordinates",
    dependencies=[Depends(rate_limiter("coordinates", settings.COORDINATES_RATE_LIMIT_PER_MINUTE))],
)
def companies_with_coordinates(db: Session = Depends(get_db)):
    """
    GET /companies-with-coordinates

    Returns a bare JSON array of map points.
    """
    try:
        points, cache_status, cached_at = company_service.get_map_points(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error loading map points: {e}")
        raise HTTPException(status_code=500, detail="Failed to load companies data")

    return JSONResponse(content=points, headers=_cache_headers(cache_status, cached_at))
