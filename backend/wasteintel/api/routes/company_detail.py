"""
company_detail.py — Company Detail Page API Endpoints

Endpoints:
- GET  /companies/aggregate-waste-metrics        → template metrics for all companies
- GET  /companies/{company_id}/profile           → identity, latest metrics, profile
- GET  /companies/{company_id}/waste-metrics     → metrics history
- GET  /companies/{company_id}/waste-streams     → streams grouped by year
- GET  /companies/{company_id}/performance       → performance document
- GET  /companies/{company_id}/benchmark         → recovery rate vs sector / country / industry
- POST /companies/{company_id}/template/sync     → sync data template with master
- GET  /companies/{company_id}/enrich            → does the description need refreshing?
- POST /companies/{company_id}/enrich            → refresh description from Wikipedia

This router must be registered before routes/companies.py so that
/companies/aggregate-waste-metrics is not captured by /companies/{company_id}.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from wasteintel.core.database import get_db
from wasteintel.core.errors import NotFoundError, ServiceUnavailableError
from wasteintel.core.logging import get_logger
from wasteintel.services import company_detail as detail_service
from wasteintel.services import enrichment as enrichment_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/companies",
    tags=["company-detail"]
)


@router.get("/aggregate-waste-metrics")
def aggregate_waste_metrics(db: Session = Depends(get_db)):
    try:
        result = detail_service.aggregate_waste_metrics(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Aggregate waste metrics error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch waste data")
    return {"success": True, **result}


@router.get("/{company_id}/profile")
def get_company_profile(company_id: str, db: Session = Depends(get_db)):
    """
    GET /companies/{company_id}/profile

    Company columns take precedence; the data template's profile document
    fills any empty field.
    """
    try:
        profile = detail_service.get_company_profile(db, company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching company profile {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {"success": True, "data": profile}


@router.get("/{company_id}/waste-metrics")
def get_waste_metrics(company_id: str, db: Session = Depends(get_db)):
    try:
        result = detail_service.get_waste_metrics(db, company_id)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching waste metrics for {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {"success": True, **result}


@router.get("/{company_id}/waste-streams")
def get_waste_streams(company_id: str, db: Session = Depends(get_db)):
    try:
        result = detail_service.get_waste_streams(db, company_id)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching waste streams for {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch waste streams data")
    return {"success": True, **result}


@router.get("/{company_id}/performance")
def get_performance(company_id: str, db: Session = Depends(get_db)):
    try:
        performance = detail_service.get_performance(db, company_id)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching performance data for {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {"success": True, "data": performance}


@router.get("/{company_id}/benchmark")
def get_benchmark(company_id: str, db: Session = Depends(get_db)):
    """
    GET /companies/{company_id}/benchmark

    Latest recovery rate against sector, country and industry averages.
    """
    try:
        benchmark = detail_service.get_benchmark(db, company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Error fetching company benchmark {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch company benchmark")
    return {"success": True, "data": benchmark}


@router.post("/{company_id}/template/sync")
def sync_template(company_id: str, db: Session = Depends(get_db)):
    try:
        result = detail_service.sync_template(db, company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error syncing template for {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to sync template")
    return {"success": True, "data": result}


# -----------------------------------------------------------------------------
# Enrichment
# -----------------------------------------------------------------------------

@router.get("/{company_id}/enrich")
def get_enrichment_status(company_id: str, db: Session = Depends(get_db)):
    try:
        result = enrichment_service.enrichment_status(db, company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Company enrichment check error for {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to check enrichment status")
    return {"success": True, "data": result}


@router.post("/{company_id}/enrich")
def enrich_company(company_id: str, db: Session = Depends(get_db)):
    """
    POST /companies/{company_id}/enrich

    Raises:
        404: Unknown company, or no public summary found
    """
    try:
        result = enrichment_service.enrich_company(db, company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Company enrichment error for {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to enrich company data")
    return {"success": True, "data": result}
