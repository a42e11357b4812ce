"""
charts.py — Chart Dataset API Endpoints

Endpoints:
- GET /charts/country-coverage               → companies per country (bar)
- GET /charts/sector-performance             → companies per sector (bar)
- GET /charts/waste-trends                   → generated / recovered per year
- GET /charts/hazardous-breakdown            → hazardous vs non-hazardous (pie)
- GET /charts/waste-recovery-trends          → recovery / recycling / disposal per period
- GET /charts/waste-recovery-distribution    → recovery-rate histogram + statistics
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wasteintel.core.database import get_db
from wasteintel.core.errors import NotFoundError, ServiceUnavailableError
from wasteintel.core.logging import get_logger
from wasteintel.services import charts

logger = get_logger(__name__)

router = APIRouter(
    prefix="/charts",
    tags=["charts"]
)


@router.get("/country-coverage")
def country_coverage(db: Session = Depends(get_db)):
    try:
        data = charts.country_coverage(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Country coverage chart error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch country data")
    return {"success": True, "data": data}


@router.get("/sector-performance")
def sector_performance(db: Session = Depends(get_db)):
    try:
        data = charts.sector_performance(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Sector performance chart error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch sector data")
    return {"success": True, "data": data}


@router.get("/waste-trends")
def waste_trends(db: Session = Depends(get_db)):
    try:
        data = charts.waste_trends(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Waste trends data error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch waste trends data")
    return {"success": True, "data": data}


@router.get("/hazardous-breakdown")
def hazardous_breakdown(db: Session = Depends(get_db)):
    try:
        data = charts.hazardous_breakdown(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Hazardous breakdown data error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch hazardous breakdown data")
    return {"success": True, "data": data}


@router.get("/waste-recovery-trends")
def waste_recovery_trends(db: Session = Depends(get_db)):
    try:
        result = charts.waste_recovery_trends(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Waste recovery trends error: {e}")
        raise HTTPException(status_code=500, detail="Failed to calculate waste recovery trends")
    return {"success": True, **result}


@router.get("/waste-recovery-distribution")
def waste_recovery_distribution(db: Session = Depends(get_db)):
    try:
        data = charts.waste_recovery_distribution(db)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Waste recovery distribution error: {e}")
        raise HTTPException(status_code=500, detail="Failed to calculate waste recovery distribution")
    return {"success": True, "data": data}
