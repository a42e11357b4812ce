"""
dashboard.py — Dashboard API Endpoints

Endpoints:
- GET /dashboard          → headline metrics + hazard / country charts
- GET /dashboard/kpi      → KPI cards
- GET /dashboard/summary  → counts, latest-metric totals, newest companies
- GET /dashboard/leaderboards → sector / country rankings, best and worst companies
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wasteintel.core.database import get_db
from wasteintel.core.errors import ServiceUnavailableError
from wasteintel.core.logging import get_logger
from wasteintel.services import kpis

logger = get_logger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"]
)


@router.get("")
def get_dashboard(db: Session = Depends(get_db)):
    try:
        stats = kpis.compute_dashboard_stats(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Dashboard stats error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch dashboard data")
    return {"success": True, "data": stats}


@router.get("/kpi")
def get_kpis(db: Session = Depends(get_db)):
    try:
        data = kpis.compute_kpis(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"KPI data error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch KPI data")
    return {"success": True, "data": data}


@router.get("/summary")
def get_summary(db: Session = Depends(get_db)):
    try:
        data = kpis.compute_summary(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Dashboard summary error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch dashboard summary")
    return {"success": True, "data": data}


@router.get("/leaderboards")
def get_leaderboards(db: Session = Depends(get_db)):
    try:
        data = kpis.compute_leaderboards(db)
    except ServiceUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Leaderboards error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboards")
    return {"success": True, "data": data}
