"""
kpis.py — Dashboard KPI and Summary Metrics

Purpose:
- Calculate the headline indicators shown on the dashboard cards:
    * Companies / countries covered
    * Total waste generated in the KPI window
    * Hazardous share of classified waste
    * Data coverage (companies reporting recent data)
    * Top performing sector by recovery ratio
- Build the dashboard summary block and the dashboard stats charts.
- Rank sectors, countries and companies by latest recovery rate (leaderboards).

Inputs:
- waste_streams rows (long format, labelled by `metric`)
- company_metrics rows (latest per company)

Windows:
- KPI sums use periods >= settings.KPI_START_YEAR.
- "Recent data" coverage uses periods >= settings.RECENT_DATA_START_YEAR.

This module does NOT:
- Write to the database.
- Build chart.js datasets (handled in services/charts.py).
"""

import datetime
from collections import defaultdict
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from wasteintel.core.config import settings
from wasteintel.core.logging import get_logger
from wasteintel.models.company import Company
from wasteintel.models.waste_stream import (
    HAZARDOUS_GENERATED,
    NON_HAZARDOUS_GENERATED,
    TOTAL_GENERATED,
    TOTAL_RECOVERED,
    WasteStream,
)
from wasteintel.services.companies import latest_metrics_by_company
from wasteintel.utils.numbers import percentage, round2, round_int

logger = get_logger(__name__)

RECENT_COMPANIES_LIMIT = 5


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def compute_kpis(db: Session) -> Dict[str, Any]:
    """
    Compute dashboard KPI cards.

    Example Output:
    {
      "totalCompanies": 3,
      "countriesCovered": 2,
      "totalWasteGenerated": 1500,
      "hazardousPercentage": 12.5,
      "dataCoveragePercentage": 66.67,
      "topPerformingSector": "Utilities",
      "topSectorRecoveryRate": 80.0,
      ...
    }
    """
    companies = db.query(Company.id, Company.country, Company.sector).all()
    total_companies = len(companies)
    countries = {country for _, country, _ in companies if country}
    sector_of = {company_id: sector for company_id, _, sector in companies}

    streams = (
        db.query(
            WasteStream.company_id,
            WasteStream.reporting_period,
            WasteStream.metric,
            WasteStream.value,
        )
        .filter(WasteStream.reporting_period >= min(settings.KPI_START_YEAR, settings.RECENT_DATA_START_YEAR))
        .all()
    )

    total_generated = 0.0
    hazardous = 0.0
    non_hazardous = 0.0
    recent_companies = set()
    per_company = defaultdict(lambda: {"generated": 0.0, "recovered": 0.0})

    for company_id, period, metric, value in streams:
        value = value or 0.0
        if period >= settings.RECENT_DATA_START_YEAR:
            recent_companies.add(company_id)
        if period < settings.KPI_START_YEAR:
            continue

        if metric == TOTAL_GENERATED:
            total_generated += value
            per_company[company_id]["generated"] += value
        elif metric == TOTAL_RECOVERED:
            per_company[company_id]["recovered"] += value
        elif metric == HAZARDOUS_GENERATED:
            hazardous += value
        elif metric == NON_HAZARDOUS_GENERATED:
            non_hazardous += value

    # Sector ratio: pooled recovered / pooled generated over companies with generated > 0
    sector_totals = defaultdict(lambda: {"generated": 0.0, "recovered": 0.0})
    for company_id, totals in per_company.items():
        sector = sector_of.get(company_id)
        if not sector or totals["generated"] <= 0:
            continue
        sector_totals[sector]["generated"] += totals["generated"]
        sector_totals[sector]["recovered"] += totals["recovered"]

    top_sector = None
    top_rate = 0.0
    for sector, totals in sector_totals.items():
        rate = percentage(totals["recovered"], totals["generated"])
        if rate > top_rate:
            top_rate = rate
            top_sector = sector

    recent_known = recent_companies & set(sector_of)

    return {
        "totalCompanies": total_companies,
        "countriesCovered": len(countries),
        "lastUpdated": _now_iso(),
        "totalWasteGenerated": round_int(total_generated) if total_generated > 0 else 0,
        "hazardousPercentage": round2(percentage(hazardous, hazardous + non_hazardous)),
        "dataCoveragePercentage": round2(percentage(len(recent_known), total_companies)),
        "topPerformingSector": top_sector,
        "topSectorRecoveryRate": round2(top_rate),
        "companiesWithRecentData": len(recent_known),
    }


def compute_summary(db: Session) -> Dict[str, Any]:
    """Dashboard summary block: counts, latest-metric totals, newest companies."""
    total_companies = db.query(func.count(Company.id)).scalar() or 0
    total_countries = db.query(func.count(func.distinct(Company.country))).scalar() or 0
    total_sectors = db.query(func.count(func.distinct(Company.sector))).scalar() or 0

    latest = latest_metrics_by_company(db)
    total_generated = sum(metric.total_waste_generated or 0 for _, metric in latest)
    total_recovered = sum(metric.total_waste_recovered or 0 for _, metric in latest)
    rates = [metric.recovery_rate for _, metric in latest if metric.recovery_rate is not None]
    avg_rate = sum(rates) / len(rates) if rates else 0.0

    recent = (
        db.query(Company)
        .order_by(Company.created_at.desc(), Company.company_name.asc())
        .limit(RECENT_COMPANIES_LIMIT)
        .all()
    )

    return {
        "summary": {
            "total_companies": total_companies,
            "total_countries": total_countries,
            "total_sectors": total_sectors,
            "total_waste_generated": round2(total_generated),
            "total_waste_recovered": round2(total_recovered),
            "avg_recovery_rate": round2(avg_rate),
        },
        "recentCompanies": [
            {
                "id": company.id,
                "company_name": company.company_name,
                "country": company.country,
                "sector": company.sector,
                "created_at": company.created_at.isoformat() if company.created_at else None,
            }
            for company in recent
        ],
        "lastUpdated": _now_iso(),
    }


def _slices(totals: Dict[str, float]) -> List[Dict[str, Any]]:
    grand_total = sum(totals.values())
    return [
        {
            "name": name,
            "value": round2(value),
            "percentage": round2(percentage(value, grand_total)),
        }
        for name, value in sorted(totals.items(), key=lambda item: item[1], reverse=True)
    ]


def compute_dashboard_stats(db: Session) -> Dict[str, Any]:
    """
    Dashboard stats from each company's latest metrics row.

    Output:
    {
      "metrics": {"totalVolume", "recyclingRate", "activeCompanies"},
      "chartData": {"wasteByType": [...], "regionDistribution": [...]}
    }
    """
    latest = latest_metrics_by_company(db)

    total_volume = 0.0
    total_recovered = 0.0
    by_hazard = {"Hazardous": 0.0, "Non-Hazardous": 0.0}
    by_country: Dict[str, float] = defaultdict(float)

    for company, metric in latest:
        generated = metric.total_waste_generated or 0
        total_volume += generated
        total_recovered += metric.total_waste_recovered or 0
        by_hazard["Hazardous"] += metric.hazardous_waste_generated or 0
        by_hazard["Non-Hazardous"] += metric.non_hazardous_waste_generated or 0
        by_country[company.country] += generated

    return {
        "metrics": {
            "totalVolume": round2(total_volume),
            "recyclingRate": round2(percentage(total_recovered, total_volume)),
            "activeCompanies": len(latest),
        },
        "chartData": {
            "wasteByType": [s for s in _slices(by_hazard) if s["value"] > 0],
            "regionDistribution": _slices(dict(by_country)),
        },
    }


# -----------------------------------------------------------------------------
# Leaderboards
# -----------------------------------------------------------------------------

LEADERBOARD_LIMIT = 10
TOP_COUNTRIES_PER_SECTOR = 3


def _performer(company: Company, metric) -> Dict[str, Any]:
    return {
        "id": company.id,
        "name": company.company_name,
        "country": company.country,
        "sector": company.sector,
        "industry": company.industry,
        "employees": company.employees,
        "totalWasteGenerated": metric.total_waste_generated,
        "recoveryRate": metric.recovery_rate,
        "lastReportingPeriod": metric.reporting_period,
    }


def compute_leaderboards(db: Session, limit: int = LEADERBOARD_LIMIT) -> Dict[str, Any]:
    """
    Sector and country rankings plus best / worst companies.

    Only latest metrics rows with a positive recovery rate take part.
    Groups are ranked by average recovery rate, highest first.

    Example Output:
    {
      "sectors": [{"sector": "Utilities", "companyCount": 2, "averageRecoveryRate": 80.0,
                   "bestRecoveryRate": 90.0, "totalWaste": 800.0, "topCompany": "Bergmann AG",
                   "topCountries": ["Germany"], "opportunityScore": 24.0}, ...],
      "countries": [{"country": "Germany", "companyCount": 2, "averageRecoveryRate": 80.0,
                     "totalWaste": 800.0}, ...],
      "topPerformers": [...],
      "worstPerformers": [...]
    }
    """
    ranked = [
        (company, metric)
        for company, metric in latest_metrics_by_company(db)
        if metric.recovery_rate is not None and metric.recovery_rate > 0
    ]

    by_sector: Dict[str, list] = defaultdict(list)
    by_country: Dict[str, list] = defaultdict(list)
    for company, metric in ranked:
        by_sector[company.sector].append((company, metric))
        by_country[company.country].append((company, metric))

    sectors = []
    for sector, rows in by_sector.items():
        average = sum(m.recovery_rate for _, m in rows) / len(rows)
        best_company, best_metric = max(rows, key=lambda row: row[1].recovery_rate)
        country_counts = defaultdict(int)
        for company, _ in rows:
            country_counts[company.country] += 1
        top_countries = sorted(country_counts, key=lambda c: (-country_counts[c], c))
        sectors.append({
            "sector": sector,
            "companyCount": len(rows),
            "averageRecoveryRate": round2(average),
            "bestRecoveryRate": round2(best_metric.recovery_rate),
            "totalWaste": round2(sum(m.total_waste_generated or 0 for _, m in rows)),
            "topCompany": best_company.company_name,
            "topCountries": top_countries[:TOP_COUNTRIES_PER_SECTOR],
            # Lower recovery leaves more material to capture
            "opportunityScore": round2(max(0.0, 100 - average) * 1.2),
        })
    sectors.sort(key=lambda row: (-row["averageRecoveryRate"], row["sector"]))

    countries = [
        {
            "country": country,
            "companyCount": len(rows),
            "averageRecoveryRate": round2(sum(m.recovery_rate for _, m in rows) / len(rows)),
            "totalWaste": round2(sum(m.total_waste_generated or 0 for _, m in rows)),
        }
        for country, rows in by_country.items()
    ]
    countries.sort(key=lambda row: (-row["averageRecoveryRate"], row["country"]))

    best_first = sorted(ranked, key=lambda row: (-row[1].recovery_rate, row[0].company_name))
    worst_first = sorted(ranked, key=lambda row: (row[1].recovery_rate, row[0].company_name))

    logger.info(f"Leaderboards over {len(ranked)} companies, {len(sectors)} sectors, {len(countries)} countries")

    return {
        "sectors": sectors,
        "countries": countries,
        "topPerformers": [_performer(c, m) for c, m in best_first[:limit]],
        "worstPerformers": [_performer(c, m) for c, m in worst_first[:limit]],
    }
