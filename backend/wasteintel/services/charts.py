"""
charts.py — Chart Dataset Aggregations

Purpose:
- Aggregate companies, waste_streams and company_metrics into the datasets
  consumed by the dashboard charts:
    * country coverage / sector performance (bar charts, chart.js shape)
    * waste trends by year
    * hazardous vs non-hazardous breakdown (cached 10 min)
    * waste recovery trends by reporting period
    * recovery-rate distribution histogram (cached 5 min)

Rounding:
- Tonnages are rounded to whole tonnes, rates to two decimals (half up).

This module does NOT:
- Compute dashboard KPI cards (see services/kpis.py).
"""

import math
from collections import Counter, OrderedDict, defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from wasteintel.core.cache import cache_get, cache_set, make_key
from wasteintel.core.config import settings
from wasteintel.core.errors import NotFoundError
from wasteintel.core.logging import get_logger
from wasteintel.models.company import Company
from wasteintel.models.company_metric import CompanyMetric
from wasteintel.models.waste_stream import (
    HAZARDOUS_GENERATED,
    NON_HAZARDOUS_GENERATED,
    TOTAL_GENERATED,
    TOTAL_RECOVERED,
    WasteStream,
)
from wasteintel.utils.numbers import percentage, round2, round_int

logger = get_logger(__name__)

HAZARDOUS_CACHE_KEY = make_key("charts", "hazardous-breakdown")
DISTRIBUTION_CACHE_KEY = make_key("charts", "waste-recovery-distribution")

COMPANY_COUNT_LABEL = "Number of Companies"
COUNTRY_COLOR = "59, 130, 246"
SECTOR_COLOR = "34, 197, 94"

RECOVERY_KEYWORDS = ("recycl", "recover", "reuse", "composting", "energy recovery")
DISPOSAL_KEYWORDS = ("disposal", "landfill", "incineration without energy recovery")

RECOVERY_BINS = (
    ("0-20%", 0, 20),
    ("20-40%", 20, 40),
    ("40-60%", 40, 60),
    ("60-80%", 60, 80),
    ("80-100%", 80, 100),
)


# -----------------------------------------------------------------------------
# Bar charts: companies per country / sector
# -----------------------------------------------------------------------------

def _count_dataset(counts: Counter, rgb: str, border_width: int) -> Dict[str, Any]:
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return {
        "labels": [label for label, _ in ranked],
        "datasets": [
            {
                "label": COMPANY_COUNT_LABEL,
                "data": [count for _, count in ranked],
                "backgroundColor": f"rgba({rgb}, 0.8)",
                "borderColor": f"rgba({rgb}, 1)",
                "borderWidth": border_width,
            }
        ],
    }


def country_coverage(db: Session) -> Dict[str, Any]:
    rows = db.query(Company.country).filter(Company.country.isnot(None)).all()
    return _count_dataset(Counter(country for (country,) in rows), COUNTRY_COLOR, 1)


def sector_performance(db: Session) -> Dict[str, Any]:
    rows = db.query(Company.sector).filter(Company.sector.isnot(None)).all()
    return _count_dataset(Counter(sector for (sector,) in rows), SECTOR_COLOR, 2)


# -----------------------------------------------------------------------------
# Waste trends
# -----------------------------------------------------------------------------

def waste_trends(db: Session) -> List[Dict[str, Any]]:
    """Generated / recovered totals per year, years without generated data dropped."""
    rows = (
        db.query(WasteStream.reporting_period, WasteStream.metric, WasteStream.value)
        .filter(
            WasteStream.reporting_period >= settings.TRENDS_START_YEAR,
            WasteStream.metric.in_((TOTAL_GENERATED, TOTAL_RECOVERED)),
        )
        .all()
    )

    yearly = defaultdict(lambda: {"generated": 0.0, "recovered": 0.0, "count": 0})
    for period, metric, value in rows:
        if not value:
            continue
        bucket = yearly[period]
        if metric == TOTAL_GENERATED:
            bucket["generated"] += value
            bucket["count"] += 1
        else:
            bucket["recovered"] += value

    return [
        {
            "year": str(year),
            "totalGenerated": round_int(bucket["generated"]),
            "totalRecovered": round_int(bucket["recovered"]),
            "recoveryRate": round2(percentage(bucket["recovered"], bucket["generated"])),
        }
        for year, bucket in sorted(yearly.items())
        if bucket["count"] > 0
    ]


# -----------------------------------------------------------------------------
# Hazardous breakdown
# -----------------------------------------------------------------------------

def hazardous_breakdown(db: Session) -> List[Dict[str, Any]]:
    cached = cache_get(HAZARDOUS_CACHE_KEY)
    if cached is not None:
        return cached

    rows = (
        db.query(WasteStream.metric, WasteStream.value)
        .filter(
            WasteStream.reporting_period >= settings.RECENT_DATA_START_YEAR,
            WasteStream.metric.in_((HAZARDOUS_GENERATED, NON_HAZARDOUS_GENERATED)),
        )
        .all()
    )
    hazardous = sum(value or 0 for metric, value in rows if metric == HAZARDOUS_GENERATED)
    non_hazardous = sum(value or 0 for metric, value in rows if metric == NON_HAZARDOUS_GENERATED)
    total = hazardous + non_hazardous

    # Empty results are not cached so newly loaded data shows up immediately
    if total == 0:
        return []

    slices = [
        {
            "name": "Non-Hazardous",
            "value": round_int(non_hazardous),
            "percentage": round2(percentage(non_hazardous, total)),
        },
        {
            "name": "Hazardous",
            "value": round_int(hazardous),
            "percentage": round2(percentage(hazardous, total)),
        },
    ]
    slices = [s for s in slices if s["value"] > 0]

    cache_set(HAZARDOUS_CACHE_KEY, slices, ttl_seconds=settings.HAZARDOUS_CACHE_TTL_SECONDS)
    return slices


# -----------------------------------------------------------------------------
# Waste recovery trends
# -----------------------------------------------------------------------------

def classify_treatment(treatment_method: Optional[str]) -> Optional[str]:
    """
    Map a treatment method to "recycled", "recovered", "disposed" or None.

    Recycling counts as recovered too; callers treat "recycled" as both.
    """
    if not treatment_method:
        return None
    treatment = treatment_method.lower()
    if any(keyword in treatment for keyword in RECOVERY_KEYWORDS):
        return "recycled" if "recycl" in treatment else "recovered"
    if any(keyword in treatment for keyword in DISPOSAL_KEYWORDS):
        return "disposed"
    return None


def _data_quality(companies_reporting: int) -> str:
    if companies_reporting > 10:
        return "High"
    if companies_reporting > 5:
        return "Medium"
    return "Low"


def _new_period() -> Dict[str, Any]:
    return {
        "generated": 0.0,
        "recovered": 0.0,
        "disposed": 0.0,
        "recycled": 0.0,
        "hazardous": 0.0,
        "companies": set(),
        "sectors": defaultdict(lambda: {"generated": 0.0, "recovered": 0.0}),
    }


def waste_recovery_trends(db: Session) -> Dict[str, Any]:
    """
    Recovery, recycling and disposal trends per reporting period.

    Returns:
        {"data": [...per period...], "summary": {...}}
    """
    start = settings.RECOVERY_TRENDS_START_YEAR
    sector_of = dict(db.query(Company.id, Company.sector).all())

    streams = (
        db.query(
            WasteStream.company_id,
            WasteStream.reporting_period,
            WasteStream.metric,
            WasteStream.value,
            WasteStream.treatment_method,
            WasteStream.hazardousness,
        )
        .filter(WasteStream.reporting_period >= start, WasteStream.value.isnot(None))
        .order_by(WasteStream.reporting_period.asc())
        .all()
    )

    periods: Dict[int, Dict[str, Any]] = OrderedDict()
    for company_id, period, metric, value, treatment_method, hazardousness in streams:
        data = periods.setdefault(period, _new_period())
        data["companies"].add(company_id)
        sector = data["sectors"][sector_of.get(company_id) or "Unknown"]
        value = value or 0.0

        metric_label = (metric or "").lower()
        if "generated" in metric_label or "total waste" in metric_label:
            data["generated"] += value
            sector["generated"] += value

        category = classify_treatment(treatment_method)
        if category in ("recovered", "recycled"):
            data["recovered"] += value
            sector["recovered"] += value
            if category == "recycled":
                data["recycled"] += value
        elif category == "disposed":
            data["disposed"] += value

        if "hazardous" in (hazardousness or "").lower():
            data["hazardous"] += value

    # Company metrics only raise totals for periods that already have streams
    metrics = (
        db.query(
            CompanyMetric.reporting_period,
            CompanyMetric.total_waste_generated,
            CompanyMetric.total_waste_recovered,
            CompanyMetric.total_waste_disposed,
        )
        .filter(
            CompanyMetric.reporting_period >= start,
            CompanyMetric.total_waste_generated.isnot(None),
        )
        .all()
    )
    for period, generated, recovered, disposed in metrics:
        data = periods.get(period)
        if data is None:
            continue
        if generated:
            data["generated"] = max(data["generated"], generated)
        if recovered:
            data["recovered"] = max(data["recovered"], recovered)
        if disposed:
            data["disposed"] = max(data["disposed"], disposed)

    trends = []
    for period in sorted(periods):
        data = periods[period]
        generated = data["generated"]
        if round_int(generated) <= 0:
            continue

        top_sector = "N/A"
        top_sector_rate = 0.0
        for sector_name, sector in data["sectors"].items():
            if sector["generated"] > 0:
                rate = percentage(sector["recovered"], sector["generated"])
                if rate > top_sector_rate:
                    top_sector_rate = rate
                    top_sector = sector_name

        companies_reporting = len(data["companies"])
        trends.append({
            "period": period,
            "month": str(period),
            "totalGenerated": round_int(generated),
            "totalRecovered": round_int(data["recovered"]),
            "totalDisposed": round_int(data["disposed"]),
            "totalRecycled": round_int(data["recycled"]),
            "hazardousWaste": round_int(data["hazardous"]),
            "companiesReporting": companies_reporting,
            "recoveryRate": round2(percentage(data["recovered"], generated)),
            "recyclingRate": round2(percentage(data["recycled"], generated)),
            "disposalRate": round2(percentage(data["disposed"], generated)),
            "topSector": top_sector,
            "topSectorRate": round2(top_sector_rate),
            "dataQuality": _data_quality(companies_reporting),
        })

    avg_rate = sum(t["recoveryRate"] for t in trends) / len(trends) if trends else 0.0
    direction = trends[-1]["recoveryRate"] - trends[-2]["recoveryRate"] if len(trends) >= 2 else 0.0
    latest = trends[-1] if trends else None

    return {
        "data": trends,
        "summary": {
            "totalPeriods": len(trends),
            "avgRecoveryRate": round2(avg_rate),
            "trendDirection": round2(direction),
            "latestPeriod": latest["period"] if latest else "N/A",
            "latestRecoveryRate": latest["recoveryRate"] if latest else 0,
            "dataSource": "Waste streams + company metrics",
        },
    }


# -----------------------------------------------------------------------------
# Recovery-rate distribution
# -----------------------------------------------------------------------------

def _bin_index(rate: float) -> Optional[int]:
    for index, (_, lower, upper) in enumerate(RECOVERY_BINS):
        if lower <= rate < upper:
            return index
    # Exactly 100% belongs to the top bin
    if rate == RECOVERY_BINS[-1][2]:
        return len(RECOVERY_BINS) - 1
    return None


def _population_stddev(values: List[float], mean: float) -> float:
    return math.sqrt(sum((value - mean) ** 2 for value in values) / len(values))


def waste_recovery_distribution(db: Session) -> Dict[str, Any]:
    """
    Histogram of each company's latest positive recovery rate.

    Raises:
        NotFoundError: When no company has a positive recovery rate.
    """
    cached = cache_get(DISTRIBUTION_CACHE_KEY)
    if cached is not None:
        return cached

    rows = (
        db.query(CompanyMetric, Company)
        .outerjoin(Company, Company.id == CompanyMetric.company_id)
        .filter(CompanyMetric.recovery_rate.isnot(None), CompanyMetric.recovery_rate > 0)
        .order_by(CompanyMetric.recovery_rate.asc())
        .all()
    )
    if not rows:
        raise NotFoundError("No company metrics data found")

    latest: Dict[str, Any] = OrderedDict()
    for metric, company in rows:
        existing = latest.get(metric.company_id)
        if existing is None or metric.reporting_period > existing[0].reporting_period:
            latest[metric.company_id] = (metric, company)

    records = []
    for metric, company in latest.values():
        records.append({
            "company_id": metric.company_id,
            "company_name": company.company_name if company else "Unknown Company",
            "sector": (company.sector if company else None) or "Unknown Sector",
            "country": (company.country if company else None) or "Unknown Country",
            "recovery_rate": metric.recovery_rate,
            "total_waste_generated": metric.total_waste_generated,
            "total_waste_recovered": metric.total_waste_recovered,
            "reporting_period": metric.reporting_period,
        })

    bins = [
        {"range": label, "count": 0, "percentage": 0.0, "companies": []}
        for label, _, _ in RECOVERY_BINS
    ]
    for record in records:
        index = _bin_index(record["recovery_rate"])
        if index is None:
            continue
        bins[index]["count"] += 1
        bins[index]["companies"].append({
            "name": record["company_name"],
            "sector": record["sector"],
            "country": record["country"],
            "recovery_rate": record["recovery_rate"],
            "waste_generated": record["total_waste_generated"],
        })
    for bin_ in bins:
        bin_["percentage"] = percentage(bin_["count"], len(records))

    rates = [record["recovery_rate"] for record in records]
    mean = sum(rates) / len(rates)
    sorted_rates = sorted(rates)

    sectors: Dict[str, List[Dict[str, Any]]] = OrderedDict()
    for record in records:
        sectors.setdefault(record["sector"], []).append(record)
    sector_breakdown = [
        {
            "sector": sector,
            "company_count": len(members),
            "average_recovery_rate": round2(sum(m["recovery_rate"] for m in members) / len(members)),
            "companies": members,
        }
        for sector, members in sectors.items()
    ]
    sector_breakdown.sort(key=lambda item: item["average_recovery_rate"], reverse=True)

    payload = {
        "chartData": bins,
        "statistics": {
            "total_companies": len(records),
            "average_recovery_rate": mean,
            "median_recovery_rate": sorted_rates[len(sorted_rates) // 2],
            "min_recovery_rate": sorted_rates[0],
            "max_recovery_rate": sorted_rates[-1],
            "standard_deviation": _population_stddev(rates, mean),
        },
        "sectorBreakdown": sector_breakdown,
        "rawData": records,
    }

    cache_set(DISTRIBUTION_CACHE_KEY, payload, ttl_seconds=settings.CACHE_TTL_SECONDS)
    logger.info(f"Recovery distribution built for {len(records)} companies")
    return payload
