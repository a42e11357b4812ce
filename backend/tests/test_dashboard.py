"""
Tests for the dashboard endpoints (services/kpis.py).

Expected figures are hand-computed from the conftest dataset:
- KPI window (>= 2023) generated: 1200 + 500 + 2000 = 3700
- hazardous 250 vs non-hazardous 1450 → 14.71%
- sector recovery: Industrials 900/1200, Utilities 450/500, Materials 0/2000
- leaderboards (with the Echo Energie peer): Utilities avg (90 + 70) / 2 = 80
"""

import pytest

from wasteintel.services import kpis


def test_kpis(client, seeded):
    response = client.get("/api/dashboard/kpi")
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["totalCompanies"] == 4
    assert data["countriesCovered"] == 3
    assert data["totalWasteGenerated"] == 3700
    assert data["hazardousPercentage"] == 14.71
    assert data["dataCoveragePercentage"] == 75.0
    assert data["companiesWithRecentData"] == 3
    assert data["topPerformingSector"] == "Utilities"
    assert data["topSectorRecoveryRate"] == 90.0
    assert data["lastUpdated"]


def test_kpis_empty_database(db_session):
    data = kpis.compute_kpis(db_session)

    assert data["totalCompanies"] == 0
    assert data["totalWasteGenerated"] == 0
    assert data["hazardousPercentage"] == 0
    assert data["dataCoveragePercentage"] == 0
    assert data["topPerformingSector"] is None
    assert data["topSectorRecoveryRate"] == 0


def test_summary(client, seeded):
    data = client.get("/api/dashboard/summary").json()["data"]

    assert data["summary"] == {
        "total_companies": 4,
        "total_countries": 3,
        "total_sectors": 4,
        "total_waste_generated": 3700.0,
        "total_waste_recovered": 1550.0,
        "avg_recovery_rate": 58.33,
    }
    names = [c["company_name"] for c in data["recentCompanies"]]
    assert names == ["Delta Foods", "Cobalt Mining PLC", "Bergmann AG", "Acme Recycling Inc"]


def test_dashboard_stats(client, seeded):
    data = client.get("/api/dashboard").json()["data"]

    assert data["metrics"] == {
        "totalVolume": 3700.0,
        "recyclingRate": 41.89,
        "activeCompanies": 3,
    }

    waste_by_type = data["chartData"]["wasteByType"]
    assert [s["name"] for s in waste_by_type] == ["Non-Hazardous", "Hazardous"]
    assert waste_by_type[0]["value"] == 2650.0
    assert waste_by_type[0]["percentage"] == 71.62
    assert waste_by_type[1]["percentage"] == 28.38

    regions = data["chartData"]["regionDistribution"]
    assert [r["name"] for r in regions] == ["UK", "USA", "Germany"]
    assert [r["percentage"] for r in regions] == [54.05, 32.43, 13.51]
    assert sum(r["percentage"] for r in regions) == pytest.approx(100, abs=0.05)


def test_database_not_configured(monkeypatch):
    from fastapi.testclient import TestClient

    from wasteintel.core import database
    from wasteintel.main import app

    monkeypatch.setattr(database, "SessionLocal", None)
    app.dependency_overrides.clear()

    with TestClient(app) as bare_client:
        response = bare_client.get("/api/dashboard/kpi")

    assert response.status_code == 503
    assert response.json()["success"] is False


def test_leaderboards(client, seeded, utility_peer):
    response = client.get("/api/dashboard/leaderboards")
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["sectors"] == [
        {
            "sector": "Utilities",
            "companyCount": 2,
            "averageRecoveryRate": 80.0,
            "bestRecoveryRate": 90.0,
            "totalWaste": 800.0,
            "topCompany": "Bergmann AG",
            "topCountries": ["Germany"],
            "opportunityScore": 24.0,
        },
        {
            "sector": "Industrials",
            "companyCount": 1,
            "averageRecoveryRate": 75.0,
            "bestRecoveryRate": 75.0,
            "totalWaste": 1200.0,
            "topCompany": "Acme Recycling Inc",
            "topCountries": ["USA"],
            "opportunityScore": 30.0,
        },
        {
            "sector": "Materials",
            "companyCount": 1,
            "averageRecoveryRate": 10.0,
            "bestRecoveryRate": 10.0,
            "totalWaste": 2000.0,
            "topCompany": "Cobalt Mining PLC",
            "topCountries": ["UK"],
            "opportunityScore": 108.0,
        },
    ]
    assert [(c["country"], c["companyCount"], c["averageRecoveryRate"]) for c in data["countries"]] == [
        ("Germany", 2, 80.0),
        ("USA", 1, 75.0),
        ("UK", 1, 10.0),
    ]
    assert [p["name"] for p in data["topPerformers"]] == [
        "Bergmann AG",
        "Acme Recycling Inc",
        "Echo Energie GmbH",
        "Cobalt Mining PLC",
    ]
    assert data["worstPerformers"][0]["name"] == "Cobalt Mining PLC"
    assert data["worstPerformers"][0]["lastReportingPeriod"] == 2023


def test_leaderboards_empty_database(db_session):
    assert kpis.compute_leaderboards(db_session) == {
        "sectors": [],
        "countries": [],
        "topPerformers": [],
        "worstPerformers": [],
    }


def test_leaderboards_limit(seeded, db_session):
    top = kpis.compute_leaderboards(db_session, limit=1)["topPerformers"]
    assert [p["name"] for p in top] == ["Bergmann AG"]
