"""
Tests for the company directory endpoints (api/routes/companies.py).

Verifies:
- Pagination, country / search / recovery-rate filters and sorting
- Invalid sort column and out-of-range limit → 400 envelope
- Company creation (201) and the "Missing required fields" rule
- Filter options and name suggestions
- Map feed cache headers (MISS → HIT → STALE) and rate limiting
"""

from wasteintel.core.cache import _cache_store
from wasteintel.services import companies as company_service


def test_list_companies_default_sort_and_pagination(client, seeded):
    response = client.get("/api/companies", params={"page": 2, "limit": 2})
    assert response.status_code == 200

    body = response.json()
    assert body["success"] is True
    assert [c["name"] for c in body["data"]] == ["Cobalt Mining PLC", "Delta Foods"]
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 4, "totalPages": 2}
    assert body["filters"]["sortBy"] == "company_name"


def test_list_companies_attaches_latest_metrics(client, seeded):
    response = client.get("/api/companies", params={"search": "acme"})
    (acme,) = response.json()["data"]

    assert acme["lastReportingPeriod"] == 2023
    assert acme["totalWasteGenerated"] == 1200
    assert acme["recoveryRate"] == 75
    assert acme["coordinates"] == {"lat": 42.3601, "lng": -71.0589}


def test_list_companies_country_list_filter(client, seeded):
    response = client.get("/api/companies", params={"country": "USA, Germany"})
    names = [c["name"] for c in response.json()["data"]]
    assert names == ["Acme Recycling Inc", "Bergmann AG", "Delta Foods"]


def test_list_companies_search_matches_sector(client, seeded):
    response = client.get("/api/companies", params={"search": "materials"})
    assert [c["name"] for c in response.json()["data"]] == ["Cobalt Mining PLC"]


def test_list_companies_recovery_rate_filter_uses_latest_period(client, seeded):
    # Acme's 2022 rate (60) must not count; its latest (2023) is 75
    response = client.get("/api/companies", params={"minRecoveryRate": 70, "maxRecoveryRate": 80})
    assert [c["name"] for c in response.json()["data"]] == ["Acme Recycling Inc"]


def test_list_companies_sort_by_recovery_rate_desc(client, seeded):
    response = client.get(
        "/api/companies",
        params={"sortBy": "recovery_rate", "sortOrder": "desc", "minRecoveryRate": 0},
    )
    names = [c["name"] for c in response.json()["data"]]
    assert names == ["Bergmann AG", "Acme Recycling Inc", "Cobalt Mining PLC"]



def test_list_companies_metric_sort_puts_missing_metrics_last(client, seeded):
    # Delta Foods has no metrics rows
    desc = client.get("/api/companies", params={"sortBy": "recovery_rate", "sortOrder": "desc"})
    assert [c["name"] for c in desc.json()["data"]] == [
        "Bergmann AG",
        "Acme Recycling Inc",
        "Cobalt Mining PLC",
        "Delta Foods",
    ]

    asc = client.get("/api/companies", params={"sortBy": "total_waste_generated", "sortOrder": "asc"})
    assert [c["name"] for c in asc.json()["data"]] == [
        "Bergmann AG",
        "Acme Recycling Inc",
        "Cobalt Mining PLC",
        "Delta Foods",
    ]


def test_list_companies_rejects_unknown_sort_column(client, seeded):
    response = client.get("/api/companies", params={"sortBy": "password"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("sortBy must be one of")


def test_list_companies_rejects_oversized_limit(client, seeded):
    response = client.get("/api/companies", params={"limit": 500})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_get_company_by_id(client, seeded):
    response = client.get(f"/api/companies/{seeded['bergmann']}")
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Bergmann AG"

    missing = client.get("/api/companies/does-not-exist")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "Company not found"}


def test_create_company(client):
    payload = {
        "company_name": "  Veolia Environnement SA ",
        "country": "France",
        "sector": "Utilities",
        "industry": "Multi-Utilities",
        "employees": 218000,
        "coordinates": {"lat": 48.8566, "lng": 2.3522},
    }
    response = client.post("/api/companies", json=payload)
    assert response.status_code == 201

    data = response.json()["data"]
    assert data["name"] == "Veolia Environnement SA"
    assert data["coordinates"] == {"lat": 48.8566, "lng": 2.3522}
    assert data["yearOfDisclosure"] >= 2024

    listed = client.get("/api/companies").json()
    assert listed["pagination"]["total"] == 1


def test_create_company_missing_fields(client):
    response = client.post("/api/companies", json={"company_name": "Half Filled", "country": "USA"})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields: company_name, country, sector, industry"


def test_filter_options(client, seeded):
    response = client.get("/api/companies/filters/options")
    data = response.json()["data"]
    assert data["countries"] == ["Germany", "UK", "USA"]
    assert data["sectors"] == ["Consumer Staples", "Industrials", "Materials", "Utilities"]
    assert "Waste Management" in data["industries"]


def test_search_suggestions(client, seeded):
    short = client.get("/api/companies/search/suggestions", params={"q": "a"})
    assert short.json()["data"] == []

    response = client.get("/api/companies/search/suggestions", params={"q": "ac"})
    assert response.json()["data"] == [{"id": seeded["acme"], "name": "Acme Recycling Inc"}]


# -----------------------------------------------------------------------------
# Map feed
# -----------------------------------------------------------------------------

def test_companies_with_coordinates_cache_headers(client, seeded):
    first = client.get("/api/companies-with-coordinates")
    assert first.status_code == 200
    assert first.headers["X-Cache"] == "MISS"
    assert "max-age=300" in first.headers["Cache-Control"]
    assert "X-Cache-Updated" in first.headers

    points = first.json()
    assert isinstance(points, list)
    assert [p["name"] for p in points] == ["Acme Recycling Inc", "Bergmann AG"]
    assert points[0]["recoveryRate"] == 75

    second = client.get("/api/companies-with-coordinates")
    assert second.headers["X-Cache"] == "HIT"
    assert second.json() == points


def test_companies_with_coordinates_serves_stale_on_query_failure(client, seeded, monkeypatch):
    client.get("/api/companies-with-coordinates")
    _cache_store[company_service.MAP_CACHE_KEY].stored_at -= 10_000

    def broken(db):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(company_service, "_load_map_points", broken)

    response = client.get("/api/companies-with-coordinates")
    assert response.status_code == 200
    assert response.headers["X-Cache"] == "STALE"
    assert response.headers["Cache-Control"] == "public, max-age=60"
    assert len(response.json()) == 2


def test_companies_with_coordinates_failure_without_cache(client, seeded, monkeypatch):
    def broken(db):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(company_service, "_load_map_points", broken)

    response = client.get("/api/companies-with-coordinates")
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to load companies data"


def test_create_company_invalidates_map_cache(client, seeded):
    client.get("/api/companies-with-coordinates")
    client.post(
        "/api/companies",
        json={
            "company_name": "Zephyr Waste",
            "country": "Canada",
            "sector": "Industrials",
            "industry": "Waste Management",
            "coordinates": {"lat": 43.65, "lng": -79.38},
        },
    )
    response = client.get("/api/companies-with-coordinates")
    assert response.headers["X-Cache"] == "MISS"
    assert len(response.json()) == 3


def test_companies_with_coordinates_requires_user_agent(client, seeded):
    response = client.get("/api/companies-with-coordinates", headers={"User-Agent": ""})
    assert response.status_code == 429


def test_companies_with_coordinates_rate_limit(client, seeded, monkeypatch):
    from wasteintel.core import rate_limit

    real_hit = rate_limit.hit
    monkeypatch.setattr(rate_limit, "hit", lambda scope, client_id, limit, now=None: real_hit(scope, client_id, 2, now))

    assert client.get("/api/companies-with-coordinates").status_code == 200
    assert client.get("/api/companies-with-coordinates").status_code == 200
    blocked = client.get("/api/companies-with-coordinates")
    assert blocked.status_code == 429
    assert blocked.json()["error"] == "Rate limit exceeded"
