"""
Tests for company enrichment (services/enrichment.py) and the Wikipedia
summary client (services/clients/wikipedia_client.py).

No network access: the client gets a MagicMock session, and the enrich
endpoint gets a fake client class.
"""

import datetime
from unittest.mock import MagicMock

import pytest
import requests

from wasteintel.models import Company
from wasteintel.services import enrichment
from wasteintel.services.clients.wikipedia_client import (
    WikipediaClient,
    WikipediaClientError,
    WikipediaClientSettings,
)

SUMMARY = {
    "type": "standard",
    "title": "Bergmann",
    "extract": "Bergmann is a German utility company.",
    "content_urls": {"desktop": {"page": "https://en.wikipedia.org/wiki/Bergmann"}},
}

TEST_CONFIG = WikipediaClientSettings(user_agent="tests/1.0", timeout_seconds=1)


def _response(status_code, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload
    return response


def _session(*responses):
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


@pytest.fixture
def no_retry_sleep(monkeypatch):
    monkeypatch.setattr(WikipediaClient._perform_request.retry, "sleep", lambda seconds: None)


# -----------------------------------------------------------------------------
# Staleness rules
# -----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "name, expected",
    [
        ("Siemens AG", "Siemens"),
        ("Waste Management Inc.", "Waste Management"),
        ("Veolia Environnement SA", "Veolia Environnement"),
        ("Suez", "Suez"),
    ],
)
def test_search_title_strips_legal_suffix(name, expected):
    assert enrichment.search_title(name) == expected


def test_needs_enrichment():
    now = datetime.datetime(2024, 6, 1)
    fresh = Company(
        description="Known company",
        data_source="Wikipedia",
        last_enriched=now - datetime.timedelta(days=1),
    )
    assert enrichment.needs_enrichment(fresh, now=now) is False

    stale = Company(
        description="Known company",
        data_source="Wikipedia",
        last_enriched=now - datetime.timedelta(days=45),
    )
    assert enrichment.needs_enrichment(stale, now=now) is True

    placeholder = Company(
        description="Placeholder",
        data_source="Generated",
        last_enriched=now,
    )
    assert enrichment.needs_enrichment(placeholder, now=now) is True

    assert enrichment.needs_enrichment(Company(description=None), now=now) is True


def test_enrichment_status_endpoint(client, seeded):
    response = client.get(f"/api/companies/{seeded['acme']}/enrich")
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["needsEnrichment"] is True
    assert data["lastEnriched"] is None

    assert client.get("/api/companies/missing/enrich").status_code == 404


# -----------------------------------------------------------------------------
# Enrichment flow
# -----------------------------------------------------------------------------

class FakeWikipediaClient:
    summaries = {}
    requested = []

    def get_summary(self, title):
        self.requested.append(title)
        return self.summaries.get(title)


@pytest.fixture
def fake_wikipedia(monkeypatch):
    FakeWikipediaClient.summaries = {"Bergmann": SUMMARY}
    FakeWikipediaClient.requested = []
    monkeypatch.setattr(enrichment, "WikipediaClient", FakeWikipediaClient)
    return FakeWikipediaClient


def test_enrich_company(client, seeded, fake_wikipedia):
    response = client.post(f"/api/companies/{seeded['bergmann']}/enrich")
    assert response.status_code == 200

    data = response.json()["data"]
    assert fake_wikipedia.requested == ["Bergmann"]
    assert data["company"]["description"] == SUMMARY["extract"]
    assert data["company"]["website_url"] == "https://en.wikipedia.org/wiki/Bergmann"
    assert data["company"]["data_source"] == "Wikipedia"
    assert data["enrichment"]["confidence"] == 0.7

    status = client.get(f"/api/companies/{seeded['bergmann']}/enrich").json()["data"]
    assert status["needsEnrichment"] is False


def test_enrich_company_keeps_existing_website(client, seeded, fake_wikipedia):
    fake_wikipedia.summaries = {"Acme Recycling": {**SUMMARY, "extract": "Acme recycles."}}

    data = client.post(f"/api/companies/{seeded['acme']}/enrich").json()["data"]
    assert data["company"]["website_url"] == "https://acme.example"
    assert data["company"]["description"] == "Acme recycles."


def test_enrich_company_without_summary(client, seeded, fake_wikipedia):
    response = client.post(f"/api/companies/{seeded['cobalt']}/enrich")
    assert response.status_code == 404
    assert response.json()["error"] == "Unable to enrich company data"


def test_fetch_enrichment_ignores_disambiguation():
    client = MagicMock()
    client.get_summary.return_value = {**SUMMARY, "type": "disambiguation"}
    assert enrichment.fetch_enrichment(client, "Bergmann AG") is None


def test_fetch_enrichment_swallows_client_errors():
    client = MagicMock()
    client.get_summary.side_effect = WikipediaClientError("boom")
    assert enrichment.fetch_enrichment(client, "Bergmann AG") is None


# -----------------------------------------------------------------------------
# Wikipedia client
# -----------------------------------------------------------------------------

def test_client_sets_headers_and_quotes_title():
    session = _session(_response(200, SUMMARY))
    client = WikipediaClient(session=session, config=TEST_CONFIG)

    assert client.get_summary("Bergmann & Söhne") == SUMMARY
    assert session.headers["User-Agent"] == "tests/1.0"

    url = session.get.call_args.args[0]
    assert url == "https://en.wikipedia.org/api/rest_v1/page/summary/Bergmann_%26_S%C3%B6hne"
    assert session.get.call_args.kwargs["timeout"] == 1


def test_client_returns_none_for_missing_page():
    client = WikipediaClient(session=_session(_response(404)), config=TEST_CONFIG)
    assert client.get_summary("Nope") is None


def test_client_retries_server_errors(no_retry_sleep):
    session = _session(_response(503), _response(200, SUMMARY))
    client = WikipediaClient(session=session, config=TEST_CONFIG)

    assert client.get_summary("Bergmann") == SUMMARY
    assert session.get.call_count == 2


def test_client_gives_up_after_retries(no_retry_sleep):
    session = _session(*[_response(503) for _ in range(5)])
    client = WikipediaClient(session=session, config=TEST_CONFIG)

    with pytest.raises(WikipediaClientError):
        client.get_summary("Bergmann")


def test_client_wraps_connection_errors(no_retry_sleep):
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = requests.ConnectionError("offline")
    client = WikipediaClient(session=session, config=TEST_CONFIG)

    with pytest.raises(WikipediaClientError, match="offline"):
        client.get_summary("Bergmann")


def test_client_raises_on_client_error():
    client = WikipediaClient(session=_session(_response(400)), config=TEST_CONFIG)
    with pytest.raises(WikipediaClientError, match="status 400"):
        client.get_summary("Bad Title")


def test_client_wraps_non_json_summary():
    response = _response(200)
    response.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
    client = WikipediaClient(session=_session(response), config=TEST_CONFIG)

    with pytest.raises(WikipediaClientError, match="non-JSON"):
        client.get_summary("Bergmann")
