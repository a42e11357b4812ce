"""
Tests for core helpers: rounding / coercion, the TTL cache, the fixed-window
rate limiter, database URL normalisation, request-id logging and the health endpoint.
"""

import logging

import pytest

from wasteintel.core import rate_limit
from wasteintel.core.cache import (
    _cache_store,
    cache_clear,
    cache_delete,
    cache_get,
    cache_set,
    cache_stored_at,
    make_key,
)
from wasteintel.core.database import normalize_db_url
from wasteintel.core.logging import (
    NO_REQUEST,
    RequestIdFilter,
    bind_request_id,
    current_request_id,
    reset_request_id,
)
from wasteintel.utils.numbers import percentage, round2, round_int, to_float


# -----------------------------------------------------------------------------
# Numbers
# -----------------------------------------------------------------------------

def test_round2_rounds_half_up():
    assert round2(2.345) == 2.35
    assert round2(2.344) == 2.34
    assert round2(-2.345) == -2.35
    assert round2(None) == 0.0


def test_round_int_rounds_half_up():
    assert round_int(2.5) == 3
    assert round_int(3.5) == 4
    assert round_int(None) == 0


def test_percentage_guards_zero_denominator():
    assert percentage(1, 0) == 0.0
    assert percentage(1, None) == 0.0
    assert percentage(None, 4) == 0.0
    assert percentage(1, 4) == 25.0


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1,200 ", 1200.0),
        ("  ", 0.0),
        ("abc", 0.0),
        ("nan", 0.0),
        (None, 0.0),
        (7, 7.0),
        ("3.5", 3.5),
        ("85%", 85.0),
        ("12,000 t", 12000.0),
        ("-1.5e2kg", -150.0),
        (".5", 0.5),
        ("1e999", 0.0),
        (float("nan"), 0.0),
    ],
)
def test_to_float(value, expected):
    assert to_float(value) == expected


# -----------------------------------------------------------------------------
# Cache
# -----------------------------------------------------------------------------

def test_cache_expiry_and_stale_reads():
    key = make_key("charts", "example")
    assert key == "charts:example"

    cache_set(key, {"value": 1}, ttl_seconds=60)
    assert cache_get(key) == {"value": 1}
    assert cache_stored_at(key) is not None

    _cache_store[key].stored_at -= 120
    assert cache_get(key) is None
    assert cache_get(key, allow_stale=True) == {"value": 1}


def test_cache_delete_and_namespace_clear():
    cache_set("charts:a", 1)
    cache_set("charts:b", 2)
    cache_set("companies:c", 3)

    cache_delete("charts:a")
    assert cache_get("charts:a") is None

    cache_clear("charts")
    assert cache_get("charts:b") is None
    assert cache_get("companies:c") == 3


# -----------------------------------------------------------------------------
# Rate limiting
# -----------------------------------------------------------------------------

def test_rate_limit_window():
    assert rate_limit.hit("coordinates", "1.2.3.4", 2, now=0.0) is True
    assert rate_limit.hit("coordinates", "1.2.3.4", 2, now=1.0) is True
    assert rate_limit.hit("coordinates", "1.2.3.4", 2, now=2.0) is False

    # other clients and scopes have their own counters
    assert rate_limit.hit("coordinates", "5.6.7.8", 2, now=2.0) is True
    assert rate_limit.hit("uploads", "1.2.3.4", 2, now=2.0) is True

    # a new window opens after 60 seconds
    assert rate_limit.hit("coordinates", "1.2.3.4", 2, now=61.0) is True


# -----------------------------------------------------------------------------
# Database URL
# -----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@host:5432/db", "postgresql+psycopg://u:p@host:5432/db"),
        ("postgresql://u:p@host:5432/db", "postgresql+psycopg://u:p@host:5432/db"),
        ("postgresql+psycopg2://u:p@host/db", "postgresql+psycopg2://u:p@host/db"),
        (" sqlite:///local.db ", "sqlite:///local.db"),
    ],
)
def test_normalize_db_url(url, expected):
    assert normalize_db_url(url) == expected


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------

def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Waste Intelligence backend running"}


def test_request_id_is_echoed_or_generated(client):
    echoed = client.get("/", headers={"X-Request-ID": "upload-batch-7"})
    assert echoed.headers["X-Request-ID"] == "upload-batch-7"

    generated = client.get("/")
    assert len(generated.headers["X-Request-ID"]) == 12
    assert current_request_id() == NO_REQUEST


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------

def test_request_id_filter_stamps_records():
    record = logging.LogRecord("wasteintel.test", logging.INFO, __file__, 1, "hello", None, None)

    RequestIdFilter().filter(record)
    assert record.request_id == NO_REQUEST

    token = bind_request_id("abc123")
    try:
        RequestIdFilter().filter(record)
        assert record.request_id == "abc123"
    finally:
        reset_request_id(token)
    assert current_request_id() == NO_REQUEST
