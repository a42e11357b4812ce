"""
Shared fixtures: in-memory SQLite database, FastAPI TestClient, seeded
companies / metrics / waste streams, and Supabase JWTs.

Fixture dataset (hand-checked totals are asserted in the test modules):

    company              country  sector            metrics (period: gen/rec/disp, rate)
    Acme Recycling Inc   USA      Industrials       2022: 1000/600/400 60 · 2023: 1200/900/300 75
    Bergmann AG          Germany  Utilities         2023: 500/450/50 90
    Cobalt Mining PLC    UK       Materials         2023: 2000/200/1800 10
    Delta Foods          USA      Consumer Staples  (none)
"""

import datetime
import time

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wasteintel.core import rate_limit
from wasteintel.core.cache import cache_clear
from wasteintel.core.config import settings
from wasteintel.core.database import get_db
from wasteintel.main import app
from wasteintel.models import (
    Base,
    Company,
    CompanyDataTemplate,
    CompanyMetric,
    WasteStream,
)
from wasteintel.models.waste_stream import (
    HAZARDOUS_GENERATED,
    NON_HAZARDOUS_GENERATED,
    TOTAL_DISPOSED,
    TOTAL_GENERATED,
    TOTAL_RECOVERED,
)

TEST_JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"


# -----------------------------------------------------------------------------
# Database / client
# -----------------------------------------------------------------------------

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_process_state():
    cache_clear()
    rate_limit.reset()
    yield
    cache_clear()
    rate_limit.reset()


# -----------------------------------------------------------------------------
# Seed data
# -----------------------------------------------------------------------------

def _metric(company_id, period, generated, recovered, disposed, rate, hazardous, non_hazardous):
    return CompanyMetric(
        company_id=company_id,
        reporting_period=period,
        total_waste_generated=generated,
        total_waste_recovered=recovered,
        total_waste_disposed=disposed,
        recovery_rate=rate,
        hazardous_waste_generated=hazardous,
        non_hazardous_waste_generated=non_hazardous,
    )


def _stream(company_id, period, metric, hazardousness, treatment, value):
    return WasteStream(
        company_id=company_id,
        reporting_period=period,
        metric=metric,
        hazardousness=hazardousness,
        treatment_method=treatment,
        value=value,
    )


@pytest.fixture
def seeded(db_session):
    """Seed the fixture dataset; returns {"acme": id, "bergmann": id, ...}."""
    base_time = datetime.datetime(2024, 1, 1, 12, 0, 0)
    companies = {
        "acme": Company(
            id="c-acme",
            company_name="Acme Recycling Inc",
            country="USA",
            sector="Industrials",
            industry="Waste Management",
            employees=1200,
            year_of_disclosure=2023,
            ticker="ACME",
            latitude=42.3601,
            longitude=-71.0589,
            website_url="https://acme.example",
            csv_company_id="csv-1",
            template_version="v2",
            created_at=base_time,
        ),
        "bergmann": Company(
            id="c-bergmann",
            company_name="Bergmann AG",
            country="Germany",
            sector="Utilities",
            industry="Multi-Utilities",
            employees=500,
            year_of_disclosure=2023,
            latitude=52.52,
            longitude=13.405,
            csv_company_id="csv-2",
            template_version="v3",
            created_at=base_time + datetime.timedelta(days=1),
        ),
        "cobalt": Company(
            id="c-cobalt",
            company_name="Cobalt Mining PLC",
            country="UK",
            sector="Materials",
            industry="Metals & Mining",
            employees=3000,
            year_of_disclosure=2023,
            created_at=base_time + datetime.timedelta(days=2),
        ),
        "delta": Company(
            id="c-delta",
            company_name="Delta Foods",
            country="USA",
            sector="Consumer Staples",
            industry="Food Products",
            year_of_disclosure=2022,
            created_at=base_time + datetime.timedelta(days=3),
        ),
    }
    db_session.add_all(companies.values())
    db_session.flush()

    acme, bergmann, cobalt, delta = (companies[k].id for k in ("acme", "bergmann", "cobalt", "delta"))

    db_session.add_all([
        _metric(acme, 2022, 1000, 600, 400, 60, 100, 900),
        _metric(acme, 2023, 1200, 900, 300, 75, 200, 1000),
        _metric(bergmann, 2023, 500, 450, 50, 90, 50, 450),
        _metric(cobalt, 2023, 2000, 200, 1800, 10, 800, 1200),
    ])

    db_session.add_all([
        _stream(acme, 2022, TOTAL_GENERATED, "Total", "Total", 1000),
        _stream(acme, 2022, TOTAL_RECOVERED, "Total", "Recycling", 600),
        _stream(acme, 2023, TOTAL_GENERATED, "Total", "Total", 1200),
        _stream(acme, 2023, TOTAL_RECOVERED, "Total", "Recycling", 900),
        _stream(acme, 2023, HAZARDOUS_GENERATED, "Hazardous", "Total", 200),
        _stream(acme, 2023, NON_HAZARDOUS_GENERATED, "Non-Hazardous", "Total", 1000),
        _stream(bergmann, 2023, TOTAL_GENERATED, "Total", "Total", 500),
        _stream(bergmann, 2023, TOTAL_RECOVERED, "Total", "Energy Recovery", 450),
        _stream(bergmann, 2023, HAZARDOUS_GENERATED, "Hazardous", "Total", 50),
        _stream(bergmann, 2023, NON_HAZARDOUS_GENERATED, "Non-Hazardous", "Total", 450),
        _stream(cobalt, 2023, TOTAL_GENERATED, "Total", "Total", 2000),
        _stream(cobalt, 2023, TOTAL_DISPOSED, "Total", "Landfill", 1800),
        _stream(cobalt, 2018, TOTAL_GENERATED, "Total", "Total", 5000),
    ])

    db_session.add_all([
        CompanyDataTemplate(
            company_id=acme,
            profile={
                "description": "Template description for Acme",
                "headquarters": "Boston",
                "website_url": "https://template.example",
            },
            waste_management={
                "total_waste_generated": 1200,
                "total_waste_recovered": 900,
                "recovery_rate": 70,
                "hazardous_waste": {"generated": 200},
                "non_hazardous_waste": {"generated": 1000},
                "waste_types": {"industrial": 700, "municipal": 500},
                "treatment_methods": {"recycling": 900},
            },
            performance={"score": 82, "trend": "improving"},
        ),
        CompanyDataTemplate(
            company_id=delta,
            waste_management={"total_waste_generated": 0, "recovery_rate": 40},
        ),
    ])
    db_session.commit()

    return {name: company.id for name, company in companies.items()}


@pytest.fixture
def utility_peer(seeded, db_session):
    """A second German multi-utility (2023: 300/210/90, rate 70) for peer averages."""
    db_session.add(Company(
        id="c-echo",
        company_name="Echo Energie GmbH",
        country="Germany",
        sector="Utilities",
        industry="Multi-Utilities",
        year_of_disclosure=2023,
    ))
    db_session.flush()
    db_session.add(_metric("c-echo", 2023, 300, 210, 90, 70, 0, 300))
    db_session.commit()
    return "c-echo"


# -----------------------------------------------------------------------------
# Auth
# -----------------------------------------------------------------------------

@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    return TEST_JWT_SECRET


def make_token(secret, sub="user-1", email="ann@example.com", metadata=None, expires_in=3600):
    now = int(time.time())
    claims = {
        "sub": sub,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "user_metadata": metadata if metadata is not None else {"full_name": "Ann Analyst"},
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def auth_headers(jwt_secret):
    return {"Authorization": f"Bearer {make_token(jwt_secret)}"}
