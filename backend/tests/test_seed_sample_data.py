"""
Tests for scripts/seed_sample_data.py against the bundled sample CSV.
"""

from scripts.seed_sample_data import seed
from wasteintel.core.config import settings
from wasteintel.models import Company, CompanyMetric, WasteStream
from wasteintel.services.csv_import import load_waste_data


def test_seed_loads_sample_companies(db_session):
    records = load_waste_data(settings.WASTE_DATA_CSV_PATH)

    assert seed(db_session, records, 2023) == 6
    assert db_session.query(Company).count() == 6
    assert db_session.query(WasteStream).count() == 18

    eco = db_session.query(Company).filter(Company.company_name == "EcoWaste Solutions Inc.").one()
    metric = db_session.query(CompanyMetric).filter(CompanyMetric.company_id == eco.id).one()
    assert metric.total_waste_generated == 150000
    assert metric.total_waste_recovered == 97500
    assert metric.recovery_rate == 65


def test_seed_skips_existing_companies(db_session):
    records = load_waste_data(settings.WASTE_DATA_CSV_PATH)
    seed(db_session, records, 2023)

    assert seed(db_session, records, 2023) == 0
    assert db_session.query(Company).count() == 6
