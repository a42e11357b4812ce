"""
seed_sample_data.py — Load the bundled sample CSV into a database.

Creates any missing tables, then inserts one company per sample row plus a
company_metrics row and Total Generated / Recovered / Disposed waste streams for
the given reporting year. Companies that already exist (by name) are skipped.

Example:
    python scripts/seed_sample_data.py `
        --db-url sqlite:///waste_dev.db `
        --year 2023
"""

import argparse
import sys

from sqlalchemy.orm import Session

from wasteintel.core.config import settings
from wasteintel.core.database import build_engine
from wasteintel.core.logging import configure_logging, get_logger
from wasteintel.models import Base, Company, CompanyMetric, WasteStream
from wasteintel.models.waste_stream import TOTAL_DISPOSED, TOTAL_GENERATED, TOTAL_RECOVERED
from wasteintel.services.csv_import import load_waste_data
from wasteintel.utils.numbers import round2

logger = get_logger(__name__)

SAMPLE_SECTOR = "Industrials"
SAMPLE_INDUSTRY = "Waste Management"


def seed(session: Session, records, year: int) -> int:
    """Insert sample records; returns the number of companies created."""
    existing = {name for (name,) in session.query(Company.company_name).all()}
    created = 0

    for record in records:
        if record["name"] in existing:
            logger.info(f"Skipping existing company {record['name']}")
            continue

        company = Company(
            company_name=record["name"],
            country=record["country"],
            sector=SAMPLE_SECTOR,
            industry=SAMPLE_INDUSTRY,
            industry_detail=record["wasteType"],
            employees=int(record["employees"]) if record["employees"] else None,
            revenue_usd=record["revenue"],
            year_of_disclosure=year,
            latitude=record["coordinates"]["lat"] or None,
            longitude=record["coordinates"]["lng"] or None,
            data_source="Sample CSV",
        )
        session.add(company)
        session.flush()

        generated = record["annualVolume"]
        recovered = round2(generated * record["recyclingRate"] / 100)
        disposed = round2(generated - recovered)

        session.add(CompanyMetric(
            company_id=company.id,
            reporting_period=year,
            total_waste_generated=generated,
            total_waste_recovered=recovered,
            total_waste_disposed=disposed,
            recovery_rate=record["recyclingRate"],
            non_hazardous_waste_generated=generated,
        ))
        for metric, treatment, value in (
            (TOTAL_GENERATED, "Total", generated),
            (TOTAL_RECOVERED, "Recycling", recovered),
            (TOTAL_DISPOSED, "Landfill", disposed),
        ):
            session.add(WasteStream(
                company_id=company.id,
                reporting_period=year,
                metric=metric,
                hazardousness="Total",
                treatment_method=treatment,
                value=value,
            ))
        created += 1

    session.commit()
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed a database with the bundled sample waste data")
    parser.add_argument(
        "--db-url",
        type=str,
        default=settings.SUPABASE_DB_URL,
        help="SQLAlchemy database URL (default: SUPABASE_DB_URL)",
    )
    parser.add_argument(
        "--csv",
        type=str,
        default=settings.WASTE_DATA_CSV_PATH,
        help="CSV file to load (default: WASTE_DATA_CSV_PATH)",
    )
    parser.add_argument("--year", type=int, default=2023, help="Reporting period for the seeded metrics")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)

    if not args.db_url.strip():
        print("ERROR: no database URL; pass --db-url or set SUPABASE_DB_URL", file=sys.stderr)
        sys.exit(1)

    try:
        engine = build_engine(args.db_url)
        Base.metadata.create_all(engine)

        records = load_waste_data(args.csv)
        logger.info(f"Loaded {len(records)} sample records from {args.csv}")

        with Session(engine) as session:
            created = seed(session, records, args.year)

        print(f"Seeded {created} companies ({len(records) - created} already present)")

    except Exception as e:
        print(f"ERROR: Seeding failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
