"""
csv_import.py — CSV Parsing and Waste-Company Row Mapping

Purpose:
- Parse uploaded CSV bytes (or a CSV file on disk) with pandas.
- Map loosely formatted rows to waste-company records, accepting the column
  spellings seen in customer spreadsheets ("company_name", "Company Name",
  "company", ...).
- Check an upload's structure and report issues / suggestions.

Nothing parsed here is persisted; callers return previews to the client.

Usage:
    headers, rows = parse_csv(content, normalise_headers=True)
    companies = map_waste_companies(rows)
    report = validate_structure(rows)
"""

import datetime
import io
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from wasteintel.core.errors import ValidationFailedError
from wasteintel.core.logging import get_logger
from wasteintel.utils.numbers import to_float

logger = get_logger(__name__)

EMPTY_CSV_MESSAGE = "CSV file appears to be empty or has no data rows"

# -----------------------------------------------------------------------------
# Column spellings
# -----------------------------------------------------------------------------

NAME_KEYS = ("company_name", "company", "name", "Company Name", "Company")
COUNTRY_KEYS = ("country", "Country", "nation", "Nation")
REGION_KEYS = ("region", "Region", "area", "Area")
WASTE_TYPE_KEYS = ("waste_type", "type", "Waste Type", "Type", "category", "Category")
LATITUDE_KEYS = ("latitude", "lat", "Latitude", "Lat")
LONGITUDE_KEYS = ("longitude", "lng", "lon", "Longitude", "Lng", "Lon")
CERTIFICATION_KEYS = ("certifications", "Certifications", "certificates", "Certificates")
VOLUME_KEYS = ("annual_volume", "volume", "Annual Volume", "Volume", "tons", "Tons")
RECYCLING_KEYS = ("recycling_rate", "recycling", "Recycling Rate", "Recycling", "recycle_rate")
COMPLIANCE_KEYS = ("compliance_score", "compliance", "Compliance Score", "Compliance")
EMPLOYEE_KEYS = ("employees", "Employees", "staff", "Staff", "workforce", "Workforce")
REVENUE_KEYS = ("revenue", "Revenue", "income", "Income", "turnover", "Turnover")

REGION_BY_COUNTRY = {
    "USA": "North America",
    "Canada": "North America",
    "Mexico": "North America",
    "Germany": "Europe",
    "France": "Europe",
    "UK": "Europe",
    "Italy": "Europe",
    "Spain": "Europe",
    "Netherlands": "Europe",
    "Sweden": "Europe",
    "Norway": "Europe",
    "Japan": "Asia Pacific",
    "China": "Asia Pacific",
    "Korea": "Asia Pacific",
    "Australia": "Asia Pacific",
    "India": "Asia Pacific",
    "Singapore": "Asia Pacific",
    "Brazil": "South America",
    "Argentina": "South America",
    "Chile": "South America",
}

# Approximate country centroids used when a row has no coordinates
COUNTRY_CENTROIDS = {
    "USA": (39.8283, -98.5795),
    "Germany": (51.1657, 10.4515),
    "Japan": (36.2048, 138.2529),
    "UK": (55.3781, -3.4360),
    "France": (46.2276, 2.2137),
    "Canada": (56.1304, -106.3468),
    "Australia": (-25.2744, 133.7751),
    "Netherlands": (52.1326, 5.2913),
    "Sweden": (60.1282, 18.6435),
    "China": (35.8617, 104.1954),
}


def region_for_country(country: str) -> str:
    return REGION_BY_COUNTRY.get(country, "Other")


def country_centroid(country: str) -> Tuple[float, float]:
    return COUNTRY_CENTROIDS.get(country, (0.0, 0.0))


def normalise_header(header: str) -> str:
    """'Annual Volume' → 'annual_volume'"""
    return re.sub(r"\s+", "_", str(header).strip().lower())


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------

def parse_csv(
    source: Union[bytes, str, Path],
    normalise_headers: bool = False,
) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Parse CSV content into (headers, rows).

    - `source` is raw bytes or a filesystem path.
    - Every cell is read as text; empty cells become "".
    - Blank lines are skipped.
    - Bytes that are not valid UTF-8 decode to U+FFFD instead of failing.

    Raises:
        ValidationFailedError: If there is no header row or no data rows.
    """
    buffer = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        frame = pd.read_csv(
            buffer,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
            encoding_errors="replace",
        )
    except pd.errors.EmptyDataError:
        raise ValidationFailedError(EMPTY_CSV_MESSAGE)
    except pd.errors.ParserError as e:
        raise ValidationFailedError(f"CSV parsing failed: {e}")

    headers = [str(column).strip().strip('"') for column in frame.columns]
    if normalise_headers:
        headers = [normalise_header(column) for column in headers]
    frame.columns = headers

    # Drop rows where every cell is empty (e.g. ",,,")
    frame = frame[(frame != "").any(axis=1)]
    if frame.empty:
        raise ValidationFailedError(EMPTY_CSV_MESSAGE)

    rows = frame.to_dict(orient="records")
    logger.info(f"Parsed CSV with {len(headers)} columns and {len(rows)} rows")
    return headers, rows


# -----------------------------------------------------------------------------
# Row mapping
# -----------------------------------------------------------------------------

def _first_value(row: Dict[str, Any], keys: Iterable[str]) -> str:
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def _number(row: Dict[str, Any], keys: Iterable[str]) -> float:
    return to_float(_first_value(row, keys))


def map_waste_company(row: Dict[str, Any], index: int, updated_at: Optional[str] = None) -> Dict[str, Any]:
    """
    Map one CSV row to a waste-company record.

    Defaults:
    - name      → "Company <n>"
    - country   → "Unknown"
    - region    → derived from country
    - wasteType → "Mixed"
    - coordinates missing or zero → country centroid
    - rates capped at 100
    """
    name = _first_value(row, NAME_KEYS) or f"Company {index + 1}"
    country = _first_value(row, COUNTRY_KEYS) or "Unknown"
    region = _first_value(row, REGION_KEYS) or region_for_country(country)
    centroid = country_centroid(country)

    certifications = [
        cert.strip()
        for cert in _first_value(row, CERTIFICATION_KEYS).split(",")
        if cert.strip()
    ]

    return {
        "id": str(index + 1),
        "name": name,
        "country": country,
        "region": region,
        "wasteType": _first_value(row, WASTE_TYPE_KEYS) or "Mixed",
        "annualVolume": _number(row, VOLUME_KEYS),
        "recyclingRate": min(100.0, _number(row, RECYCLING_KEYS)),
        "complianceScore": min(100.0, _number(row, COMPLIANCE_KEYS)),
        "coordinates": {
            "lat": _number(row, LATITUDE_KEYS) or centroid[0],
            "lng": _number(row, LONGITUDE_KEYS) or centroid[1],
        },
        "employees": _number(row, EMPLOYEE_KEYS) or None,
        "revenue": _number(row, REVENUE_KEYS) or None,
        "certifications": certifications,
        "lastUpdated": updated_at or datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


def map_waste_companies(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    updated_at = datetime.datetime.now(datetime.timezone.utc).isoformat()
    return [map_waste_company(row, index, updated_at) for index, row in enumerate(rows)]


# -----------------------------------------------------------------------------
# Structure validation
# -----------------------------------------------------------------------------

def validate_structure(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Inspect the first row's columns.

    Returns:
        {"isValid": bool, "issues": [...], "suggestions": [...]}
    """
    issues: List[str] = []
    suggestions: List[str] = []

    if not rows:
        issues.append("CSV file is empty")
        return {"isValid": False, "issues": issues, "suggestions": suggestions}

    columns = set(rows[0].keys())

    def has_any(options: Iterable[str]) -> bool:
        return any(option in columns for option in options)

    if not has_any(("company_name", "company", "name")):
        issues.append("Missing company name field")
    if not has_any(("country", "Country")):
        issues.append("Missing country field")

    if not has_any(("annual_volume", "volume", "tons")):
        suggestions.append("Consider adding annual volume data")
    if not has_any(("recycling_rate", "recycling")):
        suggestions.append("Consider adding recycling rate data")

    return {"isValid": not issues, "issues": issues, "suggestions": suggestions}


def load_waste_data(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Process the sample CSV shipped with a deployment."""
    _, rows = parse_csv(Path(path))
    return map_waste_companies(rows)
