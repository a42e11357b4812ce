"""
enrichment.py — Company Description Enrichment

Purpose:
- Decide whether a company's public description needs refreshing.
- Look the company up on Wikipedia and store the summary on the company row.

Staleness rules (any one triggers enrichment):
- no description
- never enriched
- data_source == "Generated" (placeholder text)
- last enriched more than settings.ENRICHMENT_STALE_DAYS ago
"""

import datetime
import re
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from wasteintel.core.config import settings
from wasteintel.core.errors import NotFoundError
from wasteintel.core.logging import get_logger
from wasteintel.models.base import utcnow
from wasteintel.models.company import Company
from wasteintel.services.clients.wikipedia_client import WikipediaClient, WikipediaClientError
from wasteintel.services.companies import get_company_or_404

logger = get_logger(__name__)

GENERATED_SOURCE = "Generated"
WIKIPEDIA_SOURCE = "Wikipedia"

LEGAL_SUFFIX_RE = re.compile(r"\s+(AG|SA|SpA|SE|NV|Ltd|Inc|Corp|GmbH|PLC)\.?$", re.IGNORECASE)


def search_title(company_name: str) -> str:
    """'Siemens AG' → 'Siemens'"""
    return LEGAL_SUFFIX_RE.sub("", company_name.strip())


def needs_enrichment(company: Company, now: Optional[datetime.datetime] = None) -> bool:
    if not company.description or not company.last_enriched:
        return True
    if company.data_source == GENERATED_SOURCE:
        return True
    now = now or utcnow()
    return now - company.last_enriched > datetime.timedelta(days=settings.ENRICHMENT_STALE_DAYS)


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def enrichment_status(db: Session, company_id: str) -> Dict[str, Any]:
    company = get_company_or_404(db, company_id)
    return {
        "company": {
            "id": company.id,
            "company_name": company.company_name,
            "description": company.description,
            "last_enriched": _iso(company.last_enriched),
            "data_source": company.data_source,
        },
        "needsEnrichment": needs_enrichment(company),
        "lastEnriched": _iso(company.last_enriched),
        "dataSource": company.data_source,
    }


def fetch_enrichment(client: WikipediaClient, company_name: str) -> Optional[Dict[str, Any]]:
    """
    Public summary for a company, or None when nothing usable was found.

    Disambiguation pages and pages without an extract are ignored.
    """
    try:
        summary = client.get_summary(search_title(company_name))
    except WikipediaClientError as e:
        logger.warning(f"Enrichment lookup failed for {company_name}: {e}")
        return None

    if not summary or summary.get("type") != "standard" or not summary.get("extract"):
        return None

    page_url = ((summary.get("content_urls") or {}).get("desktop") or {}).get("page")
    return {
        "description": summary["extract"],
        "industry": None,
        "website": page_url,
        "source": WIKIPEDIA_SOURCE,
        "confidence": 0.7,
    }


def enrich_company(db: Session, company_id: str, client: Optional[WikipediaClient] = None) -> Dict[str, Any]:
    """
    Fetch and store a company description.

    Raises:
        NotFoundError: If the company does not exist or nothing was found.
    """
    company = get_company_or_404(db, company_id)
    client = client or WikipediaClient()

    enrichment = fetch_enrichment(client, company.company_name)
    if enrichment is None:
        raise NotFoundError("Unable to enrich company data")

    company.description = enrichment["description"]
    if enrichment["industry"]:
        company.industry_detail = enrichment["industry"]
    if enrichment["website"] and not company.website_url:
        company.website_url = enrichment["website"]
    company.data_source = enrichment["source"]
    company.last_enriched = utcnow()
    db.commit()
    db.refresh(company)

    logger.info(f"Enriched company {company.id} from {enrichment['source']}")
    return {
        "company": {
            "id": company.id,
            "company_name": company.company_name,
            "country": company.country,
            "sector": company.sector,
            "description": company.description,
            "website_url": company.website_url,
            "industry_detail": company.industry_detail,
            "data_source": company.data_source,
            "last_enriched": _iso(company.last_enriched),
        },
        "enrichment": enrichment,
    }
