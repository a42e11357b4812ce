"""
wikipedia_client.py — HTTP client for the Wikipedia REST summary endpoint.

Responsibilities:
- Look up a page summary by title (https://en.wikipedia.org/api/rest_v1/page/summary/<title>)
- Identify ourselves with a descriptive User-Agent
- Retry throttling / server errors with exponential backoff
- Stateless - safe for concurrent use
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from wasteintel.core.config import settings
from wasteintel.core.logging import get_logger


logger = get_logger(__name__)


WIKIPEDIA_BASE_HEADERS = {
    "Accept": "application/json",
    "Accept-Encoding": "gzip, deflate",
}

SUMMARY_URL_TEMPLATE = "https://en.wikipedia.org/api/rest_v1/page/summary/{title}"

RETRY_STATUSES = {429, 500, 502, 503, 504}


class WikipediaClientError(RuntimeError):
    """Base exception for Wikipedia client failures."""


@dataclass(frozen=True)
class WikipediaClientSettings:
    user_agent: str
    timeout_seconds: int

    @classmethod
    def from_app_settings(cls) -> "WikipediaClientSettings":
        return cls(
            user_agent=settings.ENRICHMENT_USER_AGENT,
            timeout_seconds=settings.ENRICHMENT_TIMEOUT_SECONDS,
        )


class WikipediaClient:
    """
    Thin wrapper over `requests.Session` for page summaries.
    """

    def __init__(self, session: Optional[requests.Session] = None, config: Optional[WikipediaClientSettings] = None):
        self._session = session or requests.Session()
        self._config = config or WikipediaClientSettings.from_app_settings()
        self._session.headers.update({**WIKIPEDIA_BASE_HEADERS, "User-Agent": self._config.user_agent})

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #
    def get_summary(self, title: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the summary for a page title.

        Returns:
            The summary payload, or None when the page does not exist.

        Raises:
            WikipediaClientError: On a non-404 failure after retries.
        """
        url = SUMMARY_URL_TEMPLATE.format(title=quote(title.replace(" ", "_"), safe=""))
        try:
            response = self._perform_request(url)
        except requests.RequestException as e:
            raise WikipediaClientError(f"Wikipedia request failed for '{title}': {e}") from e

        if response.status_code == 404:
            logger.info(f"No Wikipedia page for '{title}'")
            return None
        if not response.ok:
            raise WikipediaClientError(f"Wikipedia returned status {response.status_code} for '{title}'")
        try:
            return response.json()
        except ValueError as e:
            raise WikipediaClientError(f"Wikipedia returned a non-JSON summary for '{title}'") from e

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #
    @retry(
        stop=stop_after_attempt(settings.ENRICHMENT_MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.ENRICHMENT_BACKOFF_BASE, min=0.1, max=5),
        retry=retry_if_exception_type((requests.RequestException,)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _perform_request(self, url: str) -> requests.Response:
        logger.debug(f"Requesting {url}")
        response = self._session.get(url, timeout=self._config.timeout_seconds)
        if response.status_code in RETRY_STATUSES:
            msg = f"Wikipedia request throttled or server error (status {response.status_code})"
            logger.warning(f"{msg}, retrying")
            raise requests.HTTPError(msg, response=response)
        return response
