"""
config.py — Centralized Application Configuration Loader

Purpose:
- Define a single source of truth for application settings.
- Load and validate environment variables from `.env` or OS environment.

Settings groups:
- Supabase (Postgres connection string, project URL, API keys, JWT secret)
- Reporting windows used by the KPI and chart aggregations
- Cache / rate-limit tuning
- Upload limits
- Company enrichment HTTP client

This module does NOT:
- Execute any DB connections.
- Make external API calls.
- Modify runtime settings.
"""

from pathlib import Path
from typing import Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py is at: backend/wasteintel/core/config.py
# .env should be at: backend/.env
_CONFIG_DIR = Path(__file__).parent
_BACKEND_DIR = _CONFIG_DIR.parent.parent
_ENV_FILE = _BACKEND_DIR / ".env"

if _ENV_FILE.exists():
    _ENV_FILE_PATH = str(_ENV_FILE.resolve())
else:
    # Fallback: pydantic looks in CWD
    _ENV_FILE_PATH = ".env"


class Settings(BaseSettings):
    """
    Settings container for the Waste Intelligence backend.

    Every field has a default so the app can boot without a database; routes
    that need Supabase answer 503 until the connection settings are provided.
    """

    # Logging / HTTP
    LOG_LEVEL: str = Field("INFO", description="Root log level")
    CORS_ORIGINS: str = Field("*", description="Allowed CORS origins, comma separated")

    # Database Configuration (Supabase)
    SUPABASE_DB_URL: str = Field(
        "",
        description="PostgreSQL connection URL for the Supabase database",
    )
    SUPABASE_URL: str = Field("", description="Supabase project URL")
    SUPABASE_ANON_KEY: str = Field("", description="Supabase anon key used for auth calls")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(
        "",
        description="Supabase service role key for storage uploads",
    )
    SUPABASE_JWT_SECRET: str = Field(
        "",
        description="JWT secret used to verify Supabase access tokens locally",
    )
    AUTH_REDIRECT_URL: str = Field(
        "http://localhost:3000/reset-password",
        description="Where password reset emails send the user",
    )
    AVATAR_BUCKET: str = Field("avatars", description="Storage bucket for profile pictures")
    AVATAR_MAX_BYTES: int = Field(2 * 1024 * 1024, description="Maximum accepted avatar size")

    # Reporting windows
    KPI_START_YEAR: int = Field(2023, description="First reporting year counted in KPI totals")
    RECENT_DATA_START_YEAR: int = Field(
        2022,
        description="First reporting year that counts as recent data (coverage, hazardous split)",
    )
    TRENDS_START_YEAR: int = Field(2019, description="First year shown on the waste trends chart")
    RECOVERY_TRENDS_START_YEAR: int = Field(
        2020,
        description="First reporting period shown on the recovery trends chart",
    )

    # Cache / rate limiting
    CACHE_TTL_SECONDS: int = Field(300, description="Default TTL for cached chart payloads")
    HAZARDOUS_CACHE_TTL_SECONDS: int = Field(600, description="TTL for the hazardous breakdown")
    COORDINATES_RATE_LIMIT_PER_MINUTE: int = Field(
        100,
        description="Max map-coordinate requests per client per minute",
    )

    # Uploads
    UPLOAD_MAX_BYTES: int = Field(10 * 1024 * 1024, description="Maximum accepted upload size")
    UPLOAD_PREVIEW_ROWS: int = Field(3, description="Rows echoed back after processing an upload")
    WASTE_DATA_CSV_PATH: str = Field(
        str(_BACKEND_DIR / "data" / "sample_waste_data.csv"),
        description="Path to the sample waste data CSV served by /api/waste-data",
    )

    # Company enrichment
    ENRICHMENT_USER_AGENT: str = Field(
        "WasteIntelligencePlatform/1.0 (https://waste-intelligence.com)",
        description="User-Agent sent to public company data sources",
    )
    ENRICHMENT_TIMEOUT_SECONDS: int = Field(15, description="HTTP timeout for enrichment requests")
    ENRICHMENT_MAX_RETRIES: int = Field(3, description="Retry attempts for enrichment requests")
    ENRICHMENT_BACKOFF_BASE: float = Field(0.5, description="Exponential backoff base for retries")
    ENRICHMENT_STALE_DAYS: int = Field(30, description="Age after which enrichment is refreshed")

    @field_validator("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_JWT_SECRET", mode="before")
    @classmethod
    def strip_secret(cls, v: Any) -> str:
        """Strip whitespace from keys pasted into .env files."""
        if isinstance(v, str):
            return v.strip()
        return v or ""

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def supabase_auth_configured(self) -> bool:
        return bool(self.SUPABASE_URL and (self.SUPABASE_ANON_KEY or self.SUPABASE_SERVICE_ROLE_KEY))

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Singleton pattern — settings imported anywhere will reference same object.
settings = Settings()
