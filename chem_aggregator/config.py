import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    # Core
    env: str
    log_level: str

    # Storage
    database_url: Optional[str]  # Postgres when set, SQLite otherwise
    sqlite_path: str

    # Sources
    sources_file: str
    chemspider_api_key: Optional[str]
    pubchem_base_url: str
    chemspider_base_url: str
    user_agent: str

    # HTTP
    connect_timeout: float
    read_timeout: float
    http_retries: int

    # Cache
    cache_ttl_hours: float


def get_settings() -> Settings:
    # Existing environment variables win over .env entries
    load_dotenv(override=False)
    return Settings(
        env=os.getenv("ENV", "development").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_url=os.getenv("DATABASE_URL") or None,
        sqlite_path=os.getenv("SQLITE_PATH", "state/chem_aggregator.sqlite"),
        sources_file=os.getenv("SOURCES_FILE", "config/sources.yml"),
        chemspider_api_key=os.getenv("CHEMSPIDER_API_KEY") or None,
        pubchem_base_url=os.getenv("PUBCHEM_BASE_URL", "https://pubchem.ncbi.nlm.nih.gov/rest/pug"),
        chemspider_base_url=os.getenv("CHEMSPIDER_BASE_URL", "https://api.rsc.org/compounds/v1"),
        user_agent=os.getenv("USER_AGENT", "ProductReplacementApp/1.0"),
        connect_timeout=float(os.getenv("CONNECT_TIMEOUT", "10.0")),
        read_timeout=float(os.getenv("READ_TIMEOUT", "20.0")),
        http_retries=int(os.getenv("HTTP_RETRIES", "3")),
        cache_ttl_hours=float(os.getenv("CACHE_TTL_HOURS", "24")),
    )
