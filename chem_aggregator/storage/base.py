from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from ..config import Settings


@dataclass
class SourceRef:
    id: int
    name: str
    base_url: Optional[str]
    priority: int
    is_active: bool


@dataclass
class CacheEntry:
    search_term: str
    source_id: int
    product_data: str  # JSON list of candidate dicts
    created_at: datetime
    expires_at: datetime


# Seeded by init_db; "External APIs" owns aggregated search results
DEFAULT_PRODUCT_SOURCES = [
    {"name": "External APIs", "base_url": None, "priority": 100, "is_active": True},
    {"name": "palmer_holland", "base_url": "https://api.knowde.com", "priority": 90, "is_active": True},
    {"name": "chemspider", "base_url": "https://api.rsc.org/compounds/v1", "priority": 70, "is_active": False},
    {"name": "pubchem", "base_url": "https://pubchem.ncbi.nlm.nih.gov/rest/pug", "priority": 60, "is_active": True},
    {"name": "user_contributed", "base_url": None, "priority": 50, "is_active": True},
]


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Storage(Protocol):
    def init_db(self) -> None: ...

    def get_cached_external_data(self, search_term: str) -> Optional[CacheEntry]: ...

    def get_product_source_by_name(self, name: str) -> Optional[SourceRef]: ...

    def get_product_sources(self) -> List[SourceRef]: ...

    def cache_external_data(
        self,
        search_term: str,
        source_id: int,
        product_data: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
    ) -> CacheEntry: ...

    def clear_expired_cache(self, now: Optional[datetime] = None) -> int: ...


def open_storage(settings: Settings) -> Storage:
    """Postgres when DATABASE_URL is configured, a local SQLite file otherwise."""
    if settings.database_url:
        from .postgres import PostgresStorage

        return PostgresStorage(settings.database_url)
    from .sqlite import SqliteStorage

    return SqliteStorage(settings.sqlite_path)
