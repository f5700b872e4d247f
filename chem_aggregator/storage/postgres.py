from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

import psycopg
from psycopg.rows import dict_row

from ..util.logging import get_logger
from .base import DEFAULT_PRODUCT_SOURCES, CacheEntry, SourceRef, to_utc


logger = get_logger(__name__)


def _source_from_row(row: dict[str, Any]) -> SourceRef:
    return SourceRef(
        id=int(row["id"]),
        name=str(row["name"]),
        base_url=row.get("base_url"),
        priority=int(row.get("priority") or 0),
        is_active=bool(row.get("is_active")),
    )


def _entry_from_row(row: dict[str, Any]) -> CacheEntry:
    return CacheEntry(
        search_term=str(row["search_term"]),
        source_id=int(row["source_id"]),
        product_data=str(row["product_data"]),
        created_at=to_utc(row["created_at"]),
        expires_at=to_utc(row["expires_at"]),
    )


class PostgresStorage:
    """PostgreSQL backend; opens an autocommit connection per call."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url

    def get_conn(self):
        return psycopg.connect(self.database_url, autocommit=True)

    def init_db(self) -> None:
        with self.get_conn() as conn:
            with conn.cursor() as cur:
                # Separate statements to avoid multi-command prepare issues
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS product_sources (
                      id SERIAL PRIMARY KEY,
                      name TEXT NOT NULL UNIQUE,
                      base_url TEXT,
                      priority INTEGER NOT NULL DEFAULT 0,
                      is_active BOOLEAN NOT NULL DEFAULT true
                    )
                    """
                )
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS external_product_cache (
                      id SERIAL PRIMARY KEY,
                      search_term TEXT NOT NULL,
                      source_id INTEGER NOT NULL REFERENCES product_sources(id),
                      product_data TEXT NOT NULL,
                      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                      expires_at TIMESTAMPTZ NOT NULL,
                      UNIQUE (search_term, source_id)
                    )
                    """
                )
                for src in DEFAULT_PRODUCT_SOURCES:
                    cur.execute(
                        """
                        INSERT INTO product_sources(name, base_url, priority, is_active)
                        VALUES(%s,%s,%s,%s)
                        ON CONFLICT (name) DO NOTHING
                        """,
                        (src["name"], src["base_url"], src["priority"], src["is_active"]),
                    )
        logger.info("db_initialized", extra={"backend": "postgres"})

    def get_cached_external_data(self, search_term: str) -> Optional[CacheEntry]:
        with self.get_conn() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT search_term, source_id, product_data, created_at, expires_at
                FROM external_product_cache
                WHERE search_term=%s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (search_term,),
            )
            row = cur.fetchone()
        return _entry_from_row(row) if row else None

    def get_product_source_by_name(self, name: str) -> Optional[SourceRef]:
        with self.get_conn() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT id, name, base_url, priority, is_active FROM product_sources WHERE name=%s LIMIT 1",
                (name,),
            )
            row = cur.fetchone()
        return _source_from_row(row) if row else None

    def get_product_sources(self) -> List[SourceRef]:
        with self.get_conn() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT id, name, base_url, priority, is_active FROM product_sources WHERE is_active ORDER BY priority DESC"
            )
            rows = cur.fetchall() or []
        return [_source_from_row(r) for r in rows]

    def cache_external_data(
        self,
        search_term: str,
        source_id: int,
        product_data: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
    ) -> CacheEntry:
        created = to_utc(created_at or datetime.now(timezone.utc))
        with self.get_conn() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                INSERT INTO external_product_cache(search_term, source_id, product_data, created_at, expires_at)
                VALUES(%s,%s,%s,%s,%s)
                ON CONFLICT (search_term, source_id) DO UPDATE SET
                  product_data=EXCLUDED.product_data,
                  created_at=EXCLUDED.created_at,
                  expires_at=EXCLUDED.expires_at
                RETURNING search_term, source_id, product_data, created_at, expires_at
                """,
                (search_term, int(source_id), product_data, created, to_utc(expires_at)),
            )
            row = cur.fetchone()
        return _entry_from_row(row)

    def clear_expired_cache(self, now: Optional[datetime] = None) -> int:
        cutoff = to_utc(now or datetime.now(timezone.utc))
        with self.get_conn() as conn, conn.cursor() as cur:
            cur.execute("DELETE FROM external_product_cache WHERE expires_at <= %s", (cutoff,))
            removed = cur.rowcount
        logger.info("expired_cache_cleared", extra={"count": removed})
        return removed
