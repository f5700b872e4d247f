from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional

from ..util.logging import get_logger
from .base import DEFAULT_PRODUCT_SOURCES, CacheEntry, SourceRef, to_utc


logger = get_logger(__name__)


def _dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _iso(value: datetime) -> str:
    # One fixed format so string comparison in SQL orders correctly
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _parse(value: str) -> datetime:
    return to_utc(datetime.fromisoformat(value))


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
        created_at=_parse(row["created_at"]),
        expires_at=_parse(row["expires_at"]),
    )


class SqliteStorage:
    """SQLite backend for local runs and tests; one connection per call."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, timeout=30, isolation_level=None, check_same_thread=False)
        conn.row_factory = _dict_factory
        return conn

    @contextmanager
    def db(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.db() as conn, self._lock:
            conn.executescript(
                """
                PRAGMA journal_mode=WAL;
                CREATE TABLE IF NOT EXISTS product_sources (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    base_url TEXT,
                    priority INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1
                );

                CREATE TABLE IF NOT EXISTS external_product_cache (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    search_term TEXT NOT NULL,
                    source_id INTEGER NOT NULL REFERENCES product_sources(id),
                    product_data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    UNIQUE (search_term, source_id)
                );
                """
            )
            for src in DEFAULT_PRODUCT_SOURCES:
                conn.execute(
                    "INSERT OR IGNORE INTO product_sources(name, base_url, priority, is_active) VALUES(?,?,?,?)",
                    (src["name"], src["base_url"], src["priority"], 1 if src["is_active"] else 0),
                )
        logger.info("db_initialized", extra={"backend": "sqlite", "path": str(self.path)})

    def get_cached_external_data(self, search_term: str) -> Optional[CacheEntry]:
        with self.db() as conn:
            row = conn.execute(
                """
                SELECT search_term, source_id, product_data, created_at, expires_at
                FROM external_product_cache
                WHERE search_term=?
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (search_term,),
            ).fetchone()
        return _entry_from_row(row) if row else None

    def get_product_source_by_name(self, name: str) -> Optional[SourceRef]:
        with self.db() as conn:
            row = conn.execute(
                "SELECT id, name, base_url, priority, is_active FROM product_sources WHERE name=? LIMIT 1",
                (name,),
            ).fetchone()
        return _source_from_row(row) if row else None

    def get_product_sources(self) -> List[SourceRef]:
        with self.db() as conn:
            rows = conn.execute(
                "SELECT id, name, base_url, priority, is_active FROM product_sources WHERE is_active=1 ORDER BY priority DESC"
            ).fetchall()
        return [_source_from_row(r) for r in rows or []]

    def cache_external_data(
        self, search_term: str, source_id: int, product_data: str, expires_at: datetime, created_at: Optional[datetime] = None
    ) -> CacheEntry:
        created = created_at or datetime.now(timezone.utc)
        with self.db() as conn, self._lock:
            conn.execute(
                """
                INSERT INTO external_product_cache(search_term, source_id, product_data, created_at, expires_at)
                VALUES(?,?,?,?,?)
                ON CONFLICT(search_term, source_id) DO UPDATE SET
                    product_data=excluded.product_data,
                    created_at=excluded.created_at,
                    expires_at=excluded.expires_at
                """,
                (search_term, int(source_id), product_data, _iso(created), _iso(expires_at)),
            )
        return CacheEntry(
            search_term=search_term,
            source_id=int(source_id),
            product_data=product_data,
            created_at=to_utc(created),
            expires_at=to_utc(expires_at),
        )

    def clear_expired_cache(self, now: Optional[datetime] = None) -> int:
        cutoff = _iso(now or datetime.now(timezone.utc))
        with self.db() as conn, self._lock:
            cur = conn.execute("DELETE FROM external_product_cache WHERE expires_at <= ?", (cutoff,))
            removed = cur.rowcount
        logger.info("expired_cache_cleared", extra={"count": removed})
        return removed
