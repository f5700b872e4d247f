from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from .records import CandidateRecord
from .storage.base import Storage, to_utc
from .util.logging import get_logger


logger = get_logger(__name__)

CACHE_DURATION_HOURS = 24.0
CACHE_SOURCE_NAME = "External APIs"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResultCache:
    """Query-keyed, time-bounded cache of aggregated search results.

    Validity is decided at read time from the entry's creation time; nothing is
    evicted here. Storage errors never escape: reads degrade to a miss and
    writes to a no-op.
    """

    def __init__(
        self,
        storage: Storage,
        clock: Callable[[], datetime] = utcnow,
        ttl_hours: float = CACHE_DURATION_HOURS,
        source_name: str = CACHE_SOURCE_NAME,
    ) -> None:
        self.storage = storage
        self.clock = clock
        self.ttl = timedelta(hours=ttl_hours)
        self.source_name = source_name

    def is_valid(self, created_at: datetime) -> bool:
        age_hours = (to_utc(self.clock()) - to_utc(created_at)).total_seconds() / 3600
        return age_hours < self.ttl.total_seconds() / 3600

    async def get(self, query: str) -> Optional[List[CandidateRecord]]:
        try:
            entry = await asyncio.to_thread(self.storage.get_cached_external_data, query)
            if entry is None:
                logger.info("cache_miss", extra={"query": query})
                return None
            if not self.is_valid(entry.created_at):
                logger.info("cache_expired", extra={"query": query, "created_at": entry.created_at})
                return None
            records = [CandidateRecord.from_dict(d) for d in json.loads(entry.product_data)]
        except Exception as e:  # noqa: BLE001
            logger.warning("cache_read_failed", extra={"query": query, "error": str(e)})
            return None
        if not records:
            # Empty batches are re-fetched rather than pinned for a whole TTL
            logger.info("cache_empty_entry", extra={"query": query})
            return None
        logger.info("cache_hit", extra={"query": query, "count": len(records)})
        return records

    async def put(self, query: str, records: List[CandidateRecord]) -> None:
        try:
            source = await asyncio.to_thread(self.storage.get_product_source_by_name, self.source_name)
            if source is None:
                logger.warning("cache_source_missing", extra={"source": self.source_name})
                return
            now = to_utc(self.clock())
            payload = json.dumps([r.to_dict() for r in records], ensure_ascii=False)
            await asyncio.to_thread(
                self.storage.cache_external_data,
                query,
                source.id,
                payload,
                now + self.ttl,
                now,
            )
            logger.info("cache_stored", extra={"query": query, "count": len(records)})
        except Exception as e:  # noqa: BLE001
            logger.warning("cache_write_failed", extra={"query": query, "error": str(e)})
