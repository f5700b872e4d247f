from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from .cache import ResultCache, utcnow
from .config import Settings, get_settings
from .deduper import dedupe
from .records import CandidateRecord, Product, ReplacementCriteria
from .scorer import score_all
from .sources.base import SourceAdapter, SourceResult
from .sources.http import HttpClient
from .sources.registry import build_adapters
from .storage.base import Storage, open_storage
from .util.logging import get_logger


logger = get_logger(__name__)

PER_QUERY_LIMIT = 10


def _by_confidence(records: List[CandidateRecord]) -> List[CandidateRecord]:
    # sorted() is stable, so ties keep source order
    return sorted(records, key=lambda r: r.confidence, reverse=True)


def build_search_queries(product: Product, criteria: ReplacementCriteria) -> List[str]:
    """Search terms for a replacement hunt, most specific first.

    Chemical name, CAS number and category of the original product, then the
    criteria's chemical class and functional groups. Blank values are dropped.
    """
    candidates: List[Optional[str]] = [
        product.chemical_name,
        product.cas_number,
        product.category,
        criteria.chemical_class,
        *criteria.functional_groups,
    ]
    return [q.strip() for q in candidates if q and q.strip()]


class ExternalDataService:
    """Fans a query out to every source adapter, merges, ranks and caches.

    None of the public coroutines raise; failures are logged and surface as
    empty results.
    """

    def __init__(
        self,
        storage: Storage,
        adapters: Sequence[SourceAdapter],
        clock: Callable[[], datetime] = utcnow,
        cache_ttl_hours: float = 24.0,
        http: Optional[HttpClient] = None,
    ) -> None:
        self.storage = storage
        self.adapters = list(adapters)
        self.cache = ResultCache(storage, clock=clock, ttl_hours=cache_ttl_hours)
        self._http = http

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ExternalDataService":
        s = settings or get_settings()
        http = HttpClient(
            user_agent=s.user_agent,
            connect_timeout=s.connect_timeout,
            read_timeout=s.read_timeout,
            retries=s.http_retries,
        )
        return cls(
            storage=open_storage(s),
            adapters=build_adapters(s, http),
            cache_ttl_hours=s.cache_ttl_hours,
            http=http,
        )

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.close()

    async def __aenter__(self) -> "ExternalDataService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def adapters_by_name(self) -> Dict[str, SourceAdapter]:
        return {a.name.lower(): a for a in self.adapters}

    async def _fan_out(self, query: str) -> List[CandidateRecord]:
        # Every adapter call is in flight before any is awaited; one failing
        # never cancels the others.
        outcomes = await asyncio.gather(
            *(a.run(query) for a in self.adapters),
            return_exceptions=True,
        )
        merged: List[CandidateRecord] = []
        for adapter, outcome in zip(self.adapters, outcomes):
            if isinstance(outcome, BaseException):
                outcome = SourceResult.failure(adapter.name, outcome)
            if not outcome.ok:
                logger.warning(
                    "external_source_skipped",
                    extra={"source": outcome.source, "query": query, "error": outcome.error},
                )
                continue
            merged.extend(outcome.records)
        return merged

    async def search_external_products(self, query: str, limit: int = 10) -> List[CandidateRecord]:
        try:
            cached = await self.cache.get(query)
            if cached is not None:
                return cached[:limit]

            merged = await self._fan_out(query)
            unique = dedupe(merged)
            ranked = _by_confidence(unique)[:limit]
            await self.cache.put(query, ranked)
            logger.info(
                "external_search_completed",
                extra={"query": query, "raw": len(merged), "deduped": len(unique), "returned": len(ranked)},
            )
            return ranked
        except Exception as e:  # noqa: BLE001
            logger.error("external_search_failed", extra={"query": query, "error": str(e)})
            return []

    async def find_replacements(
        self,
        original: Product,
        criteria: ReplacementCriteria,
        max_results: int = 20,
    ) -> List[CandidateRecord]:
        try:
            queries = build_search_queries(original, criteria)
            found: List[CandidateRecord] = []
            # One query at a time; each one already fans out internally
            for q in queries:
                found.extend(await self.search_external_products(q, PER_QUERY_LIMIT))
            scored = score_all(found, criteria)
            ranked = _by_confidence(scored)[:max_results]
            logger.info(
                "find_replacements_completed",
                extra={"product": original.name, "queries": len(queries), "candidates": len(found), "returned": len(ranked)},
            )
            return ranked
        except Exception as e:  # noqa: BLE001
            logger.error(
                "find_replacements_failed",
                extra={"product": getattr(original, "name", None), "error": str(e)},
            )
            return []

    async def get_product_details(self, source_id: str, source: str) -> Optional[CandidateRecord]:
        adapter = self.adapters_by_name.get((source or "").lower())
        if adapter is None:
            logger.info("details_source_unknown", extra={"source": source})
            return None
        return await adapter.get_details(source_id)
