from __future__ import annotations

from typing import List, Optional, Sequence

from ..records import CandidateRecord
from ..util.logging import get_logger
from .base import SourceAdapter


logger = get_logger(__name__)


DEFAULT_CATALOGS: List[str] = ["BASF", "DuPont", "Dow"]


class ManufacturerCatalogAdapter(SourceAdapter):
    """Placeholder for manufacturer catalog integrations.

    Each manufacturer needs its own endpoint, auth and rate limits; none are
    wired yet, so searches log the pending catalogs and return nothing.
    """

    name = "manufacturers"

    def __init__(self, catalogs: Optional[Sequence[str]] = None, confidence: float = 0.7) -> None:
        super().__init__(confidence)
        self.catalogs = list(catalogs) if catalogs else list(DEFAULT_CATALOGS)

    async def _search(self, query: str) -> List[CandidateRecord]:
        logger.info("manufacturer_search_pending", extra={"query": query, "catalogs": self.catalogs})
        return []
