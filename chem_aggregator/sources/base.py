from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..records import CandidateRecord
from ..util.logging import get_logger


logger = get_logger(__name__)


def parse_weight(value: Any) -> Optional[float]:
    # PubChem reports weights as strings ("58.08"); ChemSpider as numbers
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class SourceResult:
    """Outcome of one adapter run: records on success, the error otherwise."""

    source: str
    ok: bool
    records: List[CandidateRecord] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def success(cls, source: str, records: List[CandidateRecord]) -> "SourceResult":
        return cls(source=source, ok=True, records=list(records))

    @classmethod
    def failure(cls, source: str, error: BaseException | str) -> "SourceResult":
        return cls(source=source, ok=False, records=[], error=str(error))


class SourceAdapter(abc.ABC):
    """Abstract client for one external chemical database.

    Implementations provide `_search` and optionally `_details`, and may raise
    freely from either; `run`, `search` and `get_details` turn every failure
    into an empty result plus a warning log.
    """

    #: Lower-case key used to route detail lookups, e.g. "pubchem"
    name: str = ""

    def __init__(self, confidence: float) -> None:
        self.confidence = confidence

    @abc.abstractmethod
    async def _search(self, query: str) -> List[CandidateRecord]:
        raise NotImplementedError

    async def _details(self, source_id: str) -> Optional[CandidateRecord]:
        return None

    async def run(self, query: str) -> SourceResult:
        try:
            records = await self._search(query)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "source_search_failed",
                extra={"source": self.name, "query": query, "error": str(e)},
            )
            return SourceResult.failure(self.name, e)
        return SourceResult.success(self.name, records)

    async def search(self, query: str) -> List[CandidateRecord]:
        return (await self.run(query)).records

    async def get_details(self, source_id: str) -> Optional[CandidateRecord]:
        try:
            return await self._details(source_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "source_details_failed",
                extra={"source": self.name, "source_id": source_id, "error": str(e)},
            )
            return None
