from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..records import CandidateRecord
from ..util.logging import get_logger
from .base import SourceAdapter, parse_weight
from .http import HttpClient, UpstreamStatusError


logger = get_logger(__name__)

MAX_RESULTS = 10


class ChemSpiderAdapter(SourceAdapter):
    """RSC ChemSpider compounds API (v1), authenticated with an `apikey` header.

    Without a key the adapter is unavailable: searches return nothing and no
    request is made.
    """

    name = "chemspider"
    label = "ChemSpider"

    def __init__(
        self,
        http: HttpClient,
        api_key: Optional[str],
        base_url: str = "https://api.rsc.org/compounds/v1",
        confidence: float = 0.85,
        detail_confidence: float = 0.9,
    ) -> None:
        super().__init__(confidence)
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.detail_confidence = detail_confidence

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {"apikey": self.api_key or "", "Content-Type": "application/json"}

    async def _search(self, query: str) -> List[CandidateRecord]:
        if not self.available:
            logger.warning("chemspider_api_key_missing")
            return []
        data = await self.http.post_json(
            f"{self.base_url}/filter/name",
            {"name": query, "orderBy": "recordId", "orderDirection": "ascending"},
            headers=self._headers(),
        )
        if not isinstance(data, dict):
            raise ValueError("ChemSpider payload is not a JSON object")
        results = [r for r in (data.get("results") or []) if isinstance(r, dict)]
        out: List[CandidateRecord] = []
        for r in results[:MAX_RESULTS]:
            rid = r.get("id")
            out.append(
                CandidateRecord(
                    name=r.get("name") or query,
                    cas_number=r.get("rn"),
                    chemical_name=r.get("name"),
                    molecular_formula=r.get("formula"),
                    molecular_weight=parse_weight(r.get("averageMass")),
                    synonyms=list(r.get("synonyms") or []),
                    source=self.label,
                    source_id=str(rid) if rid is not None else "",
                    confidence=self.confidence,
                    properties={
                        "chemSpiderId": rid,
                        "formula": r.get("formula"),
                        "averageMass": r.get("averageMass"),
                        "monoisotopicMass": r.get("monoisotopicMass"),
                    },
                )
            )
        logger.info("chemspider_search", extra={"query": query, "count": len(out)})
        return out

    async def _details(self, source_id: str) -> Optional[CandidateRecord]:
        if not self.available:
            logger.warning("chemspider_api_key_missing")
            return None
        url = f"{self.base_url}/records/{quote(str(source_id), safe='')}/details"
        try:
            data: Any = await self.http.get_json(url, headers={"apikey": self.api_key or ""})
        except UpstreamStatusError as e:
            if e.status == 404:
                logger.info("chemspider_record_not_found", extra={"record_id": source_id})
                return None
            raise
        if not isinstance(data, dict) or not data:
            logger.info("chemspider_record_not_found", extra={"record_id": source_id})
            return None
        return CandidateRecord(
            name=data.get("commonName") or data.get("systematicName") or str(source_id),
            cas_number=data.get("rn"),
            chemical_name=data.get("systematicName"),
            molecular_formula=data.get("formula"),
            molecular_weight=parse_weight(data.get("averageMass")),
            synonyms=list(data.get("synonyms") or []),
            source=self.label,
            source_id=str(source_id),
            confidence=self.detail_confidence,
            properties={
                "chemSpiderId": source_id,
                "formula": data.get("formula"),
                "averageMass": data.get("averageMass"),
                "monoisotopicMass": data.get("monoisotopicMass"),
                "smiles": data.get("smiles"),
            },
        )
