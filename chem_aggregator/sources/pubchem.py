from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..records import CandidateRecord
from ..util.logging import get_logger
from .base import SourceAdapter, parse_weight
from .http import HttpClient, UpstreamStatusError


logger = get_logger(__name__)

SEARCH_PROPERTIES = "MolecularFormula,MolecularWeight,IUPACName"
DETAIL_PROPERTIES = "MolecularFormula,MolecularWeight,IUPACName,CanonicalSMILES"


def _properties(data: Any) -> List[Dict[str, Any]]:
    if not isinstance(data, dict):
        raise ValueError("PubChem payload is not a JSON object")
    props = (data.get("PropertyTable") or {}).get("Properties") or []
    return [p for p in props if isinstance(p, dict)]


class PubChemAdapter(SourceAdapter):
    """PubChem PUG REST: compound lookup by name and by CID."""

    name = "pubchem"
    label = "PubChem"

    def __init__(
        self,
        http: HttpClient,
        base_url: str = "https://pubchem.ncbi.nlm.nih.gov/rest/pug",
        confidence: float = 0.8,
        detail_confidence: float = 0.9,
    ) -> None:
        super().__init__(confidence)
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.detail_confidence = detail_confidence

    def _to_record(self, compound: Dict[str, Any], fallback_name: str, confidence: float) -> CandidateRecord:
        cid = compound.get("CID")
        iupac = compound.get("IUPACName")
        weight = parse_weight(compound.get("MolecularWeight"))
        return CandidateRecord(
            name=iupac or fallback_name,
            cas_number=f"CID-{cid}" if cid else None,
            chemical_name=iupac,
            molecular_formula=compound.get("MolecularFormula"),
            molecular_weight=weight,
            source=self.label,
            source_id=str(cid) if cid is not None else "",
            confidence=confidence,
            properties={
                "cid": cid,
                "molecularFormula": compound.get("MolecularFormula"),
                "molecularWeight": weight,
            },
        )

    async def _search(self, query: str) -> List[CandidateRecord]:
        url = f"{self.base_url}/compound/name/{quote(query, safe='')}/property/{SEARCH_PROPERTIES}/JSON"
        data = await self.http.get_json(url)
        compounds = _properties(data)
        logger.info("pubchem_search", extra={"query": query, "count": len(compounds)})
        return [self._to_record(c, query, self.confidence) for c in compounds]

    async def _details(self, source_id: str) -> Optional[CandidateRecord]:
        url = f"{self.base_url}/compound/cid/{quote(str(source_id), safe='')}/property/{DETAIL_PROPERTIES}/JSON"
        try:
            data = await self.http.get_json(url)
        except UpstreamStatusError as e:
            if e.status == 404:
                logger.info("pubchem_compound_not_found", extra={"cid": source_id})
                return None
            raise
        compounds = _properties(data)
        if not compounds:
            logger.info("pubchem_compound_not_found", extra={"cid": source_id})
            return None
        compound = compounds[0]
        rec = self._to_record(compound, str(source_id), self.detail_confidence)
        # Detail lookups are keyed by the CID the caller asked for
        rec.source_id = str(source_id)
        rec.cas_number = None
        rec.properties["canonicalSMILES"] = compound.get("CanonicalSMILES")
        return rec
