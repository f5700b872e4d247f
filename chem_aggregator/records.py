from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional


@dataclass
class CandidateRecord:
    name: str
    source: str  # adapter tag, e.g. "PubChem"
    source_id: str  # enough, together with source, to re-fetch details
    confidence: float  # ranking heuristic, not a probability
    cas_number: Optional[str] = None
    chemical_name: Optional[str] = None
    manufacturer: Optional[str] = None
    molecular_formula: Optional[str] = None
    molecular_weight: Optional[float] = None
    synonyms: Optional[List[str]] = None
    properties: Optional[Dict[str, Any]] = None
    safety_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateRecord":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        return cls(**kwargs)


@dataclass(frozen=True)
class ValueRange:
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def bounded(self) -> bool:
        return self.min is not None and self.max is not None

    def contains(self, value: float) -> bool:
        # An open side never matches
        if not self.bounded:
            return False
        return self.min <= value <= self.max

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ValueRange"]:
        if not data:
            return None
        lo, hi = data.get("min"), data.get("max")
        return cls(
            min=float(lo) if lo is not None else None,
            max=float(hi) if hi is not None else None,
        )


# camelCase keys accepted from JSON request bodies
_CRITERIA_ALIASES = {
    "chemicalClass": "chemical_class",
    "functionalGroups": "functional_groups",
    "molecularWeightRange": "molecular_weight_range",
    "boilingPointRange": "boiling_point_range",
    "solubilityRequirements": "solubility_requirements",
    "safetyProfile": "safety_profile",
    "regulatoryStatus": "regulatory_status",
    "excludedSubstances": "excluded_substances",
}


@dataclass(frozen=True)
class ReplacementCriteria:
    chemical_class: Optional[str] = None
    functional_groups: List[str] = field(default_factory=list)
    molecular_weight_range: Optional[ValueRange] = None
    boiling_point_range: Optional[ValueRange] = None
    solubility_requirements: List[str] = field(default_factory=list)
    safety_profile: Optional[str] = None
    regulatory_status: List[str] = field(default_factory=list)
    excluded_substances: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReplacementCriteria":
        norm = {_CRITERIA_ALIASES.get(k, k): v for k, v in (data or {}).items()}
        return cls(
            chemical_class=norm.get("chemical_class"),
            functional_groups=list(norm.get("functional_groups") or []),
            molecular_weight_range=ValueRange.from_dict(norm.get("molecular_weight_range")),
            boiling_point_range=ValueRange.from_dict(norm.get("boiling_point_range")),
            solubility_requirements=list(norm.get("solubility_requirements") or []),
            safety_profile=norm.get("safety_profile"),
            regulatory_status=list(norm.get("regulatory_status") or []),
            excluded_substances=list(norm.get("excluded_substances") or []),
        )


@dataclass
class Product:
    """Catalog product a replacement is being sought for."""

    name: str
    manufacturer: Optional[str] = None
    chemical_name: Optional[str] = None
    cas_number: Optional[str] = None
    product_number: Optional[str] = None
    category: Optional[str] = None
