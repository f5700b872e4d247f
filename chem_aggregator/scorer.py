from __future__ import annotations

import dataclasses
from typing import Iterable, List

from .records import CandidateRecord, ReplacementCriteria


CHEMICAL_CLASS_BOOST = 0.20
WEIGHT_RANGE_BOOST = 0.15
SAFETY_DATA_BOOST = 0.10
EXCLUDED_PENALTY = 0.30


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()


def _is_excluded(candidate: CandidateRecord, excluded: Iterable[str]) -> bool:
    for sub in excluded:
        if not sub or not sub.strip():
            continue
        if _contains(candidate.name, sub) or _contains(candidate.chemical_name, sub):
            return True
    return False


def score(candidate: CandidateRecord, criteria: ReplacementCriteria) -> CandidateRecord:
    """Return a copy of `candidate` with confidence adjusted against `criteria`.

    Adjustments are additive and the result is clamped to [0.0, 1.0].
    """
    value = candidate.confidence

    if criteria.chemical_class and _contains(candidate.chemical_name, criteria.chemical_class):
        value += CHEMICAL_CLASS_BOOST

    rng = criteria.molecular_weight_range
    if rng is not None and rng.bounded and candidate.molecular_weight is not None:
        if rng.contains(candidate.molecular_weight):
            value += WEIGHT_RANGE_BOOST

    # Presence of a safety mapping counts, its content is not inspected
    if criteria.safety_profile and candidate.safety_data is not None:
        value += SAFETY_DATA_BOOST

    if _is_excluded(candidate, criteria.excluded_substances):
        value -= EXCLUDED_PENALTY

    # Rounded so additive steps leave no float noise (0.8 - 0.3 -> 0.5)
    clamped = round(min(1.0, max(0.0, value)), 6)
    return dataclasses.replace(candidate, confidence=clamped)


def score_all(candidates: Iterable[CandidateRecord], criteria: ReplacementCriteria) -> List[CandidateRecord]:
    return [score(c, criteria) for c in candidates]
