from __future__ import annotations

from typing import Iterable, List, Set

from .records import CandidateRecord


def _identity_key(rec: CandidateRecord) -> str:
    # Priority: CAS number → chemical name → display name
    key = rec.cas_number or rec.chemical_name or rec.name or ""
    return key.lower()


def dedupe(records: Iterable[CandidateRecord]) -> List[CandidateRecord]:
    """Dedupe candidates using key order: CAS number → chemical name → name.

    Keeps the first record encountered for a given identity, regardless of
    confidence. Keys compare case-insensitively.
    """
    seen: Set[str] = set()
    result: List[CandidateRecord] = []
    for r in records:
        key = _identity_key(r)
        if key in seen:
            continue
        seen.add(key)
        result.append(r)
    return result
