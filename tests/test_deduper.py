from chem_aggregator.deduper import dedupe

from conftest import rec


def test_deduper_prefers_first_by_identity():
    items = [
        rec("A", cas_number="67-64-1", confidence=0.5),
        rec("B", cas_number="67-64-1", confidence=0.9),  # same CAS, higher confidence, still dropped
        rec("C", chemical_name="propan-2-one"),
        rec("D", chemical_name="Propan-2-One"),
        rec("E"),
        rec("e"),  # display names compare case-insensitively too
        rec("F"),
    ]

    out = dedupe(items)
    names = [r.name for r in out]
    assert names == ["A", "C", "E", "F"]
    assert out[0].confidence == 0.5


def test_deduper_cas_compared_case_insensitively():
    out = dedupe([rec("x", cas_number="CID-180"), rec("y", cas_number="cid-180")])
    assert [r.name for r in out] == ["x"]


def test_deduper_falls_back_when_cas_empty():
    # An empty CAS string is not an identity; chemical name takes over
    out = dedupe([
        rec("a", cas_number="", chemical_name="toluene"),
        rec("b", cas_number=None, chemical_name="TOLUENE"),
    ])
    assert [r.name for r in out] == ["a"]


def test_deduper_empty():
    assert dedupe([]) == []
