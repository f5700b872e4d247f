import asyncio

from chem_aggregator.sources.chemspider import ChemSpiderAdapter
from chem_aggregator.sources.http import UpstreamStatusError

from conftest import FakeHttp


def _result(i):
    return {
        "id": i,
        "name": f"compound {i}",
        "rn": f"{i}-00-0",
        "formula": "C3H6O",
        "averageMass": 58.079,
        "monoisotopicMass": 58.042,
        "synonyms": ["dimethyl ketone"],
    }


def test_no_api_key_skips_network():
    http = FakeHttp({"/filter/name": AssertionError("should not be called")})
    adapter = ChemSpiderAdapter(http, api_key=None)
    result = asyncio.run(adapter.run("acetone"))
    assert result.ok is True
    assert result.records == []
    assert asyncio.run(adapter.get_details("1")) is None
    assert http.calls == []


def test_search_posts_filter_and_caps_results():
    http = FakeHttp({"/filter/name": {"results": [_result(i) for i in range(15)] + ["stray"]}})
    out = asyncio.run(ChemSpiderAdapter(http, api_key="k").search("acetone"))

    assert len(out) == 10
    r = out[0]
    assert r.name == "compound 0"
    assert r.cas_number == "0-00-0"
    assert r.molecular_weight == 58.079
    assert r.synonyms == ["dimethyl ketone"]
    assert r.source == "ChemSpider"
    assert r.source_id == "0"
    assert r.confidence == 0.85
    assert r.properties["monoisotopicMass"] == 58.042

    method, url, headers, payload = http.calls[0]
    assert method == "POST"
    assert url.endswith("/compounds/v1/filter/name")
    assert headers["apikey"] == "k"
    assert payload == {"name": "acetone", "orderBy": "recordId", "orderDirection": "ascending"}


def test_search_error_status_is_failure():
    http = FakeHttp({"/filter/name": UpstreamStatusError(401, "u")})
    result = asyncio.run(ChemSpiderAdapter(http, api_key="bad").run("acetone"))
    assert result.ok is False
    assert "401" in result.error


def test_details_maps_record():
    http = FakeHttp(
        {
            "/records/2424/details": {
                "commonName": "Acetone",
                "systematicName": "propan-2-one",
                "rn": "67-64-1",
                "formula": "C3H6O",
                "averageMass": 58.079,
                "smiles": "CC(C)=O",
            }
        }
    )
    r = asyncio.run(ChemSpiderAdapter(http, api_key="k").get_details("2424"))
    assert r.name == "Acetone"
    assert r.chemical_name == "propan-2-one"
    assert r.cas_number == "67-64-1"
    assert r.confidence == 0.9
    assert r.properties["smiles"] == "CC(C)=O"
    assert http.calls[0][2] == {"apikey": "k"}


def test_details_not_found():
    assert asyncio.run(ChemSpiderAdapter(FakeHttp(), api_key="k").get_details("1")) is None
