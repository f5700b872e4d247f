from datetime import datetime, timedelta, timezone

import pytest

from chem_aggregator.records import CandidateRecord
from chem_aggregator.sources.base import SourceAdapter
from chem_aggregator.sources.http import UpstreamStatusError
from chem_aggregator.storage.sqlite import SqliteStorage


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeHttp:
    """Answers by URL substring; unmatched URLs behave like a 404."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def _answer(self, url):
        for key, value in self.responses.items():
            if key in url:
                if isinstance(value, BaseException):
                    raise value
                return value
        raise UpstreamStatusError(404, url)

    async def get_json(self, url, headers=None):
        self.calls.append(("GET", url, headers, None))
        return self._answer(url)

    async def post_json(self, url, payload, headers=None):
        self.calls.append(("POST", url, headers, payload))
        return self._answer(url)


class FakeAdapter(SourceAdapter):
    def __init__(self, name, records=None, error=None, confidence=0.8, details=None):
        super().__init__(confidence)
        self.name = name
        self.records = list(records or [])
        self.error = error
        self.details = details
        self.queries = []

    async def _search(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def _details(self, source_id):
        return self.details


def rec(name, confidence=0.8, source="Fake", **kwargs):
    return CandidateRecord(name=name, source=source, source_id=kwargs.pop("source_id", name), confidence=confidence, **kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage(tmp_path):
    s = SqliteStorage(tmp_path / "cache.sqlite")
    s.init_db()
    return s
