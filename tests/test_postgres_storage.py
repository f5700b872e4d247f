from datetime import datetime, timedelta, timezone

from chem_aggregator.storage import postgres
from chem_aggregator.storage.postgres import PostgresStorage


class _FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((" ".join(sql.split()), params))
        self.rowcount = self.conn.rowcount

    def fetchone(self):
        return self.conn.rows.pop(0) if self.conn.rows else None

    def fetchall(self):
        rows, self.conn.rows = self.conn.rows, []
        return rows


class _FakeConn:
    def __init__(self, rows=None, rowcount=0):
        self.rows = list(rows or [])
        self.rowcount = rowcount
        self.executed = []
        self.connect_kwargs = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def cursor(self, row_factory=None):
        return _FakeCursor(self)


def _patch_connect(monkeypatch, conn):
    def _connect(url, **kwargs):
        conn.connect_kwargs = kwargs
        return conn

    monkeypatch.setattr(postgres.psycopg, "connect", _connect)


def test_upsert_sends_utc_datetimes_and_reads_returning_row(monkeypatch):
    naive_created = datetime(2025, 3, 1, 12, 0)
    expires = datetime(2025, 3, 2, 13, 0, tzinfo=timezone(timedelta(hours=1)))
    returned = {
        "search_term": "acetone",
        "source_id": 1,
        "product_data": "[]",
        "created_at": naive_created,
        "expires_at": expires,
    }
    conn = _FakeConn(rows=[returned])
    _patch_connect(monkeypatch, conn)

    entry = PostgresStorage("postgresql://x").cache_external_data("acetone", 1, "[]", expires, naive_created)

    sql, params = conn.executed[0]
    assert sql.startswith("INSERT INTO external_product_cache")
    assert "ON CONFLICT (search_term, source_id) DO UPDATE" in sql
    assert "RETURNING" in sql
    assert conn.connect_kwargs == {"autocommit": True}
    term, source_id, data, created_param, expires_param = params
    assert (term, source_id, data) == ("acetone", 1, "[]")
    assert created_param == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert created_param.tzinfo is timezone.utc
    assert expires_param == datetime(2025, 3, 2, 12, 0, tzinfo=timezone.utc)
    assert expires_param.utcoffset() == timedelta(0)

    assert entry.search_term == "acetone"
    assert entry.created_at.tzinfo is not None
    assert entry.expires_at - entry.created_at == timedelta(hours=24)


def test_get_cached_external_data_returns_latest_or_none(monkeypatch):
    created = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    row = {
        "search_term": "acetone",
        "source_id": 1,
        "product_data": '[{"name": "acetone"}]',
        "created_at": created,
        "expires_at": created + timedelta(hours=24),
    }
    conn = _FakeConn(rows=[row])
    _patch_connect(monkeypatch, conn)
    storage = PostgresStorage("postgresql://x")

    entry = storage.get_cached_external_data("acetone")
    assert entry.product_data == '[{"name": "acetone"}]'
    assert entry.created_at == created
    sql, params = conn.executed[0]
    assert "ORDER BY created_at DESC" in sql
    assert params == ("acetone",)

    assert storage.get_cached_external_data("acetone") is None


def test_clear_expired_cache_returns_rowcount(monkeypatch):
    conn = _FakeConn(rowcount=3)
    _patch_connect(monkeypatch, conn)
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    assert PostgresStorage("postgresql://x").clear_expired_cache(now) == 3
    sql, params = conn.executed[0]
    assert sql == "DELETE FROM external_product_cache WHERE expires_at <= %s"
    assert params == (now,)
