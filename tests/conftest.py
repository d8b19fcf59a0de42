"""
tests/conftest.py
-----------------
An in-memory stand-in for PostgreSQL.

`psycopg2.connect` is replaced through monkeypatch, so the pool opens
FakeConnection objects through its normal code path. FakeDatabase only
understands the handful of statements this app issues.
"""

import threading
import time

import psycopg2
import psycopg2.extensions
import pytest

from config import DatabaseSettings, PoolSettings
from db.connection import ConnectionPool, close_pool
from db.init_db import create_tables
from repositories.vote_repo import VoteRepository
from services.vote_service import VoteService


class FakeDatabase:
    def __init__(self):
        self.lock = threading.Lock()
        self.has_table = False
        self.rows: list[tuple] = []  # (vote_id, time_cast, candidate)
        self.next_id = 1
        self.connect_count = 0
        self.connect_kwargs: dict = {}
        self.refuse_connections = False
        self.connect_delay = 0.0  # seconds, simulates a slow or unreachable server
        self.fail_on: set[str] = set()  # any of: create, insert, recent, count

    def connect(self, *args, **kwargs):
        if self.connect_delay:
            time.sleep(self.connect_delay)
        if self.refuse_connections:
            raise psycopg2.OperationalError("could not connect to server: Connection refused")
        with self.lock:
            self.connect_count += 1
            self.connect_kwargs = kwargs
        return FakeConnection(self)

    @staticmethod
    def _kind(sql: str) -> str:
        if "CREATE TABLE" in sql:
            return "create"
        if sql.lstrip().startswith("INSERT"):
            return "insert"
        if "COUNT(" in sql:
            return "count"
        if "ORDER BY time_cast DESC" in sql:
            return "recent"
        raise AssertionError(f"unexpected statement: {sql}")

    def execute(self, sql: str, params=None) -> list[tuple]:
        kind = self._kind(sql)
        if kind in self.fail_on:
            raise psycopg2.OperationalError(f"server closed the connection unexpectedly ({kind})")
        with self.lock:
            if kind == "create":
                self.has_table = True
                return []
            if not self.has_table:
                raise psycopg2.ProgrammingError('relation "votes" does not exist')
            if kind == "insert":
                time_cast, candidate = params
                vote_id = self.next_id
                self.next_id += 1
                # CHAR(6) is blank-padded
                self.rows.append((vote_id, time_cast, candidate.ljust(6)))
                return [(vote_id,)]
            if kind == "count":
                (candidate,) = params
                return [(sum(1 for r in self.rows if r[2].rstrip() == candidate),)]
            (limit,) = params
            recent = sorted(self.rows, key=lambda r: (r[1], r[0]), reverse=True)[:limit]
            return [(r[2], r[1]) for r in recent]

    def count(self, candidate: str) -> int:
        return sum(1 for r in self.rows if r[2].rstrip() == candidate)


class FakeInfo:
    transaction_status = psycopg2.extensions.TRANSACTION_STATUS_IDLE


class FakeCursor:
    def __init__(self, db: FakeDatabase):
        self.db = db
        self._results: list[tuple] = []
        self.rowcount = -1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self._results = self.db.execute(sql, params)
        self.rowcount = len(self._results)

    def fetchone(self):
        return self._results.pop(0) if self._results else None

    def fetchall(self):
        rows, self._results = self._results, []
        return rows


class FakeConnection:
    def __init__(self, db: FakeDatabase):
        self.db = db
        self.closed = 0
        self.info = FakeInfo()
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        if self.closed:
            raise psycopg2.InterfaceError("connection already closed")
        return FakeCursor(self.db)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = 1


@pytest.fixture(autouse=True)
def reset_process_pool():
    yield
    close_pool()


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    monkeypatch.setattr(psycopg2, "connect", db.connect)
    return db


@pytest.fixture
def db_settings():
    return DatabaseSettings(host="localhost", name="votes_test", user="tester", password="secret")


@pytest.fixture
def tuning():
    return PoolSettings(max_size=5, min_idle=5, acquire_timeout=2.0)


@pytest.fixture
def pool(fake_db, db_settings, tuning):
    p = ConnectionPool(db_settings, tuning)
    yield p
    p.close()


@pytest.fixture
def vote_service(pool):
    create_tables(pool)
    return VoteService(VoteRepository(pool))
