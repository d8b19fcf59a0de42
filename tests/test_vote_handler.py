import pytest
from fastapi.testclient import TestClient

from config import ConfigurationError
from db.connection import get_pool
from db.init_db import SchemaVerificationError
from handlers.vote_handler import CAST_FAILED_TEXT, SUMMARY_FAILED_TEXT, headline
from main import create_app
from models.vote import VoteSummary


@pytest.fixture
def client(fake_db, db_settings, tuning):
    with TestClient(create_app(db_settings, tuning)) as c:
        yield c


def test_index_shows_counts_and_recent_votes(client):
    client.post("/", data={"team": "TABS"})
    client.post("/", data={"team": "tabs"})
    client.post("/", data={"team": "spaces"})

    r = client.get("/")
    assert r.status_code == 200
    assert '<span id="tabs-count">2</span>' in r.text
    assert '<span id="spaces-count">1</span>' in r.text
    assert '<span id="total-count">3</span>' in r.text
    assert "TABS are winning by 1 vote!" in r.text
    assert r.text.count("<li><strong>") == 3


def test_index_empty(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "evenly matched" in r.text
    assert "No votes yet." in r.text


def test_cast_vote_success(client):
    r = client.post("/", data={"team": "spaces"})
    assert r.status_code == 200
    assert r.text.startswith("Vote successfully cast for 'SPACES' at time ")
    assert r.text.endswith("!")


@pytest.mark.parametrize("form", [{"team": "DECIMAL"}, {"team": ""}, {}])
def test_cast_vote_invalid_team(client, fake_db, form):
    r = client.post("/", data=form)
    assert r.status_code == 400
    assert r.text == "Invalid team specified."
    assert fake_db.rows == []


def test_cast_vote_storage_failure(client, fake_db):
    fake_db.fail_on.add("insert")
    r = client.post("/", data={"team": "TABS"})
    assert r.status_code == 500
    assert r.text == CAST_FAILED_TEXT
    assert "server closed" not in r.text


def test_index_storage_failure(client, fake_db):
    fake_db.fail_on.add("count")
    r = client.get("/")
    assert r.status_code == 500
    assert r.text == SUMMARY_FAILED_TEXT


def test_shutdown_closes_pool(fake_db, db_settings, tuning):
    with TestClient(create_app(db_settings, tuning)):
        pool = get_pool()
    assert pool.closed
    with pytest.raises(RuntimeError):
        get_pool()


def test_schema_failure_prevents_startup(fake_db, db_settings, tuning):
    fake_db.fail_on.add("create")
    with pytest.raises(SchemaVerificationError):
        with TestClient(create_app(db_settings, tuning)):
            pass
    with pytest.raises(RuntimeError):
        get_pool()


def test_missing_configuration_prevents_startup(fake_db, monkeypatch):
    for name in ("DB_HOST", "INSTANCE_CONNECTION_NAME", "DB_NAME", "DB_USER", "DB_PASS"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ConfigurationError):
        with TestClient(create_app()):
            pass
    assert fake_db.connect_count == 0


def test_headline_pluralizes():
    assert headline(VoteSummary(tabs_count=1, spaces_count=4)) == "SPACES are winning by 3 votes!"
