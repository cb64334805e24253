import pytest
from sqlalchemy import select

import db.client as client
from db.models.ledger import MigrationGroup


@pytest.fixture()
def fresh_client(monkeypatch):
    monkeypatch.setattr(client, "_ENGINE", None)
    monkeypatch.setattr(client, "_SESSION_MAKER", None)
    monkeypatch.setattr(client, "_DB_URL", None)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    yield client
    if client._ENGINE is not None:
        client._ENGINE.dispose()


def test_missing_url_is_rejected(fresh_client):
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        fresh_client.get_engine()


def test_engine_is_bound_to_one_url(fresh_client, tmp_path):
    url = f"sqlite+pysqlite:///{tmp_path / 'a.db'}"
    engine = fresh_client.get_engine(database_url=url)

    assert fresh_client.get_engine(database_url=url) is engine
    with pytest.raises(RuntimeError, match="bound to another URL"):
        fresh_client.get_engine(database_url=f"sqlite+pysqlite:///{tmp_path / 'b.db'}")


def test_session_scope_commits_or_rolls_back(ledger_db):
    _, sessions = ledger_db

    with client.session_scope(factory=sessions) as s:
        s.add(MigrationGroup(name="kept", up={"queries": []}, down={"queries": []}))

    with pytest.raises(ValueError):
        with client.session_scope(factory=sessions) as s:
            s.add(MigrationGroup(name="dropped", up={"queries": []}, down={"queries": []}))
            s.flush()
            raise ValueError("boom")

    with sessions() as s:
        assert s.scalars(select(MigrationGroup.name)).all() == ["kept"]
