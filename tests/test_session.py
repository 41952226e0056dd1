"""Tests for engine and session management."""

from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from equiledger.db import Client, get_session, session_scope
from equiledger.db import session as db_session


def fake_request(session_factory):
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(session_factory=session_factory)))


def count_clients(session_factory) -> int:
    with session_scope(session_factory) as session:
        return session.scalar(select(func.count(Client.id)))


class TestGetSession:
    """Tests for the get_session request dependency."""

    def test_commits_when_request_succeeds(self, session_factory, business):
        dependency = get_session(fake_request(session_factory))
        session = next(dependency)
        session.add(Client(business_id=business.id, name="Acme"))

        with pytest.raises(StopIteration):
            next(dependency)

        assert count_clients(session_factory) == 1

    def test_rolls_back_when_request_fails(self, session_factory, business):
        dependency = get_session(fake_request(session_factory))
        session = next(dependency)
        session.add(Client(business_id=business.id, name="Acme"))

        with pytest.raises(RuntimeError):
            dependency.throw(RuntimeError("handler failed"))

        assert count_clients(session_factory) == 0


class TestGlobalEngine:
    """Tests for the lazily created global engine."""

    def test_sessionmaker_is_created_on_first_use(self, monkeypatch):
        monkeypatch.setattr(db_session, "_engine", None)
        monkeypatch.setattr(db_session, "_sessionmaker", None)

        factory = db_session.get_sessionmaker()

        assert factory.kw["bind"] is db_session.get_engine()
        assert db_session.get_sessionmaker() is factory
