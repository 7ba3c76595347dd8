# tests/conftest.py
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from staykeeper import models  # noqa: F401  (registers tables)
from staykeeper.db import Base, get_db, make_engine
from staykeeper.main import create_app
from staykeeper.services.change_feed import ChangeFeed
from staykeeper.services.entity_store import SqlEntityStore


@pytest.fixture()
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture()
def feed():
    return ChangeFeed()


@pytest.fixture()
def store(session_factory, feed):
    """System-level store (no principal): sees and may write everything."""
    return SqlEntityStore(session_factory, feed=feed)


@pytest.fixture()
def client(session_factory, feed):
    app = create_app(feed=feed, create_tables=False)

    def _get_db():
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    return TestClient(app)
