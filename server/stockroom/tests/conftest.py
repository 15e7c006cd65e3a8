from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockroom.auth import Actor, get_current_actor
from stockroom.db import Base, create_db_engine, get_db, get_session_factory
from stockroom.main import app


def make_session_factory(url: str = "sqlite+pysqlite://", **engine_kwargs) -> sessionmaker:
    if url == "sqlite+pysqlite://":
        engine_kwargs.setdefault("poolclass", StaticPool)
    engine = create_db_engine(url, **engine_kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@contextmanager
def _client_for(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_session_factory, None)


@pytest.fixture()
def session_factory():
    TestingSessionLocal = make_session_factory()
    yield TestingSessionLocal
    Base.metadata.drop_all(TestingSessionLocal.kw["bind"])


@pytest.fixture()
def file_session_factory(tmp_path):
    """A database file shared by several connections, for tests that run requests in parallel."""
    TestingSessionLocal = make_session_factory(f"sqlite+pysqlite:///{tmp_path / 'stockroom.db'}")
    yield TestingSessionLocal
    TestingSessionLocal.kw["bind"].dispose()


@pytest.fixture()
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def override_auth(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        return

    app.dependency_overrides[get_current_actor] = lambda: Actor(id="u-1", name="Test Admin", role="admin")
    yield
    app.dependency_overrides.pop(get_current_actor, None)


@pytest.fixture()
def client(session_factory):
    with _client_for(session_factory) as test_client:
        yield test_client


@pytest.fixture()
def file_client(file_session_factory):
    with _client_for(file_session_factory) as test_client:
        yield test_client
