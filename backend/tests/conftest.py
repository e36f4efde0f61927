import pytest
from fastapi.testclient import TestClient

from community_portal.database import create_session_factory, create_tables
from community_portal.main import create_app
from helpers import make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def session_factory(tmp_path):
    factory = create_session_factory(f"sqlite:///{tmp_path / 'portal.db'}")
    create_tables(factory)
    return factory


@pytest.fixture
def app(settings, session_factory):
    return create_app(settings, session_factory)


@pytest.fixture
def auth(app):
    return app.state.auth


@pytest.fixture
def client(app):
    return TestClient(app)
