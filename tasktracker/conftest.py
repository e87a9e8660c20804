import pytest

from tasktracker.realtime.sessions import registry as session_registry
from tests.factories import create_admin
from tests.factories import create_user


@pytest.fixture(autouse=True)
def _clean_session_registry():
    session_registry.clear()
    yield
    session_registry.clear()


@pytest.fixture
def admin(db):
    return create_admin()


@pytest.fixture
def alice(db):
    return create_user("alice")


@pytest.fixture
def bob(db):
    return create_user("bob")


@pytest.fixture
def carol(db):
    return create_user("carol")
