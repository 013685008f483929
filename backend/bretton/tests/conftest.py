import pytest

from bretton.messaging.mock import MockConnection
from bretton.messaging.router import MessageRouter
from bretton.session.manager import SessionManager
from bretton.session.models import GlobalState
from bretton.tests.helpers.rooms import FixedRandomSource
from bretton.tests.helpers.sessions import SUPERADMIN_NAME
from shared.auth.password import SimpleHasher


@pytest.fixture
def state():
    return GlobalState()


@pytest.fixture
def session_manager(state):
    return SessionManager(
        state,
        password_hasher=SimpleHasher(),
        superadmin_usernames=[SUPERADMIN_NAME],
        rng_factory=FixedRandomSource,
    )


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()
