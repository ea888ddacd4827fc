import pytest
from fastapi.testclient import TestClient

from watchparty.main import create_app
from watchparty.services.chat_service import ChatHistoryStore
from watchparty.services.room_service import RoomRegistry
from watchparty.services.session_gateway import SessionGateway
from watchparty.utils.rate_limit import FrameRateLimiter


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def chat():
    return ChatHistoryStore(max_messages=100)


@pytest.fixture
def gateway(registry, chat):
    return SessionGateway(registry, chat, report_unauthorized=False, join_backlog=20)


@pytest.fixture
def app():
    return create_app(rate_limiter=FrameRateLimiter(enabled=False))


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
