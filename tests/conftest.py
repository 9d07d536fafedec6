import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from chat_relay.core.config import Settings
from chat_relay.main import create_app
from chat_relay.websockets.connection_manager import ConnectionManager
from chat_relay.websockets.handlers import EventDispatcher
from chat_relay.websockets.room_directory import RoomDirectory
from tests.helpers import FakeWebSocket


@pytest.fixture
def test_settings() -> Settings:
    """테스트용 설정"""
    return Settings(
        max_connections=10,
        send_queue_size=64,
        report_errors=True,
        configure_logging=False,
    )


@pytest_asyncio.fixture
async def manager(test_settings):
    """테스트용 연결 매니저"""
    manager = ConnectionManager(test_settings)
    yield manager
    await manager.close_all()


@pytest_asyncio.fixture
async def directory(manager) -> RoomDirectory:
    return manager.directory


@pytest_asyncio.fixture
async def dispatcher(manager) -> EventDispatcher:
    return EventDispatcher(manager)


@pytest_asyncio.fixture
async def open_connection(manager):
    """FakeWebSocket 으로 연결을 만들어 등록하는 팩토리"""

    async def _open(**kwargs):
        websocket = FakeWebSocket(**kwargs)
        connection = await manager.connect(websocket)
        assert connection is not None
        return connection

    return _open


@pytest.fixture
def app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def client(app):
    """lifespan 을 포함한 동기 테스트 클라이언트"""
    with TestClient(app) as client:
        yield client
