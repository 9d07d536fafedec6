import logging
from typing import Dict, List, Optional

from fastapi import WebSocket, status

from chat_relay.core.config import Settings
from chat_relay.core.logging import log_websocket_event, user_id_var
from chat_relay.schemas.events import auth_success
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.room_directory import RoomDirectory

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self, settings: Settings, directory: Optional[RoomDirectory] = None):
        self.settings = settings
        self.directory = directory or RoomDirectory()
        # 연결 ID별 연결: {connection_id: Connection}
        self.connections: Dict[str, Connection] = {}

    async def connect(self, websocket: WebSocket) -> Optional[Connection]:
        """새로운 WebSocket 연결을 등록합니다. 수용 한도를 넘으면 거절하고 None 을 반환합니다."""
        if len(self.connections) >= self.settings.max_connections:
            logger.warning(
                f"Connection limit reached ({self.settings.max_connections}), refusing new connection"
            )
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
            return None

        await websocket.accept()

        connection = Connection(websocket, send_queue_size=self.settings.send_queue_size)
        self.connections[connection.id] = connection
        connection.start()

        log_websocket_event(logger, "connected", connection.id, online_count=len(self.connections))
        return connection

    async def authenticate(self, connection: Connection, user_id: str, chat_id: Optional[str] = None):
        """
        연결의 사용자 ID를 설정하고 본인에게만 auth_success 를 보냅니다.

        재인증은 ID만 덮어쓰며 참여 중인 채팅방에는 영향이 없습니다.
        chat_id 가 주어지면 해당 채팅방에도 참여시킵니다.
        """
        if connection.session is None:
            return

        connection.session.user_id = user_id
        user_id_var.set(user_id)
        if chat_id is not None:
            await self.directory.join(chat_id, connection)

        connection.push(auth_success(user_id, chat_id))
        log_websocket_event(logger, "authenticated", connection.id, room_id=chat_id, user_id=user_id)

    async def disconnect(self, connection: Connection):
        """WebSocket 연결을 해제하고 참여 중인 모든 채팅방에서 제거합니다."""
        if connection.session is None:
            return

        # 정리 중인 연결로는 더 이상 전송하지 않음
        connection.mark_closed()

        room_ids = await self.directory.remove_everywhere(connection)
        self.connections.pop(connection.id, None)

        user_id = connection.session.user_id
        connection.session = None
        await connection.close()

        log_websocket_event(
            logger, "disconnected", connection.id,
            user_id=user_id, rooms=room_ids, online_count=len(self.connections)
        )

    async def close_all(self, code: int = status.WS_1001_GOING_AWAY):
        """서버 종료 시 모든 연결을 정리합니다."""
        for connection in list(self.connections.values()):
            await self.disconnect(connection)
            await connection.close(code=code)

    @property
    def connection_count(self) -> int:
        return len(self.connections)

    def get_online_users(self) -> List[str]:
        """현재 인증된 사용자 ID 목록 (중복 제거)"""
        return sorted({c.user_id for c in self.connections.values() if c.user_id is not None})
