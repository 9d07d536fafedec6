import logging
from typing import Union

from chat_relay.core.errors import MalformedEventError, UnknownEventError, UnresolvedRoomError
from chat_relay.core.logging import log_websocket_event
from chat_relay.schemas.events import (
    AuthEvent,
    JoinChatEvent,
    LeaveChatEvent,
    NewMessageEvent,
    TypingStatusEvent,
    decode_event,
    error_event,
    relay_message,
    user_typing,
)
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class EventDispatcher:
    """WebSocket 이벤트 처리 핸들러"""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager
        self.directory = manager.directory
        self._handlers = {
            "auth": self._handle_auth,
            "join_chat": self._handle_join_chat,
            "leave_chat": self._handle_leave_chat,
            "new_message": self._handle_new_message,
            "typing_status": self._handle_typing_status,
        }

    async def handle_raw(self, connection: Connection, raw: Union[str, bytes]):
        """
        WebSocket으로 받은 프레임 하나를 처리합니다.

        잘못된 프레임은 해당 프레임만 버리고 연결은 유지합니다.

        Args:
            connection: 프레임을 보낸 연결
            raw: 클라이언트에서 전송한 텍스트 프레임
        """
        if connection.session is None:
            logger.debug(f"Frame received on closed connection {connection.id}, ignoring")
            return

        try:
            event = decode_event(raw, max_payload=self.manager.settings.max_payload)
        except UnknownEventError as e:
            log_websocket_event(
                logger, "unknown_event", connection.id, level=logging.WARNING, type=str(e.event_type)
            )
            return
        except MalformedEventError as e:
            logger.error(f"Dropping malformed frame from connection {connection.id}: {e.message}")
            if self.manager.settings.report_errors:
                connection.push(error_event(e))
            return

        await self.handle_event(connection, event)

    async def handle_event(self, connection: Connection, event):
        handler = self._handlers[event.type]
        try:
            await handler(connection, event)
        except UnresolvedRoomError as e:
            log_websocket_event(
                logger, "unresolved_room", connection.id, level=logging.WARNING, type=event.type
            )
            if self.manager.settings.report_errors:
                connection.push(error_event(e))

    def _resolve_room(self, connection: Connection, chat_id) -> str:
        """명시된 chat_id, 없으면 연결이 참여한 유일한 채팅방"""
        if chat_id is not None:
            return chat_id

        room_ids = connection.session.room_ids
        if len(room_ids) == 1:
            return next(iter(room_ids))

        raise UnresolvedRoomError(
            "No chat_id given and no single active room to fall back to",
            details={"active_rooms": len(room_ids)},
        )

    async def _handle_auth(self, connection: Connection, event: AuthEvent):
        await self.manager.authenticate(connection, event.data.user_id, event.data.chat_id)

    async def _handle_join_chat(self, connection: Connection, event: JoinChatEvent):
        room_id = event.data.chat_id
        await self.directory.join(room_id, connection)
        log_websocket_event(logger, "join_chat", connection.id, room_id=room_id, user_id=connection.user_id)

    async def _handle_leave_chat(self, connection: Connection, event: LeaveChatEvent):
        room_id = event.data.chat_id
        await self.directory.leave(room_id, connection)
        log_websocket_event(logger, "leave_chat", connection.id, room_id=room_id, user_id=connection.user_id)

    async def _handle_new_message(self, connection: Connection, event: NewMessageEvent):
        room_id = self._resolve_room(connection, event.data.chat_id)
        payload = relay_message(event.data, room_id, connection.user_id)

        delivered = await self.directory.fan_out(room_id, connection, payload)
        log_websocket_event(logger, "new_message", connection.id, room_id=room_id, recipients=delivered)

    async def _handle_typing_status(self, connection: Connection, event: TypingStatusEvent):
        room_id = self._resolve_room(connection, event.data.chat_id)
        payload = user_typing(event.data, room_id, connection.user_id)

        delivered = await self.directory.fan_out(room_id, connection, payload)
        log_websocket_event(
            logger, "typing_status", connection.id, room_id=room_id,
            level=logging.DEBUG, recipients=delivered, is_typing=event.data.is_typing
        )
