import asyncio
import logging
import uuid
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """연결별 상태: 인증된 사용자 ID와 참여 중인 채팅방 목록"""
    user_id: Optional[str] = None
    room_ids: Set[str] = field(default_factory=set)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


class Connection:
    """
    하나의 WebSocket 연결.

    전송은 연결별 큐에 넣고 writer task 가 순서대로 내보냅니다.
    느린 peer 가 같은 채팅방의 다른 peer 전송을 막지 않습니다.
    """

    def __init__(self, websocket: WebSocket, send_queue_size: int = 256):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.session: Optional[Session] = Session()
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=send_queue_size)
        self._writer: Optional[asyncio.Task] = None
        self._closed = False

    def __repr__(self) -> str:
        user_id = self.session.user_id if self.session else None
        return f"<Connection {self.id} user={user_id}>"

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None

    @property
    def is_open(self) -> bool:
        """전송 가능한 상태인지 transport 상태로 확인합니다."""
        if self._closed:
            return False
        return (
            self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        )

    def start(self):
        """outbound writer task 를 시작합니다."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain_outbox())

    def push(self, payload: Dict[str, Any]) -> bool:
        """
        이벤트를 전송 큐에 넣습니다. 대기하지 않습니다.

        Returns:
            bool: 큐에 들어갔으면 True, 닫힌 연결이거나 큐가 가득 차서 버렸으면 False
        """
        if not self.is_open:
            return False

        try:
            self._outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for connection {self.id}, dropping {payload.get('type')}")
            return False
        return True

    async def _drain_outbox(self):
        while True:
            payload = await self._outbox.get()
            try:
                if self.is_open:
                    await self.websocket.send_json(payload)
            except Exception as e:
                # 전송 실패는 닫힌 peer 와 동일하게 취급
                logger.warning(f"Failed to send {payload.get('type')} to connection {self.id}: {e}")
                self._closed = True
            finally:
                self._outbox.task_done()

    async def flush(self):
        """큐에 쌓인 이벤트가 모두 처리될 때까지 기다립니다."""
        await self._outbox.join()

    def mark_closed(self):
        self._closed = True

    async def close(self, code: Optional[int] = None):
        """writer 를 멈추고, code 가 주어지면 transport 도 닫습니다."""
        self._closed = True

        if self._writer is not None:
            self._writer.cancel()
            with suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None

        if code is not None and self.websocket.application_state == WebSocketState.CONNECTED:
            try:
                await self.websocket.close(code=code)
            except Exception as e:
                logger.debug(f"Close failed for connection {self.id}: {e}")
