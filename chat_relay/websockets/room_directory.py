import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from chat_relay.websockets.connection import Connection

logger = logging.getLogger(__name__)


class RoomDirectory:
    """
    채팅방 ID -> 참여 연결 집합.

    빈 채팅방은 보관하지 않습니다. 마지막 참여자가 나가면 즉시 삭제됩니다.
    모든 변경과 브로드캐스트용 조회는 하나의 lock 안에서 수행되므로
    브로드캐스트는 항상 일관된 참여자 스냅샷을 봅니다.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[Connection]] = {}
        self._lock = asyncio.Lock()

    def _add(self, room_id: str, connection: Connection):
        # 해제된 연결은 다시 등록하지 않음
        if connection.session is None:
            return
        self._rooms.setdefault(room_id, set()).add(connection)
        connection.session.room_ids.add(room_id)

    def _discard(self, room_id: str, connection: Connection):
        members = self._rooms.get(room_id)
        if members is not None:
            members.discard(connection)
            # 채팅방에 참여자가 없으면 방 자체를 제거
            if not members:
                del self._rooms[room_id]
        if connection.session is not None:
            connection.session.room_ids.discard(room_id)

    def _others(self, room_id: str, connection: Connection) -> List[Connection]:
        return [member for member in self._rooms.get(room_id, ()) if member is not connection]

    async def join(self, room_id: str, connection: Connection):
        """채팅방에 연결을 추가합니다. 없는 방은 새로 만듭니다."""
        async with self._lock:
            self._add(room_id, connection)

    async def leave(self, room_id: str, connection: Connection):
        """채팅방에서 연결을 제거합니다. 참여하지 않았거나 없는 방이면 아무것도 하지 않습니다."""
        async with self._lock:
            self._discard(room_id, connection)

    async def members_excluding(self, room_id: str, connection: Connection) -> List[Connection]:
        """채팅방 참여자 중 connection 을 제외한 목록. 없는 방이면 빈 목록."""
        async with self._lock:
            return self._others(room_id, connection)

    async def fan_out(
        self,
        room_id: str,
        sender: Connection,
        payload: Dict[str, Any],
        join_if_absent: bool = True,
    ) -> int:
        """
        sender 를 제외한 채팅방 참여자에게 payload 를 전송 큐에 넣습니다.

        Args:
            room_id: 대상 채팅방 ID
            sender: 보낸 연결 (수신 대상에서 제외)
            payload: 전송할 이벤트
            join_if_absent: 방이 없으면 sender 를 먼저 참여시킴

        Returns:
            int: 큐에 들어간 수신자 수
        """
        async with self._lock:
            if sender.session is None:
                return 0

            if join_if_absent and room_id not in self._rooms:
                self._add(room_id, sender)
                logger.info(f"Connection {sender.id} implicitly joined room {room_id}")

            delivered = 0
            for member in self._others(room_id, sender):
                if member.push(payload):
                    delivered += 1
            return delivered

    async def remove_everywhere(self, connection: Connection) -> List[str]:
        """연결이 참여한 모든 채팅방에서 제거하고, 제거된 방 ID 목록을 반환합니다."""
        async with self._lock:
            room_ids = list(connection.session.room_ids)
            for room_id in room_ids:
                self._discard(room_id, connection)
            return room_ids

    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    def room_ids(self) -> List[str]:
        return list(self._rooms.keys())

    def member_count(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, ()))

    def members(self, room_id: str) -> List[Connection]:
        return list(self._rooms.get(room_id, ()))

    def room_user_ids(self, room_id: str) -> List[Optional[str]]:
        """채팅방에 연결된 사용자 ID 목록 (인증 전 연결은 None)"""
        return [member.user_id for member in self._rooms.get(room_id, ())]

    @property
    def room_count(self) -> int:
        return len(self._rooms)
