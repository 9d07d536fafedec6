"""
WebSocket 실시간 relay 모듈

주요 구성 요소:
- connection: 연결과 세션 상태, 연결별 전송 큐
- room_directory: 채팅방별 참여자 관리와 fan-out
- connection_manager: 연결 등록/인증/해제
- handlers: 이벤트 디스패처
"""

from .connection import Connection, Session
from .room_directory import RoomDirectory
from .connection_manager import ConnectionManager
from .handlers import EventDispatcher

__all__ = [
    "Connection",
    "Session",
    "RoomDirectory",
    "ConnectionManager",
    "EventDispatcher",
]
