from typing import Any, Dict, Optional


class RelayError(Exception):
    """기본 relay 예외 클래스"""

    error = "relay_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """예외를 딕셔너리로 변환"""
        return {
            "error": self.error,
            "message": self.message,
            "details": self.details,
        }


class MalformedEventError(RelayError):
    """프레임 파싱 실패 또는 필수 필드 누락"""

    error = "malformed_event"


class UnknownEventError(RelayError):
    """알 수 없는 이벤트 타입"""

    error = "unknown_event"

    def __init__(self, event_type: Any):
        self.event_type = event_type
        super().__init__(
            f"Unknown event type: {event_type}",
            details={"type": event_type},
        )


class UnresolvedRoomError(RelayError):
    """대상 채팅방을 결정할 수 없음"""

    error = "unresolved_room"
