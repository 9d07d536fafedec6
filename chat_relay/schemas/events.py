"""
WebSocket 이벤트 스키마

클라이언트가 보내는 이벤트는 `type` 필드로 구분되는 tagged union 으로 해석하고,
서버가 내보내는 이벤트는 dict 형태로 만들어 전송합니다.
"""

import json
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError

from chat_relay.core.errors import MalformedEventError, RelayError, UnknownEventError


def _coerce_identifier(value: Any) -> Any:
    # 클라이언트가 숫자 ID를 보내는 경우가 있어 문자열로 통일
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Identifier = Annotated[str, BeforeValidator(_coerce_identifier), Field(min_length=1)]


class EventData(BaseModel):
    """이벤트 data 기본 스키마 (추가 필드는 그대로 전달)"""
    model_config = ConfigDict(extra="allow")


class AuthData(EventData):
    user_id: Identifier = Field(..., description="클라이언트가 주장하는 사용자 ID")
    chat_id: Optional[Identifier] = Field(None, description="인증과 동시에 입장할 채팅방 ID")


class ChatRefData(EventData):
    chat_id: Identifier = Field(..., description="채팅방 ID")


class MessageData(EventData):
    chat_id: Optional[Identifier] = Field(None, description="채팅방 ID (없으면 현재 채팅방)")
    content: Any = Field(..., description="메시지 내용 (형식은 클라이언트가 정함)")


class TypingData(EventData):
    chat_id: Optional[Identifier] = Field(None, description="채팅방 ID (없으면 현재 채팅방)")
    is_typing: bool = Field(..., description="입력 중 여부")


class AuthEvent(BaseModel):
    type: Literal["auth"]
    data: AuthData


class JoinChatEvent(BaseModel):
    type: Literal["join_chat"]
    data: ChatRefData


class LeaveChatEvent(BaseModel):
    type: Literal["leave_chat"]
    data: ChatRefData


class NewMessageEvent(BaseModel):
    type: Literal["new_message"]
    data: MessageData


class TypingStatusEvent(BaseModel):
    type: Literal["typing_status"]
    data: TypingData


InboundEvent = Annotated[
    Union[AuthEvent, JoinChatEvent, LeaveChatEvent, NewMessageEvent, TypingStatusEvent],
    Field(discriminator="type"),
]

EVENT_TYPES = frozenset({"auth", "join_chat", "leave_chat", "new_message", "typing_status"})

_inbound_adapter = TypeAdapter(InboundEvent)


def decode_event(raw: Union[str, bytes], max_payload: Optional[int] = None):
    """
    텍스트 프레임을 inbound 이벤트 모델로 변환합니다.

    Args:
        raw: 클라이언트가 보낸 프레임
        max_payload: 허용되는 최대 프레임 크기 (bytes)

    Raises:
        MalformedEventError: 파싱 실패, 필수 필드 누락, 크기 초과
        UnknownEventError: 알 수 없는 이벤트 타입
    """
    size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
    if max_payload is not None and size > max_payload:
        raise MalformedEventError(
            "Frame exceeds maximum payload size",
            details={"size": size, "max_payload": max_payload},
        )

    try:
        message = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedEventError("Frame is not valid JSON", details={"reason": str(e)}) from e

    if not isinstance(message, dict) or "type" not in message:
        raise MalformedEventError("Frame must be an object with a 'type' field")

    event_type = message["type"]
    if not isinstance(event_type, str) or event_type not in EVENT_TYPES:
        raise UnknownEventError(event_type)

    try:
        return _inbound_adapter.validate_python(message)
    except ValidationError as e:
        fields = [".".join(str(loc) for loc in error["loc"]) for error in e.errors()]
        raise MalformedEventError(
            f"Invalid '{event_type}' event",
            details={"fields": fields},
        ) from e


def _forwarded_data(data: EventData, room_id: str, user_id: Optional[str]) -> Dict[str, Any]:
    payload = data.model_dump()
    payload["chat_id"] = room_id
    if payload.get("user_id") is None:
        payload["user_id"] = user_id
    return payload


def auth_success(user_id: str, chat_id: Optional[str] = None) -> Dict[str, Any]:
    data = {"user_id": user_id}
    if chat_id is not None:
        data["chat_id"] = chat_id
    return {"type": "auth_success", "data": data}


def relay_message(data: MessageData, room_id: str, user_id: Optional[str]) -> Dict[str, Any]:
    return {"type": "new_message", "data": _forwarded_data(data, room_id, user_id)}


def user_typing(data: TypingData, room_id: str, user_id: Optional[str]) -> Dict[str, Any]:
    return {"type": "user_typing", "data": _forwarded_data(data, room_id, user_id)}


def error_event(exc: RelayError) -> Dict[str, Any]:
    return {"type": "error", "data": exc.to_dict()}
