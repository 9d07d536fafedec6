import logging

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from chat_relay.core.logging import clear_connection_context, set_connection_context
from chat_relay.websockets.connection_manager import ConnectionManager
from chat_relay.websockets.handlers import EventDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])


async def websocket_endpoint(websocket: WebSocket):
    """
    채팅 relay WebSocket 연결 엔드포인트

    연결 후 인증(auth), 채팅방 참여(join_chat) 등 모든 이벤트를 같은 연결로 주고받습니다.
    """
    manager: ConnectionManager = websocket.app.state.manager
    dispatcher: EventDispatcher = websocket.app.state.dispatcher

    # 1. 연결 등록
    connection = await manager.connect(websocket)
    if connection is None:
        return

    set_connection_context(connection.id)

    # 2. 메시지 수신 루프
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""

            await dispatcher.handle_raw(connection, raw)

    except WebSocketDisconnect:
        # 정상적인 연결 해제
        logger.info(f"WebSocket disconnected for connection {connection.id} (user {connection.user_id})")

    except Exception as e:
        logger.error(f"Unexpected error in WebSocket connection {connection.id}: {e}", exc_info=True)

    finally:
        # 3. 연결 해제 처리
        await manager.disconnect(connection)
        clear_connection_context()


@router.get("/rooms/{room_id}/status")
async def get_room_status(room_id: str, request: Request):
    """
    채팅방의 현재 상태 정보를 조회합니다.

    Returns:
        dict: 채팅방 상태 정보
    """
    manager: ConnectionManager = request.app.state.manager
    directory = manager.directory

    online_count = directory.member_count(room_id)
    return {
        "room_id": room_id,
        "online_users": directory.room_user_ids(room_id),
        "online_count": online_count,
        "is_active": online_count > 0,
    }
