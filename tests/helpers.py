from starlette.websockets import WebSocketState

from chat_relay.websockets.room_directory import RoomDirectory


class FakeWebSocket:
    """transport 대신 사용하는 가짜 WebSocket (보낸 이벤트를 기록)"""

    def __init__(self, fail_sends: bool = False):
        self.application_state = WebSocketState.CONNECTING
        self.client_state = WebSocketState.CONNECTED
        self.sent = []
        self.closed_code = None
        self.fail_sends = fail_sends

    async def accept(self):
        self.application_state = WebSocketState.CONNECTED

    async def send_json(self, data):
        if self.fail_sends:
            raise RuntimeError("connection reset by peer")
        self.sent.append(data)

    async def close(self, code: int = 1000):
        self.application_state = WebSocketState.DISCONNECTED
        self.closed_code = code

    def drop(self):
        """클라이언트 쪽에서 끊긴 상태로 만듭니다."""
        self.client_state = WebSocketState.DISCONNECTED

    @property
    def types(self):
        return [message["type"] for message in self.sent]


def assert_membership_consistent(directory: RoomDirectory, connections):
    """채팅방 참여자와 세션의 room_ids 가 서로 일치하는지 확인"""
    for room_id in directory.room_ids():
        members = directory.members(room_id)
        assert members, f"empty room {room_id} left in directory"
        for member in members:
            assert member.session is not None
            assert room_id in member.session.room_ids

    for connection in connections:
        if connection.session is None:
            for room_id in directory.room_ids():
                assert connection not in directory.members(room_id)
            continue
        for room_id in connection.session.room_ids:
            assert connection in directory.members(room_id)


async def settle(*connections):
    """전송 큐가 비워질 때까지 대기"""
    for connection in connections:
        if connection.session is not None:
            await connection.flush()


