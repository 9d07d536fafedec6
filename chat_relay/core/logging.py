"""
구조화된 로깅 시스템

JSON 형식의 구조화된 로그를 제공하여 로그 분석과 모니터링을 용이하게 합니다.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from chat_relay.core.config import Settings

# 컨텍스트 변수로 연결별 추적 정보 저장
connection_id_var: ContextVar[Optional[str]] = ContextVar('connection_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage',
    'taskName', 'message', 'asctime',
}


class StructuredFormatter(logging.Formatter):
    """
    릴레이 로그용 JSON 포매터

    연결/사용자 컨텍스트와 채팅방, 이벤트 정보는 최상위 키로 올리고
    나머지 extra 필드는 "extra" 아래에 모읍니다.
    """

    context_vars = (connection_id_var, user_id_var)
    promoted_fields = ("event", "room_id")

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for var in self.context_vars:
            value = var.get()
            if value:
                log_data[var.name] = value

        extra = self._extra_fields(record)
        for key in self.promoted_fields:
            value = extra.pop(key, None)
            if value is not None:
                log_data[key] = value
        if extra:
            log_data["extra"] = extra

        if record.exc_info:
            log_data["exception"] = self._exception_info(record)

        return json.dumps(log_data, ensure_ascii=False, default=str)

    def _extra_fields(self, record: logging.LogRecord) -> dict:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith('_')
        }

    def _exception_info(self, record: logging.LogRecord) -> dict:
        exc_type, exc, _ = record.exc_info
        return {
            "type": exc_type.__name__,
            "message": str(exc),
            "traceback": self.formatException(record.exc_info),
        }


def setup_logging(settings: Settings):
    """로깅 시스템 초기화"""

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # 루트 로거 설정
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 기존 핸들러 제거
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # 콘솔 핸들러
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if settings.debug:
        # 개발 환경: 사람이 읽기 쉬운 형식
        console_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        # 프로덕션 환경: 구조화된 JSON 형식
        console_formatter = StructuredFormatter()

    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        # 파일 핸들러 (항상 구조화된 형식)
        file_handler = logging.FileHandler(log_dir / "app.log", encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

        # 에러 전용 파일 핸들러
        error_handler = logging.FileHandler(log_dir / "error.log", encoding='utf-8')
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(error_handler)

    # 외부 라이브러리 로그 레벨 조정
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def set_connection_context(connection_id: str, user_id: Optional[str] = None):
    """연결 컨텍스트 설정"""
    connection_id_var.set(connection_id)
    user_id_var.set(user_id)


def clear_connection_context():
    """연결 컨텍스트 초기화"""
    connection_id_var.set(None)
    user_id_var.set(None)


def log_websocket_event(
    logger: logging.Logger,
    event: str,
    connection_id: str,
    room_id: Optional[str] = None,
    level: int = logging.INFO,
    **extra
):
    """WebSocket 이벤트 로그"""
    message = f"WebSocket {event} - Connection {connection_id}"
    if room_id is not None:
        message += f" in Room {room_id}"
    logger.log(
        level,
        message,
        extra={
            "event_type": "websocket",
            "event": event,
            "connection_id": connection_id,
            "room_id": room_id,
            **extra
        }
    )
