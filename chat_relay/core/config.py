"""
Relay Configuration

환경 변수를 통한 설정 관리
"""

from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()  # .env 파일 로드


class Settings(BaseSettings):
    """Chat relay 설정"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    app_name: str = "chat-relay"
    version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    websocket_path: str = "/"
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    configure_logging: bool = True

    # Connections
    max_connections: int = 1000
    heartbeat_interval: float = 30.0
    max_payload: int = 1024 * 1024  # 1MB
    send_queue_size: int = 256
    report_errors: bool = True


settings = Settings()
