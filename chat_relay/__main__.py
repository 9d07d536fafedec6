import uvicorn

from chat_relay.core.config import settings


def main():
    uvicorn.run(
        "chat_relay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        ws_ping_interval=settings.heartbeat_interval,
        ws_ping_timeout=settings.heartbeat_interval,
        log_config=None,
    )


if __name__ == "__main__":
    main()
