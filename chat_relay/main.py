import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_relay.api.health import router as health_router
from chat_relay.api.websocket import router as websocket_router, websocket_endpoint
from chat_relay.core.config import Settings, settings as default_settings
from chat_relay.core.logging import setup_logging
from chat_relay.websockets.connection_manager import ConnectionManager
from chat_relay.websockets.handlers import EventDispatcher

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    manager = ConnectionManager(settings)
    dispatcher = EventDispatcher(manager)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if settings.configure_logging:
            setup_logging(settings)
        logger.info(f"{settings.app_name} starting, websocket path {settings.websocket_path}")
        yield
        # Shutdown
        logger.info(f"Stopping {settings.app_name}, closing {manager.connection_count} connections")
        await manager.close_all()

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.manager = manager
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health_router)
    app.include_router(websocket_router)
    app.add_api_websocket_route(settings.websocket_path, websocket_endpoint)

    @app.get("/")
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.version,
            "status": "running",
        }

    return app


app = create_app()
