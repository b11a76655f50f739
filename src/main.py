"""
Main entry point for the FastAPI application.
Wires the relay components, configures lifespan events and mounts routers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from src.api.routes import router as api_router
from src.config.settings import Settings, settings
from src.core.code_generator import CodeGenerator
from src.services.dispatcher import RelayDispatcher
from src.services.registry import RoomRegistry
from src.services.scheduler import ExpiryScheduler
from src.services.websocket import WebSocketTransport

# Setup Logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Disable this warning as it is a false positive caused by fasapi syntax
# pylint: disable=redefined-outer-name
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application Lifecycle Manager.
    On shutdown, cancels pending expiry timers and closes open sockets.
    """
    logger.info("Starting relay...")

    yield

    logger.info("Shutting down relay...")
    cancelled = app.state.scheduler.cancel_all()
    dropped = app.state.registry.clear()
    await app.state.transport.close_all()
    logger.info("Relay shutdown complete. Cancelled %d timers, dropped %d rooms.", cancelled, dropped)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Factory to create the app."""
    config = config or settings

    application = FastAPI(
        title=config.app_name,
        description="Ephemeral room-based chat relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Relay components, one set per app instance
    scheduler = ExpiryScheduler()
    code_generator = CodeGenerator(
        length=config.room_code_length,
        alphabet=config.room_code_alphabet,
        max_attempts=config.room_code_max_attempts,
    )
    registry = RoomRegistry(code_generator, scheduler, max_members=config.max_room_members)
    transport = WebSocketTransport()

    application.state.settings = config
    application.state.scheduler = scheduler
    application.state.registry = registry
    application.state.transport = transport
    application.state.dispatcher = RelayDispatcher(
        registry,
        transport,
        default_ttl_ms=config.default_room_ttl_ms,
        delete_empty_rooms=config.delete_empty_rooms,
    )

    # Middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    application.include_router(api_router, prefix="/api")

    # Static Files (Frontend)
    try:
        application.mount("/static", StaticFiles(directory=config.static_dir), name="static")
        index_path = f"{config.static_dir}/index.html"

        @application.get("/")
        async def root() -> FileResponse:
            return FileResponse(index_path)

    except RuntimeError:
        logger.warning("'%s' directory not found. UI will not be served.", config.static_dir)

    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run("src.main:app", host=settings.server_host, port=settings.server_port)
