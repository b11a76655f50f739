"""
FastAPI dependencies resolving the relay components owned by the app instance.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.requests import HTTPConnection

from src.config.settings import Settings
from src.services.dispatcher import RelayDispatcher
from src.services.registry import RoomRegistry
from src.services.websocket import WebSocketTransport


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_registry(conn: HTTPConnection) -> RoomRegistry:
    return conn.app.state.registry


def get_transport(conn: HTTPConnection) -> WebSocketTransport:
    return conn.app.state.transport


def get_dispatcher(conn: HTTPConnection) -> RelayDispatcher:
    return conn.app.state.dispatcher


async def require_admin(
    x_admin_token: Optional[str] = Header(default=None), config: Settings = Depends(get_settings)
) -> None:
    """
    Dependency guarding admin routes.
    Admin routes are disabled unless an admin token is configured.
    """
    if not config.admin_token or not x_admin_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access denied.")

    if not secrets.compare_digest(x_admin_token, config.admin_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access denied.")
