"""
API Routes definition.
Handles room inspection, admin close and the real-time relay WebSocket.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from src.api.dependencies import get_dispatcher, get_registry, get_transport, require_admin
from src.core.code_generator import normalize_code
from src.core.errors import RoomNotFoundError
from src.core.events import RoomDetails
from src.services.dispatcher import RelayDispatcher
from src.services.registry import RoomRegistry
from src.services.websocket import WebSocketTransport

logger = logging.getLogger(__name__)

router = APIRouter()


# === PUBLIC ROUTES ===


@router.get("/health")
async def health_check(
    registry: RoomRegistry = Depends(get_registry), transport: WebSocketTransport = Depends(get_transport)
) -> Dict[str, Any]:
    """Returns the relay status"""
    return {"status": "online", "rooms": len(registry), "connections": len(transport)}


@router.get("/rooms/{room_code}", response_model=RoomDetails)
async def get_room(room_code: str, registry: RoomRegistry = Depends(get_registry)) -> RoomDetails:
    """
    Returns details of a live room.
    """
    room = registry.lookup(room_code)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room does not exist.")

    return room.details()


# === Admin routes ===


@router.delete("/rooms/{room_code}", dependencies=[Depends(require_admin)])
async def close_room(room_code: str, dispatcher: RelayDispatcher = Depends(get_dispatcher)) -> Dict[str, str]:
    """
    Closes a room before its timer fires.
    Members are notified the same way as on expiry.
    """
    code = normalize_code(room_code)
    try:
        dispatcher.close_room(code)
    except RoomNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    logger.info("Room %s closed by admin", code)

    return {"status": "closed", "room_code": code}


# === WebSocket Route ===


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    transport: WebSocketTransport = Depends(get_transport),
    dispatcher: RelayDispatcher = Depends(get_dispatcher),
) -> None:
    """
    Real-time relay endpoint.
    Every frame is a JSON envelope `{"event": ..., "data": {...}}`.
    Binary frames are accepted as UTF-8 encoded JSON.
    """
    connection_id = await transport.connect(websocket)
    dispatcher.connect(connection_id)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            dispatcher.handle_raw(connection_id, raw)
    except WebSocketDisconnect:
        pass
    finally:
        dispatcher.disconnect(connection_id)
        await transport.disconnect(connection_id)
