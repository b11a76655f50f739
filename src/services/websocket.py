"""
WebSocket transport.
Tracks active connections and room broadcast groups, and delivers outbound events.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

OutboundEvent = Dict[str, Any]


class RelayTransport(ABC):
    """
    Abstract interface for the transport capabilities the relay core consumes.
    All methods are non-blocking so they can be called while mutating room state.
    """

    @abstractmethod
    def join_group(self, connection_id: str, code: str) -> None:
        """Subscribes a connection to a room's broadcasts."""

    @abstractmethod
    def leave_group(self, connection_id: str, code: str) -> None:
        """Unsubscribes a connection from a room's broadcasts."""

    @abstractmethod
    def close_group(self, code: str) -> None:
        """Drops a room's broadcast group entirely."""

    @abstractmethod
    def emit(self, connection_id: str, event: str, data: Any) -> None:
        """Sends an event to a single connection."""

    @abstractmethod
    def emit_to_group(self, code: str, event: str, data: Any, exclude: Optional[str] = None) -> None:
        """Sends an event to every connection in a room, optionally skipping one."""


class WebSocketTransport(RelayTransport):
    """
    Transport over FastAPI WebSockets.

    Every connection gets a FIFO outbound queue drained by its own writer task,
    so emitting never awaits and per-connection delivery order matches emit order.
    """

    def __init__(self) -> None:
        self.active_connections: Dict[str, WebSocket] = {}
        self.groups: Dict[str, Set[str]] = {}
        self._queues: Dict[str, asyncio.Queue[OutboundEvent]] = {}
        self._writer_tasks: Dict[str, asyncio.Task[None]] = {}

    def __len__(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accepts a new WebSocket connection and returns its connection id.
        """
        await websocket.accept()
        connection_id = uuid.uuid4().hex

        self.active_connections[connection_id] = websocket
        self._queues[connection_id] = asyncio.Queue()
        self._writer_tasks[connection_id] = asyncio.create_task(self._writer(connection_id, websocket))

        logger.info("A user connected: %s. Total: %d", connection_id, len(self.active_connections))
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """
        Removes a connection from every group and stops its writer.
        """
        self.active_connections.pop(connection_id, None)
        self._queues.pop(connection_id, None)

        for code in list(self.groups):
            self.leave_group(connection_id, code)

        task = self._writer_tasks.pop(connection_id, None)
        if task and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("A user disconnected: %s", connection_id)

    async def close_all(self) -> None:
        """Closes every open socket. Used on shutdown."""
        for connection_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.close()
            # pylint: disable=broad-exception-caught
            except Exception as e:
                logger.debug("Error closing WS %s: %s", connection_id, e)
            await self.disconnect(connection_id)

    def join_group(self, connection_id: str, code: str) -> None:
        self.groups.setdefault(code, set()).add(connection_id)

    def leave_group(self, connection_id: str, code: str) -> None:
        members = self.groups.get(code)
        if members is None:
            return

        members.discard(connection_id)
        # Cleanup group if room is empty.
        if not members:
            del self.groups[code]

    def close_group(self, code: str) -> None:
        self.groups.pop(code, None)

    def emit(self, connection_id: str, event: str, data: Any) -> None:
        queue = self._queues.get(connection_id)
        if queue is None:
            logger.debug("Dropping %s for closed connection %s", event, connection_id)
            return
        queue.put_nowait({"event": event, "data": data})

    def emit_to_group(self, code: str, event: str, data: Any, exclude: Optional[str] = None) -> None:
        for connection_id in list(self.groups.get(code, ())):
            if connection_id != exclude:
                self.emit(connection_id, event, data)

    async def _writer(self, connection_id: str, websocket: WebSocket) -> None:
        """
        Drains the outbound queue of a connection until it is cancelled or the socket fails.
        """
        queue = self._queues[connection_id]
        while True:
            frame = await queue.get()
            try:
                await websocket.send_json(frame)
            # pylint: disable=broad-exception-caught
            except Exception as e:
                logger.warning("Error sending to WS %s: %s", connection_id, e)
                # The receive loop notices the closed socket and runs the disconnect path.
                self._queues.pop(connection_id, None)
                return
