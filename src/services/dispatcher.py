"""
Relay dispatcher.
Routes inbound client events to registry/room operations and turns the results
into addressed outbound events.
"""

import logging
from typing import Any, Callable, Dict, Union

from pydantic import ValidationError

from src.core import events
from src.core.errors import InvalidRequestError, RelayError, RoomNotFoundError, UnknownEventError
from src.core.session import ConnectionSession
from src.services.registry import RoomRegistry
from src.services.websocket import RelayTransport

logger = logging.getLogger(__name__)

EXPIRED_REASON = "This room has expired and is now closed."
CLOSED_REASON = "This room has been closed."


class RelayDispatcher:
    """
    Single entry point for client events.

    Handlers are synchronous and the transport only enqueues, so each event is applied
    to the registry and rooms, and its broadcasts are queued, without interleaving
    with any other event or timer.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        transport: RelayTransport,
        default_ttl_ms: int,
        delete_empty_rooms: bool = False,
    ):
        self.registry = registry
        self.transport = transport
        self.default_ttl_ms = default_ttl_ms
        self.delete_empty_rooms = delete_empty_rooms
        self.sessions: Dict[str, ConnectionSession] = {}

        self._handlers: Dict[str, Callable[[ConnectionSession, Dict[str, Any]], None]] = {
            events.CREATE_ROOM: self.create_room,
            events.JOIN_ROOM: self.join_room,
            events.SEND_MESSAGE: self.send_message,
        }

    # === Connection lifecycle ===

    def connect(self, connection_id: str) -> ConnectionSession:
        session = ConnectionSession(connection_id=connection_id)
        self.sessions[connection_id] = session
        return session

    def disconnect(self, connection_id: str) -> None:
        """Removes the connection from its room and notifies the remaining members."""
        session = self.sessions.pop(connection_id, None)
        if session is None:
            return
        self._leave_current_room(session)

    # === Inbound events ===

    def handle_raw(self, connection_id: str, raw: Union[str, bytes]) -> None:
        """Parses a JSON frame (text, or UTF-8 bytes) and dispatches it."""
        try:
            envelope = events.Envelope.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Malformed frame from %s: %s", connection_id, e.errors()[:1])
            self._emit_error(connection_id, InvalidRequestError())
            return

        self.handle(connection_id, envelope.event, envelope.data)

    def handle(self, connection_id: str, event: str, data: Dict[str, Any]) -> None:
        """
        Dispatches one event. Relay errors are reported to the originating connection only.
        """
        session = self.sessions.get(connection_id)
        if session is None:
            session = self.connect(connection_id)

        try:
            handler = self._handlers.get(event)
            if handler is None:
                raise UnknownEventError(f"Unsupported event: {event}")
            handler(session, data)
        except ValidationError as e:
            logger.warning("Invalid %s payload from %s: %s", event, connection_id, e.errors()[:1])
            self._emit_error(connection_id, InvalidRequestError())
        except RelayError as e:
            logger.warning("%s from %s failed: %s", event, connection_id, e.reason)
            self._emit_error(connection_id, e)

    def create_room(self, session: ConnectionSession, data: Dict[str, Any]) -> None:
        request = events.CreateRoomRequest.model_validate(data)
        ttl_ms = request.ttl_ms or self.default_ttl_ms

        room = self.registry.create(ttl_ms, session.connection_id, request.username, on_expire=self.expire_room)

        self._leave_current_room(session)
        session.enter(room.code, request.username)
        self.transport.join_group(session.connection_id, room.code)

        self.transport.emit(
            session.connection_id,
            events.ROOM_CREATED,
            {"room_code": room.code, "expires_at": room.expires_at},
        )

    def join_room(self, session: ConnectionSession, data: Dict[str, Any]) -> None:
        request = events.JoinRoomRequest.model_validate(data)
        room = self.registry.get(request.room_code)

        rejoin = room.has_member(session.connection_id)
        history = room.join(session.connection_id, request.username)

        if session.room_code != room.code:
            self._leave_current_room(session)
        session.enter(room.code, request.username)
        self.transport.join_group(session.connection_id, room.code)

        self.transport.emit(
            session.connection_id,
            events.JOIN_SUCCESS,
            {"room_code": room.code, "chat_history": [m.model_dump(mode="json") for m in history]},
        )
        if not rejoin:
            self.transport.emit_to_group(
                room.code,
                events.USER_JOINED,
                {"username": request.username, "message": f"{request.username} has joined the chat."},
                exclude=session.connection_id,
            )

        logger.info("%s (%s) joined room: %s", request.username, session.connection_id, room.code)

    def send_message(self, session: ConnectionSession, data: Dict[str, Any]) -> None:
        request = events.SendMessageRequest.model_validate(data)
        room = self.registry.get(request.room_code)

        message = room.send(session.connection_id, request.payload)

        # The sender gets its own message back too.
        self.transport.emit_to_group(room.code, events.RECEIVE_MESSAGE, message.model_dump(mode="json"))

    # === Room teardown ===

    def expire_room(self, code: str) -> bool:
        """Timer callback. Returns True if this call tore the room down."""
        return self._teardown(code, EXPIRED_REASON)

    def close_room(self, code: str) -> bool:
        """
        Explicit close, converging on the same terminal state as expiry.

        Raises:
            RoomNotFoundError: no live room has this code.
        """
        if self.registry.lookup(code) is None:
            raise RoomNotFoundError()
        return self._teardown(code, CLOSED_REASON)

    def _teardown(self, code: str, reason: str) -> bool:
        room = self.registry.lookup(code)
        if room is None or not room.expire():
            return False

        self.registry.delete(room.code)

        self.transport.emit_to_group(room.code, events.ROOM_DELETED, {"room_code": room.code, "reason": reason})
        self.transport.close_group(room.code)

        for connection_id in room.members:
            session = self.sessions.get(connection_id)
            if session and session.room_code == room.code:
                session.clear_room()

        logger.info("Room %s torn down: %s", room.code, reason)
        return True

    # === Helpers ===

    def _leave_current_room(self, session: ConnectionSession) -> None:
        code = session.room_code
        if code is None:
            return
        session.clear_room()
        self.transport.leave_group(session.connection_id, code)

        room = self.registry.lookup(code)
        if room is None:
            return

        username = room.leave(session.connection_id)
        if username is None:
            return

        self.transport.emit_to_group(
            room.code,
            events.USER_LEFT,
            {"username": username, "message": f"{username} has left the chat."},
        )
        logger.info("%s (%s) left room: %s", username, session.connection_id, room.code)

        if self.delete_empty_rooms and not room.members:
            self._teardown(room.code, CLOSED_REASON)

    def _emit_error(self, connection_id: str, error: RelayError) -> None:
        self.transport.emit(connection_id, events.ERROR, error.to_payload())
