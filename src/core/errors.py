"""
Relay error taxonomy.
Every error carries a stable reason code that is sent back to the originating client.
"""


class RelayError(Exception):
    """Base class for errors reported to a single connection."""

    reason = "relay_error"
    default_message = "Request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        """Returns the body of the outbound `error` event."""
        return {"reason": self.reason, "message": self.message}


class RoomNotFoundError(RelayError):
    """The room code doesn't exist (never created, expired or closed)."""

    reason = "room_not_found"
    default_message = "Room does not exist."


class RoomFullError(RelayError):
    """The room already holds the maximum number of members."""

    reason = "room_full"
    default_message = "Room is full."


class CodeGenerationError(RelayError):
    """No unused room code was found within the retry budget."""

    reason = "code_generation_failed"
    default_message = "Could not create room, please try again."


class NotInRoomError(RelayError):
    """The connection tried to act on a room it is not a member of."""

    reason = "not_in_room"
    default_message = "You are not a member of this room."


class InvalidRequestError(RelayError):
    """The frame or its payload failed validation."""

    reason = "invalid_request"
    default_message = "Malformed request."


class UnknownEventError(RelayError):
    """The event name has no handler."""

    reason = "unknown_event"
    default_message = "Unsupported event."
