"""Wire models for the client <-> relay event protocol"""

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field

# Inbound event names
CREATE_ROOM = "createRoom"
JOIN_ROOM = "joinRoom"
SEND_MESSAGE = "sendMessage"

# Outbound event names
ROOM_CREATED = "roomCreated"
JOIN_SUCCESS = "joinSuccess"
USER_JOINED = "userJoined"
USER_LEFT = "userLeft"
RECEIVE_MESSAGE = "receiveMessage"
ROOM_DELETED = "roomDeleted"
ERROR = "error"


class Envelope(BaseModel):
    """A single JSON frame exchanged over the socket."""

    event: str = Field(min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


class CreateRoomRequest(BaseModel):
    """Payload of `createRoom`. A missing ttl falls back to the configured default."""

    ttl_ms: Optional[int] = Field(default=None, gt=0, validation_alias=AliasChoices("ttl_ms", "deletionTime"))
    username: str = Field(min_length=1)


class JoinRoomRequest(BaseModel):
    """Payload of `joinRoom`."""

    room_code: str = Field(min_length=1, validation_alias=AliasChoices("room_code", "roomCode"))
    username: str = Field(min_length=1)


class SendMessageRequest(BaseModel):
    """Payload of `sendMessage`."""

    room_code: str = Field(min_length=1, validation_alias=AliasChoices("room_code", "roomCode"))
    payload: str = Field(validation_alias=AliasChoices("payload", "encryptedMessage"))


class RoomDetails(BaseModel):
    """Public view of a live room."""

    room_code: str
    created_at: float
    expires_at: float
    max_members: int
    member_count: int
    message_count: int
    is_full: bool
