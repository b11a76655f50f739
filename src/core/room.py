"""In memory room state (membership, history, expiry guard)"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.core.errors import NotInRoomError, RoomFullError, RoomNotFoundError
from src.core.events import RoomDetails
from src.core.message import Message


@dataclass
class Room:
    """
    Keeps the state of a single chat room.

    A room is Active until `expire()` succeeds, after which it is Expired for good.
    Members are connection ids mapped to the username they joined with.
    """

    code: str
    creator_id: str
    ttl_ms: int
    max_members: int
    created_at: float = field(default_factory=time.time)
    members: Dict[str, str] = field(default_factory=dict)
    history: List[Message] = field(default_factory=list)
    expired: bool = False

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_ms / 1000

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_members

    def has_member(self, connection_id: str) -> bool:
        return connection_id in self.members

    def username_of(self, connection_id: str) -> Optional[str]:
        return self.members.get(connection_id)

    def join(self, connection_id: str, username: str) -> List[Message]:
        """
        Adds a member and returns the history to replay to it.
        A member re-joining only refreshes its username.
        """
        self._ensure_active()

        if connection_id not in self.members and self.is_full:
            raise RoomFullError()

        self.members[connection_id] = username
        return list(self.history)

    def send(self, connection_id: str, payload: str) -> Message:
        """Appends a message stamped with the sender's recorded username."""
        self._ensure_active()

        sender = self.members.get(connection_id)
        if sender is None:
            raise NotInRoomError()

        message = Message(payload=payload, sender=sender)
        self.history.append(message)
        return message

    def leave(self, connection_id: str) -> Optional[str]:
        """Removes a member. Returns its username, or None if it wasn't a member."""
        if self.expired:
            return None
        return self.members.pop(connection_id, None)

    def expire(self) -> bool:
        """
        Moves the room to its terminal state.
        Returns True only for the call that performed the transition.
        """
        if self.expired:
            return False
        self.expired = True
        return True

    def details(self) -> RoomDetails:
        return RoomDetails(
            room_code=self.code,
            created_at=self.created_at,
            expires_at=self.expires_at,
            max_members=self.max_members,
            member_count=len(self.members),
            message_count=len(self.history),
            is_full=self.is_full,
        )

    def _ensure_active(self) -> None:
        if self.expired:
            raise RoomNotFoundError()
