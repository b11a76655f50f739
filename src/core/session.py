"""Per-connection session record"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ConnectionSession:
    """
    Attributes the relay tracks for one transport connection.
    Owned and updated by the dispatcher only.
    """

    connection_id: str
    username: Optional[str] = None
    room_code: Optional[str] = None

    def enter(self, room_code: str, username: str) -> None:
        self.room_code = room_code
        self.username = username

    def clear_room(self) -> None:
        self.room_code = None
