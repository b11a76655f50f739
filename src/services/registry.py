"""
Room registry, the single owner of live rooms.
Handles creation (code allocation + expiry timer), lookup and deletion.
"""

import logging
from typing import Dict, List, Optional

from src.core.code_generator import CodeGenerator, normalize_code
from src.core.errors import InvalidRequestError, RoomNotFoundError
from src.core.room import Room
from src.services.scheduler import ExpiryCallback, ExpiryScheduler

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Maps room codes to live rooms."""

    def __init__(self, code_generator: CodeGenerator, scheduler: ExpiryScheduler, max_members: int):
        self.code_generator = code_generator
        self.scheduler = scheduler
        self.max_members = max_members
        self._rooms: Dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        return normalize_code(code) in self._rooms

    def codes(self) -> List[str]:
        return list(self._rooms)

    def create(self, ttl_ms: int, creator_id: str, username: str, on_expire: ExpiryCallback) -> Room:
        """
        Creates a room with the creator as its first member and starts its expiry timer.

        Raises:
            ValueError: ttl_ms is not positive.
            InvalidRequestError: ttl_ms is too large to schedule.
            CodeGenerationError: no free code could be allocated.
        """
        if ttl_ms <= 0:
            raise ValueError("Room TTL must be positive")
        try:
            delay_seconds = ttl_ms / 1000
        except OverflowError as e:
            raise InvalidRequestError("Room TTL is too large.") from e

        code = self.code_generator.generate(lambda candidate: candidate in self._rooms)

        room = Room(code=code, creator_id=creator_id, ttl_ms=ttl_ms, max_members=self.max_members)
        room.join(creator_id, username)

        self.scheduler.schedule(code, delay_seconds, on_expire)
        self._rooms[code] = room

        logger.info("Room created: %s by %s (%s). Deletes in %ss.", code, username, creator_id, delay_seconds)
        return room

    def lookup(self, code: str) -> Optional[Room]:
        """Returns the live room for a code, or None."""
        return self._rooms.get(normalize_code(code))

    def get(self, code: str) -> Room:
        """Same as lookup, but a missing room raises RoomNotFoundError."""
        room = self.lookup(code)
        if room is None:
            raise RoomNotFoundError()
        return room

    def delete(self, code: str) -> Optional[Room]:
        """
        Removes a room, marks it expired and cancels its timer.
        Deleting an unknown code is a no-op.
        """
        room = self._rooms.pop(normalize_code(code), None)
        if room is None:
            return None

        room.expire()
        self.scheduler.cancel(room.code)
        logger.info("Room %s deleted.", room.code)
        return room

    def clear(self) -> int:
        """Deletes every room. Returns how many were removed."""
        count = 0
        for code in self.codes():
            if self.delete(code):
                count += 1
        return count
