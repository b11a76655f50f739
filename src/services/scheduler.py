"""
One-shot expiry timers for rooms.
Timers run on the asyncio event loop, so firing and cancelling are serialized.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[str], Any]


@dataclass
class ScheduledExpiry:
    """A pending timer for a room code."""

    code: str
    deadline: float
    handle: asyncio.TimerHandle


class ExpiryScheduler:
    """
    Keeps at most one pending timer per room code.

    A timer entry is removed before its callback runs, so for any timer
    exactly one of `cancel()` returning True or the callback running happens.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, ScheduledExpiry] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def schedule(self, code: str, delay_seconds: float, callback: ExpiryCallback) -> ScheduledExpiry:
        """
        Starts the timer for a room.
        Must be called from the event loop thread.
        """
        if delay_seconds <= 0:
            raise ValueError("Expiry delay must be positive")
        if code in self._pending:
            raise ValueError(f"Room {code} already has a pending expiry")

        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay_seconds, self._fire, code, callback)
        entry = ScheduledExpiry(code=code, deadline=loop.time() + delay_seconds, handle=handle)
        self._pending[code] = entry

        logger.debug("Expiry scheduled for %s in %.3fs", code, delay_seconds)
        return entry

    def cancel(self, code: str) -> bool:
        """Cancels a pending timer. False if there was none or it already fired."""
        entry = self._pending.pop(code, None)
        if entry is None:
            return False

        entry.handle.cancel()
        logger.debug("Expiry cancelled for %s", code)
        return True

    def is_pending(self, code: str) -> bool:
        return code in self._pending

    def deadline(self, code: str) -> Optional[float]:
        """Loop-clock deadline of the pending timer, if any."""
        entry = self._pending.get(code)
        return entry.deadline if entry else None

    def cancel_all(self) -> int:
        """Cancels every pending timer. Used on shutdown."""
        count = 0
        for code in list(self._pending):
            if self.cancel(code):
                count += 1
        return count

    def _fire(self, code: str, callback: ExpiryCallback) -> None:
        # Cancelled handles never run, so a missing entry means the timer was already consumed.
        if self._pending.pop(code, None) is None:
            return

        try:
            callback(code)
        # pylint: disable=broad-exception-caught
        except Exception:
            logger.exception("Expiry callback failed for room %s", code)
