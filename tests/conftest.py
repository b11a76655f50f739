"""
Shared fixtures: an in-memory transport and a fully wired dispatcher.
"""

# pylint: disable=redefined-outer-name

from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from src.core.code_generator import CodeGenerator
from src.services.dispatcher import RelayDispatcher
from src.services.registry import RoomRegistry
from src.services.scheduler import ExpiryScheduler
from src.services.websocket import RelayTransport


class RecordingTransport(RelayTransport):
    """Transport fake recording every delivered event per connection."""

    def __init__(self) -> None:
        self.groups: Dict[str, Set[str]] = {}
        self.delivered: Dict[str, List[Tuple[str, Any]]] = {}

    def join_group(self, connection_id: str, code: str) -> None:
        self.groups.setdefault(code, set()).add(connection_id)

    def leave_group(self, connection_id: str, code: str) -> None:
        self.groups.get(code, set()).discard(connection_id)

    def close_group(self, code: str) -> None:
        self.groups.pop(code, None)

    def emit(self, connection_id: str, event: str, data: Any) -> None:
        self.delivered.setdefault(connection_id, []).append((event, data))

    def emit_to_group(self, code: str, event: str, data: Any, exclude: Optional[str] = None) -> None:
        for connection_id in sorted(self.groups.get(code, set())):
            if connection_id != exclude:
                self.emit(connection_id, event, data)

    def events_for(self, connection_id: str, event: Optional[str] = None) -> List[Any]:
        """Payloads delivered to a connection, optionally filtered by event name."""
        return [data for name, data in self.delivered.get(connection_id, []) if event in (None, name)]

    def names_for(self, connection_id: str) -> List[str]:
        return [name for name, _ in self.delivered.get(connection_id, [])]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def scheduler() -> ExpiryScheduler:
    return ExpiryScheduler()


@pytest.fixture
def registry(scheduler) -> RoomRegistry:
    generator = CodeGenerator(length=6, alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789", max_attempts=10)
    return RoomRegistry(generator, scheduler, max_members=10)


@pytest.fixture
def dispatcher(registry, transport) -> RelayDispatcher:
    return RelayDispatcher(registry, transport, default_ttl_ms=60_000)
