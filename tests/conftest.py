"""Shared fixtures: a router that records what each connection would receive."""

from __future__ import annotations

from collections import defaultdict

import pytest

from watchparty.events import Event
from watchparty.session import WatchSession


class RecordingRouter:
    """In-memory stand-in for ConnectionManager keyed by connection id."""

    def __init__(self) -> None:
        self.connected: list[str] = []
        self.inbox: dict[str, list[Event]] = defaultdict(list)

    def connect(self, *connection_ids: str) -> None:
        self.connected.extend(connection_ids)

    def to_all(self, event: Event) -> None:
        for cid in self.connected:
            self.inbox[cid].append(event)

    def to_all_except(self, connection_id: str, event: Event) -> None:
        for cid in self.connected:
            if cid != connection_id:
                self.inbox[cid].append(event)

    def to_one(self, connection_id: str, event: Event) -> None:
        if connection_id in self.connected:
            self.inbox[connection_id].append(event)

    def types(self, connection_id: str) -> list[str]:
        return [e.type for e in self.inbox[connection_id]]

    def of_type(self, connection_id: str, event_type: str) -> list[dict]:
        return [e.payload.to_wire() for e in self.inbox[connection_id] if e.type == event_type]

    def clear(self) -> None:
        self.inbox.clear()


class FakeClock:
    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def router() -> RecordingRouter:
    return RecordingRouter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session(router: RecordingRouter, clock: FakeClock) -> WatchSession:
    return WatchSession(router, clock=clock)
