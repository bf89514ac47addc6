"""Bounded, newest-first audit event log."""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass
from typing import Any, Literal

EventKind = Literal["STARTUP", "DECIDE", "CONSUME"]

DEFAULT_MAX_EVENTS = 200


@dataclass(frozen=True)
class Event:
    ts_ms: int
    kind: EventKind
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"ts_ms": self.ts_ms, "kind": self.kind, "data": self.data}


class EventLog:
    """Append-at-front log that evicts the oldest entry past capacity.

    Not thread-safe; the owning authority serializes access.
    """

    def __init__(self, capacity: int = DEFAULT_MAX_EVENTS) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._events: deque[Event] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._events)

    def record(self, kind: EventKind, data: dict[str, Any], ts_ms: int) -> Event:
        event = Event(ts_ms=ts_ms, kind=kind, data=copy.deepcopy(data))
        self._events.appendleft(event)
        while len(self._events) > self._capacity:
            self._events.pop()
        return event

    def snapshot(self) -> list[Event]:
        """Return the events newest first, with payloads copied."""
        return [
            Event(ts_ms=event.ts_ms, kind=event.kind, data=copy.deepcopy(event.data))
            for event in self._events
        ]
