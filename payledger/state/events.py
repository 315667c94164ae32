"""
payledger.state.events — ledger events and sinks.

Contract code emits events into the per-invocation buffer on `Context`. The
executor publishes them to the configured sink only after the invocation
commits, so an aborted invocation never leaves events behind.

Topics are short slash-separated names: `token/transfer`, `escrow/released`,
`dispute/resolved`, ... Data is a flat dict of JSON-friendly values.

Ordering: (invocation, index) strictly increases across appended records.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class LedgerEvent:
    """
    A published event.

    Fields
    ------
    invocation : int
        1-based counter of committed invocations on the ledger.
    index : int
        0-based position of the event inside its invocation.
    sequence : int
        Ledger sequence at which the invocation ran.
    op : str
        Entry point that emitted the event.
    topic : str
    data : Mapping[str, Any]
    """

    invocation: int
    index: int
    sequence: int
    op: str
    topic: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "invocation": self.invocation,
            "index": self.index,
            "sequence": self.sequence,
            "op": self.op,
            "topic": self.topic,
            "data": dict(self.data),
        }


@runtime_checkable
class EventSink(Protocol):
    def append(self, event: LedgerEvent) -> None:
        """Store one published event."""

    def get_events(self, *, topic: Optional[str] = None, limit: Optional[int] = None) -> Iterable[LedgerEvent]:
        """Iterate stored events in publication order, optionally filtered by topic prefix."""


class InMemoryEventSink:
    """Keeps every event in RAM. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[LedgerEvent] = []

    def append(self, event: LedgerEvent) -> None:
        with self._lock:
            if self._events:
                last = self._events[-1]
                if (event.invocation, event.index) <= (last.invocation, last.index):
                    raise ValueError("events must be appended in (invocation, index) order")
            self._events.append(event)

    def get_events(self, *, topic: Optional[str] = None, limit: Optional[int] = None) -> List[LedgerEvent]:
        with self._lock:
            snapshot = list(self._events)
        out = [e for e in snapshot if topic is None or e.topic == topic or e.topic.startswith(topic + "/")]
        return out if limit is None else out[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class NullEventSink:
    """Discards everything."""

    def append(self, event: LedgerEvent) -> None:
        return None

    def get_events(self, *, topic: Optional[str] = None, limit: Optional[int] = None) -> List[LedgerEvent]:
        return []


__all__ = ["LedgerEvent", "EventSink", "InMemoryEventSink", "NullEventSink"]
