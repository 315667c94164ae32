"""
payledger.state — persisted key space, canonical codec, tiered storage,
write journal and event sinks.
"""

from .events import InMemoryEventSink, LedgerEvent, NullEventSink
from .journal import Journal
from .keys import DataKey, KeyKind, Tier
from .storage import Entry, LeasePolicy, TieredStorage

__all__ = [
    "DataKey",
    "KeyKind",
    "Tier",
    "Entry",
    "LeasePolicy",
    "TieredStorage",
    "Journal",
    "LedgerEvent",
    "InMemoryEventSink",
    "NullEventSink",
]
