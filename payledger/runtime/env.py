"""
payledger.runtime.env — ledger clock and the per-invocation context.

`LedgerClock` is the host's sequence counter. It only moves forward.

`Context` is what every contract function receives. It is built fresh by the
executor for each invocation and carries everything contract code may touch:
the journal, the sequence snapshot, the ledger's own address (custody), the
authorizer, the config and the pending event buffer. Nothing in the contract
layer reads process-wide state.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..config import LedgerConfig
from ..state import codec
from ..state.journal import Journal
from ..state.keys import DataKey, KeyKind
from .auth import Authorizer


class LedgerClock:
    """Monotonic ledger sequence."""

    def __init__(self, sequence: int = 0) -> None:
        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError("sequence must be a non-negative int")
        self._seq = sequence
        self._lock = threading.Lock()

    @property
    def sequence(self) -> int:
        return self._seq

    def advance(self, ticks: int = 1) -> int:
        if not isinstance(ticks, int) or ticks < 0:
            raise ValueError("ticks must be a non-negative int")
        with self._lock:
            self._seq += ticks
            return self._seq

    def set(self, sequence: int) -> int:
        with self._lock:
            if not isinstance(sequence, int) or sequence < self._seq:
                raise ValueError(f"sequence cannot move backwards ({self._seq} -> {sequence})")
            self._seq = sequence
            return self._seq


@dataclass
class Context:
    journal: Journal
    sequence: int
    contract: str
    auth: Authorizer
    config: LedgerConfig
    op: str = ""
    events: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)

    # --- storage ------------------------------------------------------------

    def load(self, key: DataKey, default: Any = None) -> Any:
        raw = self.journal.get(key, now=self.sequence)
        return default if raw is None else codec.loads(raw)

    def save(self, key: DataKey, value: Any) -> None:
        self.journal.set(key, codec.dumps(value), now=self.sequence)

    def has(self, key: DataKey) -> bool:
        return self.journal.has(key, now=self.sequence)

    def remove(self, key: DataKey) -> None:
        self.journal.remove(key)

    def next_index(self, record_kind: KeyKind) -> int:
        """Allocate the next arena index for `record_kind` (1-based, never reused)."""
        ck = DataKey.counter(record_kind)
        idx = int(self.load(ck, 0)) + 1
        self.save(ck, idx)
        return idx

    def count(self, record_kind: KeyKind) -> int:
        return int(self.load(DataKey.counter(record_kind), 0))

    # --- events -------------------------------------------------------------

    def emit(self, topic: str, **data: Any) -> None:
        self.events.append((topic, data))


__all__ = ["LedgerClock", "Context"]
