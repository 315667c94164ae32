"""
payledger.state.journal — staged writes, lease renewals, checkpoints.

The journal layers a stack of overlays over `TieredStorage`. Reads consult
overlays from top to bottom and then the base; writes, removals and lease
renewals always land in the top overlay. An entry the host archived is
restored by the first touch inside an overlay: it gets a fresh lease and the
commit moves it back into the live set. `commit()` merges the top overlay
into its parent, or applies it to the base when it is the last one.
`revert()` discards it.

    j = Journal(storage, LeasePolicy(cfg))
    j.begin()
    j.set(DataKey.balance(addr), codec.dumps(10), now=seq)
    j.commit()                  # now visible in `storage`

With no open overlay the journal is read-only: writes raise RuntimeError.
Reads with no open overlay never renew leases (there is nowhere to stage
the renewal), which is what inspection helpers rely on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import LedgerConfig
from ..errors import InvalidArgument
from .keys import DataKey
from .storage import Entry, LeasePolicy, TieredStorage


@dataclass
class _Overlay:
    """One journal layer. A `None` entry marks a removal."""

    entries: Dict[bytes, Optional[Entry]] = field(default_factory=dict)


class Journal:
    """
    Copy-on-write journal with nested checkpoints over a TieredStorage.

    API highlights
    --------------
    - begin() / commit() / revert() / depth()
    - commit_to(marker) / revert_to(marker)
    - get(), has(), set(), remove() — keyed by DataKey, all take `now`
    - lease() — current live_until without renewing
    """

    def __init__(self, storage: TieredStorage, policy: LeasePolicy) -> None:
        self._base = storage
        self._policy = policy
        self._layers: List[_Overlay] = []

    @property
    def config(self) -> LedgerConfig:
        return self._policy.config

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        return len(self._layers)

    def begin(self) -> int:
        """Open a new overlay. Returns the depth marker to pass to commit_to/revert_to."""
        self._layers.append(_Overlay())
        return len(self._layers) - 1

    def commit(self) -> None:
        if not self._layers:
            raise RuntimeError("commit without begin")
        top = self._layers.pop()
        if self._layers:
            self._layers[-1].entries.update(top.entries)
            return
        for raw, entry in top.entries.items():
            if entry is None:
                self._base.drop(raw)
            else:
                self._base.put_entry(raw, entry)

    def revert(self) -> None:
        if not self._layers:
            raise RuntimeError("revert without begin")
        self._layers.pop()

    def commit_to(self, marker: int) -> None:
        """Commit overlays until depth equals `marker` (0 applies everything to the base)."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.revert()

    # ------------------------------------------------------------------ #
    # Entry access
    # ------------------------------------------------------------------ #

    def _lookup(self, raw: bytes) -> Optional[Entry]:
        for layer in reversed(self._layers):
            if raw in layer.entries:
                return layer.entries[raw]
        return self._base.get_entry(raw)

    def _archived(self, raw: bytes) -> bool:
        return not any(raw in layer.entries for layer in self._layers) and self._base.in_archive(raw)

    def _renew(self, raw: bytes, entry: Entry, now: int) -> Entry:
        if self._archived(raw):
            return Entry(value=entry.value, tier=entry.tier, live_until=self._policy.grant(entry.tier, now))
        return self._policy.renew(entry, now)

    def _touch(self, raw: bytes, now: int) -> Optional[Entry]:
        entry = self._lookup(raw)
        if entry is None or not self._layers:
            return entry
        renewed = self._renew(raw, entry, now)
        if renewed is not entry:
            self._layers[-1].entries[raw] = renewed
        return renewed

    def _require_open(self) -> _Overlay:
        if not self._layers:
            raise RuntimeError("journal write outside of a checkpoint")
        return self._layers[-1]

    def get(self, key: DataKey, *, now: int) -> Optional[bytes]:
        entry = self._touch(key.encode(), now)
        return None if entry is None else entry.value

    def has(self, key: DataKey, *, now: int) -> bool:
        return self._touch(key.encode(), now) is not None

    def set(self, key: DataKey, value: bytes, *, now: int) -> None:
        raw = key.encode()
        cfg = self._policy.config
        if len(raw) > cfg.max_key_bytes:
            raise InvalidArgument("storage key too large", data={"key": str(key), "size": len(raw)})
        if len(value) > cfg.max_value_bytes:
            raise InvalidArgument("storage value too large", data={"key": str(key), "size": len(value)})
        top = self._require_open()
        prev = self._lookup(raw)
        if prev is None:
            live_until = self._policy.grant(key.tier, now)
        else:
            live_until = self._renew(raw, prev, now).live_until
        top.entries[raw] = Entry(value=bytes(value), tier=key.tier, live_until=live_until)

    def remove(self, key: DataKey) -> None:
        self._require_open().entries[key.encode()] = None

    def lease(self, key: DataKey) -> Optional[int]:
        entry = self._lookup(key.encode())
        return None if entry is None else entry.live_until


__all__ = ["Journal"]
