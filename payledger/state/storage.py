"""
payledger.state.storage — tiered key/value store with leases.

`TieredStorage` is the committed ledger state: a mapping of encoded
`DataKey` bytes to `Entry(value, tier, live_until)`. It is plain data with no
rule enforcement. Contract code never touches it directly; all access goes
through `payledger.state.journal.Journal`, which stages writes and lease
renewals and applies them here on commit.

Leases
------
Each entry stays live until `live_until` (a ledger sequence number). The
`LeasePolicy` decides renewals:

- a new entry gets `now + bump`
- an existing entry touched at `now` is renewed to `now + bump` once
  `live_until - now` drops below the tier threshold; otherwise it is kept

Archival
--------
`sweep(now)` moves lapsed record-tier entries into an archive. Nothing is
ever deleted by a sweep, and config-tier entries are never archived at all.
An archived entry is still returned by `get_entry`; the next journal touch
renews its lease and the commit moves it back into the live set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..config import LedgerConfig
from .keys import DataKey, Tier


@dataclass(frozen=True)
class Entry:
    value: bytes
    tier: Tier
    live_until: int


@dataclass(frozen=True)
class LeasePolicy:
    config: LedgerConfig

    def grant(self, tier: Tier, now: int) -> int:
        _, bump = self.config.lease_for(Tier(tier).value)
        return now + bump

    def renew(self, entry: Entry, now: int) -> Entry:
        """Return `entry` with a fresh lease if it is under threshold, else `entry` itself."""
        threshold, bump = self.config.lease_for(entry.tier.value)
        if entry.live_until - now < threshold:
            return Entry(value=entry.value, tier=entry.tier, live_until=now + bump)
        return entry


@dataclass
class TieredStorage:
    """
    Committed entries keyed by encoded DataKey bytes.

    Methods are bytes-level on purpose: the journal owns DataKey handling and
    passes raw keys through.
    """

    _entries: Dict[bytes, Entry] = field(default_factory=dict)
    _archive: Dict[bytes, Entry] = field(default_factory=dict)

    def get_entry(self, raw_key: bytes) -> Optional[Entry]:
        entry = self._entries.get(raw_key)
        if entry is None:
            entry = self._archive.get(raw_key)
        return entry

    def put_entry(self, raw_key: bytes, entry: Entry) -> None:
        self._archive.pop(raw_key, None)
        self._entries[raw_key] = entry

    def drop(self, raw_key: bytes) -> None:
        self._entries.pop(raw_key, None)
        self._archive.pop(raw_key, None)

    # --- inspection -------------------------------------------------------

    def lease(self, key: DataKey) -> Optional[int]:
        e = self.get_entry(key.encode())
        return None if e is None else e.live_until

    def items(self) -> Iterator[Tuple[DataKey, Entry]]:
        """Iterate live (DataKey, Entry) pairs in encoded-key order."""
        for raw in sorted(self._entries):
            yield DataKey.decode(raw), self._entries[raw]

    def total_keys(self) -> int:
        return len(self._entries)

    def in_archive(self, raw_key: bytes) -> bool:
        return raw_key in self._archive

    def is_archived(self, key: DataKey) -> bool:
        return self.in_archive(key.encode())

    def archived(self) -> List[DataKey]:
        return [DataKey.decode(raw) for raw in sorted(self._archive)]

    def total_archived(self) -> int:
        return len(self._archive)

    # --- host maintenance -------------------------------------------------

    def expired(self, now: int) -> List[DataKey]:
        """Live record-tier keys whose lease lapsed before `now`."""
        return [
            DataKey.decode(raw)
            for raw, e in sorted(self._entries.items())
            if e.tier is Tier.RECORD and e.live_until < now
        ]

    def sweep(self, now: int) -> int:
        """Archive every lapsed record-tier entry. Returns the number archived."""
        lapsed = [raw for raw, e in self._entries.items() if e.tier is Tier.RECORD and e.live_until < now]
        for raw in lapsed:
            self._archive[raw] = self._entries.pop(raw)
        return len(lapsed)


__all__ = ["Entry", "LeasePolicy", "TieredStorage"]
