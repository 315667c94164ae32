"""
payledger.state.keys — the persisted key space.

Every storage entry is addressed by a `DataKey`: a `KeyKind` tag plus a small
tuple of parts (addresses as `str`, arena indices as `int`). The arity and
part types are fixed per kind and validated on construction, so a malformed
key can never reach storage.

Retention tiers
---------------
- config : Admin, Metadata, TotalSupply. Long lease, never archived.
- record : everything else (balances, allowances, freeze flags, payment
           records and their counters). Shorter lease; a lapsed entry may be
           archived by the host and is restored on its next touch.

Collections use a counter key (`EscrowCount`) holding the last allocated
index and an indexed record key (`Escrow(n)`). Indices start at 1 and are
never reused.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple, Type, Union

from . import codec

Part = Union[str, int]


class Tier(str, enum.Enum):
    CONFIG = "config"
    RECORD = "record"


class KeyKind(str, enum.Enum):
    # config tier
    ADMIN = "Admin"
    METADATA = "Metadata"
    TOTAL_SUPPLY = "TotalSupply"
    # token state
    BALANCE = "Balance"
    ALLOWANCE = "Allowance"
    FREEZE = "Freeze"
    # arenas
    ESCROW_COUNT = "EscrowCount"
    ESCROW = "Escrow"
    MULTI_ESCROW_COUNT = "MultiEscrowCount"
    MULTI_ESCROW = "MultiEscrow"
    RECURRING_COUNT = "RecurringCount"
    RECURRING = "Recurring"
    SPLIT_COUNT = "SplitCount"
    SPLIT = "Split"
    DISPUTE_COUNT = "DisputeCount"
    DISPUTE = "Dispute"
    RECORD_COUNT = "RecordCount"
    PAYMENT_RECORD = "PaymentRecord"
    USER_STATS = "UserStats"


_CONFIG_KINDS = frozenset({KeyKind.ADMIN, KeyKind.METADATA, KeyKind.TOTAL_SUPPLY})

_SHAPES: Dict[KeyKind, Tuple[Type, ...]] = {
    KeyKind.ADMIN: (),
    KeyKind.METADATA: (),
    KeyKind.TOTAL_SUPPLY: (),
    KeyKind.BALANCE: (str,),
    KeyKind.ALLOWANCE: (str, str),
    KeyKind.FREEZE: (str,),
    KeyKind.ESCROW_COUNT: (),
    KeyKind.ESCROW: (int,),
    KeyKind.MULTI_ESCROW_COUNT: (),
    KeyKind.MULTI_ESCROW: (int,),
    KeyKind.RECURRING_COUNT: (),
    KeyKind.RECURRING: (int,),
    KeyKind.SPLIT_COUNT: (),
    KeyKind.SPLIT: (int,),
    KeyKind.DISPUTE_COUNT: (),
    KeyKind.DISPUTE: (int,),
    KeyKind.RECORD_COUNT: (),
    KeyKind.PAYMENT_RECORD: (int,),
    KeyKind.USER_STATS: (str,),
}

# record kind -> its counter kind
ARENAS: Dict[KeyKind, KeyKind] = {
    KeyKind.ESCROW: KeyKind.ESCROW_COUNT,
    KeyKind.MULTI_ESCROW: KeyKind.MULTI_ESCROW_COUNT,
    KeyKind.RECURRING: KeyKind.RECURRING_COUNT,
    KeyKind.SPLIT: KeyKind.SPLIT_COUNT,
    KeyKind.DISPUTE: KeyKind.DISPUTE_COUNT,
    KeyKind.PAYMENT_RECORD: KeyKind.RECORD_COUNT,
}


@dataclass(frozen=True)
class DataKey:
    kind: KeyKind
    parts: Tuple[Part, ...] = ()

    def __post_init__(self) -> None:
        kind = KeyKind(self.kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "parts", tuple(self.parts))
        shape = _SHAPES[kind]
        if len(self.parts) != len(shape):
            raise ValueError(f"{kind.value} key takes {len(shape)} part(s), got {len(self.parts)}")
        for p, t in zip(self.parts, shape):
            # bool is an int subclass; never a valid index
            if not isinstance(p, t) or isinstance(p, bool):
                raise TypeError(f"{kind.value} key part must be {t.__name__}, got {type(p).__name__}")

    @property
    def tier(self) -> Tier:
        return Tier.CONFIG if self.kind in _CONFIG_KINDS else Tier.RECORD

    def encode(self) -> bytes:
        return codec.dumps([self.kind.value, *self.parts])

    @classmethod
    def decode(cls, raw: bytes) -> "DataKey":
        kind, *parts = codec.loads(raw)
        return cls(KeyKind(kind), tuple(parts))

    def __str__(self) -> str:
        if not self.parts:
            return self.kind.value
        return f"{self.kind.value}({', '.join(str(p) for p in self.parts)})"

    # --- constructors -----------------------------------------------------

    @classmethod
    def admin(cls) -> "DataKey":
        return cls(KeyKind.ADMIN)

    @classmethod
    def metadata(cls) -> "DataKey":
        return cls(KeyKind.METADATA)

    @classmethod
    def total_supply(cls) -> "DataKey":
        return cls(KeyKind.TOTAL_SUPPLY)

    @classmethod
    def balance(cls, address: str) -> "DataKey":
        return cls(KeyKind.BALANCE, (address,))

    @classmethod
    def allowance(cls, owner: str, spender: str) -> "DataKey":
        return cls(KeyKind.ALLOWANCE, (owner, spender))

    @classmethod
    def freeze(cls, address: str) -> "DataKey":
        return cls(KeyKind.FREEZE, (address,))

    @classmethod
    def user_stats(cls, address: str) -> "DataKey":
        return cls(KeyKind.USER_STATS, (address,))

    @classmethod
    def counter(cls, record_kind: KeyKind) -> "DataKey":
        """Counter key of the arena that stores `record_kind` records."""
        return cls(ARENAS[KeyKind(record_kind)])

    @classmethod
    def record(cls, record_kind: KeyKind, index: int) -> "DataKey":
        kind = KeyKind(record_kind)
        if kind not in ARENAS:
            raise ValueError(f"{kind.value} is not an indexed record kind")
        return cls(kind, (index,))


__all__ = ["Tier", "KeyKind", "DataKey", "ARENAS"]
