"""
Payment history.

Every movement of value appends an immutable `PaymentRecord` and bumps the
`UserStats` of both parties. Mints and burns use the ledger's own address as
the counterparty.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any, Dict

from ..errors import NotFound
from ..runtime.env import Context
from ..state.keys import DataKey, KeyKind
from . import require_index


class PaymentKind(str, enum.Enum):
    TRANSFER = "transfer"
    TRANSFER_FROM = "transfer_from"
    MINT = "mint"
    BURN = "burn"
    CLAWBACK = "clawback"
    ESCROW_LOCK = "escrow_lock"
    ESCROW_RELEASE = "escrow_release"
    ESCROW_REFUND = "escrow_refund"
    RECURRING = "recurring"
    SPLIT_LOCK = "split_lock"
    SPLIT_PAYOUT = "split_payout"
    DISPUTE_PAYOUT = "dispute_payout"


@dataclass(frozen=True)
class PaymentRecord:
    index: int
    sender: str
    recipient: str
    amount: int
    sequence: int
    token: str
    kind: PaymentKind

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


@dataclass(frozen=True)
class UserStats:
    sent_count: int = 0
    received_count: int = 0
    total_sent: int = 0
    total_received: int = 0


def record_payment(ctx: Context, sender: str, recipient: str, amount: int, kind: PaymentKind) -> int:
    idx = ctx.next_index(KeyKind.PAYMENT_RECORD)
    ctx.save(
        DataKey.record(KeyKind.PAYMENT_RECORD, idx),
        {
            "sender": sender,
            "recipient": recipient,
            "amount": amount,
            "sequence": ctx.sequence,
            "token": ctx.contract,
            "kind": PaymentKind(kind).value,
        },
    )
    s = user_stats(ctx, sender)
    _save_stats(ctx, sender, UserStats(s.sent_count + 1, s.received_count, s.total_sent + amount, s.total_received))
    r = user_stats(ctx, recipient)
    _save_stats(ctx, recipient, UserStats(r.sent_count, r.received_count + 1, r.total_sent, r.total_received + amount))
    return idx


def _save_stats(ctx: Context, address: str, stats: UserStats) -> None:
    ctx.save(DataKey.user_stats(address), asdict(stats))


def payment_count(ctx: Context) -> int:
    return ctx.count(KeyKind.PAYMENT_RECORD)


def payment_record(ctx: Context, index: int) -> PaymentRecord:
    require_index(index, "payment record")
    rec = ctx.load(DataKey.record(KeyKind.PAYMENT_RECORD, index))
    if rec is None:
        raise NotFound("payment record not found", kind="payment_record", index=index)
    return PaymentRecord(
        index=index,
        sender=rec["sender"],
        recipient=rec["recipient"],
        amount=int(rec["amount"]),
        sequence=int(rec["sequence"]),
        token=rec["token"],
        kind=PaymentKind(rec["kind"]),
    )


def user_stats(ctx: Context, address: str) -> UserStats:
    rec = ctx.load(DataKey.user_stats(address))
    if rec is None:
        return UserStats()
    return UserStats(**{k: int(v) for k, v in rec.items()})
