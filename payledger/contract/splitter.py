"""
Payment splitter.

`create_split` moves the full amount into custody and records an ordered
recipient list with basis-point shares. `distribute` pays everyone in record
order (floor shares, remainder to the first recipient) and marks the split
DISTRIBUTED. Distribution is all-or-nothing: if any credit fails (a frozen
recipient, say) the whole call aborts and the split stays PENDING.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping

from ..errors import AlreadyDistributed, Disputed, InvalidParty, NotFound, Unauthorized
from ..runtime.auth import require_auth
from ..runtime.env import Context
from ..state.keys import DataKey, KeyKind
from . import (Shares, apportion, normalize_shares, require_index, require_positive, require_token, shares_from_record,
               shares_to_record)
from .balance import move_balance
from .history import PaymentKind, record_payment


class SplitStatus(str, enum.Enum):
    PENDING = "pending"
    DISTRIBUTED = "distributed"


@dataclass(frozen=True)
class SplitRecord:
    index: int
    payer: str
    token: str
    amount: int
    shares: Shares
    status: SplitStatus = SplitStatus.PENDING
    disputed: bool = False

    @property
    def recipients(self):
        return [addr for addr, _ in self.shares]

    def to_record(self) -> Dict[str, Any]:
        return {
            "payer": self.payer,
            "token": self.token,
            "amount": self.amount,
            "shares": shares_to_record(self.shares),
            "status": self.status.value,
            "disputed": self.disputed,
        }

    @classmethod
    def from_record(cls, index: int, rec: Mapping[str, Any]) -> "SplitRecord":
        return cls(
            index=index,
            payer=rec["payer"],
            token=rec["token"],
            amount=int(rec["amount"]),
            shares=shares_from_record(rec["shares"]),
            status=SplitStatus(rec["status"]),
            disputed=bool(rec["disputed"]),
        )


def get_split(ctx: Context, index: int) -> SplitRecord:
    require_index(index, "split")
    rec = ctx.load(DataKey.record(KeyKind.SPLIT, index))
    if rec is None:
        raise NotFound("split not found", kind="split", index=index)
    return SplitRecord.from_record(index, rec)


def save_split(ctx: Context, sp: SplitRecord) -> None:
    ctx.save(DataKey.record(KeyKind.SPLIT, sp.index), sp.to_record())


def create_split(ctx: Context, payer: str, recipients: Any, total_amount: int, token: str) -> int:
    require_auth(ctx, payer)
    shares = normalize_shares(ctx, recipients)
    if any(addr == payer for addr, _ in shares):
        raise InvalidParty("payer cannot be a recipient")
    require_token(ctx, token)
    require_positive(ctx, total_amount, "total_amount")

    move_balance(ctx, payer, ctx.contract, total_amount)
    record_payment(ctx, payer, ctx.contract, total_amount, PaymentKind.SPLIT_LOCK)

    idx = ctx.next_index(KeyKind.SPLIT)
    save_split(ctx, SplitRecord(index=idx, payer=payer, token=ctx.contract, amount=total_amount, shares=shares))
    ctx.emit("split/created", index=idx, payer=payer, amount=total_amount, recipients=shares_to_record(shares))
    return idx


def distribute(ctx: Context, caller: str, index: int) -> None:
    require_auth(ctx, caller)
    sp = get_split(ctx, index)
    if caller != sp.payer:
        raise Unauthorized("only the payer can distribute", address=caller)
    if sp.status is SplitStatus.DISTRIBUTED:
        raise AlreadyDistributed(index=index)
    if sp.disputed:
        raise Disputed(kind="split", index=index)

    payouts = apportion(sp.amount, sp.shares, ctx.config.basis_points_total)
    for addr, share in payouts:
        if share == 0:
            continue
        move_balance(ctx, ctx.contract, addr, share)
        record_payment(ctx, ctx.contract, addr, share, PaymentKind.SPLIT_PAYOUT)
    save_split(ctx, replace(sp, status=SplitStatus.DISTRIBUTED))
    ctx.emit("split/distributed", index=index, payouts=shares_to_record(payouts))


def settle_split(ctx: Context, sp: SplitRecord, beneficiary: str) -> SplitRecord:
    """Pay the whole held amount to one party and close the split (dispute outcome)."""
    if beneficiary != sp.payer and beneficiary not in sp.recipients:
        raise InvalidParty("split can only settle to its payer or a recipient")
    move_balance(ctx, ctx.contract, beneficiary, sp.amount)
    record_payment(ctx, ctx.contract, beneficiary, sp.amount, PaymentKind.DISPUTE_PAYOUT)
    settled = replace(sp, status=SplitStatus.DISTRIBUTED, disputed=False)
    save_split(ctx, settled)
    ctx.emit("split/settled", index=sp.index, to=beneficiary, amount=sp.amount)
    return settled
