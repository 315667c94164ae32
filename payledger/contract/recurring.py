"""
Recurring payment scheduler.

A schedule pays `amount` from payer to payee every `interval` ticks, for
`iterations` installments in total. The first installment is paid at setup;
each later one is triggered by the payer through `execute_recurring` once
the ledger sequence reaches `next_eligible`.

Only the payer can trigger an installment. Payees who want to be paid
without waiting on the payer should use an escrow with a deadline instead.

ACTIVE ──(remaining hits 0)──▶ COMPLETED
  └────cancel (payer/payee)───▶ CANCELLED

Calling before the due tick always fails with NotYetDue and changes nothing,
however often it is retried.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping

from ..errors import Inactive, InvalidAmount, InvalidParty, NotFound, NotYetDue, Unauthorized
from ..runtime.auth import require_auth
from ..runtime.env import Context
from ..state.keys import DataKey, KeyKind
from . import require_address, require_index, require_positive, require_token
from .balance import move_balance
from .history import PaymentKind, record_payment


class RecurringStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RecurringRecord:
    index: int
    payer: str
    payee: str
    token: str
    amount: int
    interval: int
    remaining: int
    next_eligible: int
    status: RecurringStatus = RecurringStatus.ACTIVE
    paid: int = 0

    def to_record(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("index")
        d["status"] = self.status.value
        return d

    @classmethod
    def from_record(cls, index: int, rec: Mapping[str, Any]) -> "RecurringRecord":
        return cls(
            index=index,
            payer=rec["payer"],
            payee=rec["payee"],
            token=rec["token"],
            amount=int(rec["amount"]),
            interval=int(rec["interval"]),
            remaining=int(rec["remaining"]),
            next_eligible=int(rec["next_eligible"]),
            status=RecurringStatus(rec["status"]),
            paid=int(rec["paid"]),
        )


def get_recurring(ctx: Context, index: int) -> RecurringRecord:
    require_index(index, "recurring")
    rec = ctx.load(DataKey.record(KeyKind.RECURRING, index))
    if rec is None:
        raise NotFound("recurring payment not found", kind="recurring", index=index)
    return RecurringRecord.from_record(index, rec)


def _save(ctx: Context, rp: RecurringRecord) -> None:
    ctx.save(DataKey.record(KeyKind.RECURRING, rp.index), rp.to_record())


def _pay(ctx: Context, rp: RecurringRecord) -> None:
    move_balance(ctx, rp.payer, rp.payee, rp.amount)
    record_payment(ctx, rp.payer, rp.payee, rp.amount, PaymentKind.RECURRING)


def _require_count(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidAmount(f"{name} must be a positive integer", field_name=name, value=value)
    return value


def setup_recurring(
    ctx: Context,
    payer: str,
    payee: str,
    amount: int,
    interval: int,
    iterations: int,
    token: str,
) -> int:
    require_auth(ctx, payer)
    require_address(payee, "payee")
    if payer == payee:
        raise InvalidParty("payer and payee must differ")
    require_token(ctx, token)
    require_positive(ctx, amount)
    _require_count(interval, "interval")
    _require_count(iterations, "iterations")

    idx = ctx.next_index(KeyKind.RECURRING)
    remaining = iterations - 1
    rp = RecurringRecord(
        index=idx,
        payer=payer,
        payee=payee,
        token=ctx.contract,
        amount=amount,
        interval=interval,
        remaining=remaining,
        next_eligible=ctx.sequence + interval,
        status=RecurringStatus.ACTIVE if remaining > 0 else RecurringStatus.COMPLETED,
        paid=1,
    )
    _pay(ctx, rp)
    _save(ctx, rp)
    ctx.emit("recurring/created", index=idx, payer=payer, payee=payee, amount=amount,
             interval=interval, iterations=iterations)
    ctx.emit("recurring/executed", index=idx, paid=1, remaining=remaining)
    return idx


def execute_recurring(ctx: Context, caller: str, index: int) -> RecurringRecord:
    require_auth(ctx, caller)
    rp = get_recurring(ctx, index)
    if caller != rp.payer:
        raise Unauthorized("only the payer can execute a recurring payment", address=caller)
    if rp.status is not RecurringStatus.ACTIVE:
        raise Inactive(index=index, status=rp.status.value)
    if ctx.sequence < rp.next_eligible:
        raise NotYetDue(due=rp.next_eligible, sequence=ctx.sequence)

    _pay(ctx, rp)
    remaining = rp.remaining - 1
    rp = replace(
        rp,
        remaining=remaining,
        next_eligible=rp.next_eligible + rp.interval,
        paid=rp.paid + 1,
        status=RecurringStatus.ACTIVE if remaining > 0 else RecurringStatus.COMPLETED,
    )
    _save(ctx, rp)
    ctx.emit("recurring/executed", index=index, paid=rp.paid, remaining=remaining)
    if rp.status is RecurringStatus.COMPLETED:
        ctx.emit("recurring/completed", index=index)
    return rp


def cancel_recurring(ctx: Context, caller: str, index: int) -> None:
    require_auth(ctx, caller)
    rp = get_recurring(ctx, index)
    if caller not in (rp.payer, rp.payee):
        raise Unauthorized("only the payer or payee can cancel", address=caller)
    if rp.status is not RecurringStatus.ACTIVE:
        raise Inactive(index=index, status=rp.status.value)
    _save(ctx, replace(rp, status=RecurringStatus.CANCELLED))
    ctx.emit("recurring/cancelled", index=index, by=caller)
