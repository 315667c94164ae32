"""
Delegated allowances.

An allowance is (amount, expiration). It is usable while
`sequence <= expiration`; afterwards reads report zero. Writing a zero amount
removes the entry, and a non-zero amount with an expiration already in the
past is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InsufficientAllowance, InvalidAmount, InvalidExpiration
from ..runtime.env import Context
from ..state.keys import DataKey
from . import require_amount


@dataclass(frozen=True)
class AllowanceValue:
    amount: int
    expiration: int


def read_allowance(ctx: Context, owner: str, spender: str) -> AllowanceValue:
    rec = ctx.load(DataKey.allowance(owner, spender))
    if rec is None:
        return AllowanceValue(amount=0, expiration=0)
    value = AllowanceValue(amount=int(rec["amount"]), expiration=int(rec["expiration"]))
    if value.expiration < ctx.sequence:
        return AllowanceValue(amount=0, expiration=value.expiration)
    return value


def write_allowance(ctx: Context, owner: str, spender: str, amount: int, expiration: int) -> None:
    require_amount(ctx, amount)
    if not isinstance(expiration, int) or isinstance(expiration, bool) or expiration < 0:
        raise InvalidAmount("expiration must be a non-negative integer", field_name="expiration", value=expiration)
    key = DataKey.allowance(owner, spender)
    if amount == 0:
        ctx.remove(key)
        return
    if expiration < ctx.sequence:
        raise InvalidExpiration(expiration=expiration, sequence=ctx.sequence)
    ctx.save(key, {"amount": amount, "expiration": expiration})


def spend_allowance(ctx: Context, owner: str, spender: str, amount: int) -> None:
    require_amount(ctx, amount)
    current = read_allowance(ctx, owner, spender)
    if current.amount < amount:
        raise InsufficientAllowance(owner=owner, spender=spender, available=current.amount, needed=amount)
    if amount > 0:
        write_allowance(ctx, owner, spender, current.amount - amount, current.expiration)
