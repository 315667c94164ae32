"""
Balances and total supply.

`spend_balance` / `receive_balance` are the only places balances change.
Both check the freeze flag of the touched address (unless the caller is the
admin clawback path) and keep every balance within [0, max_amount].

The ledger's own address (`ctx.contract`) is an ordinary balance holder and
serves as custody for escrows and pending splits.
"""

from __future__ import annotations

from ..errors import InsufficientBalance, Overflow
from ..runtime.env import Context
from ..state.keys import DataKey
from . import checked_add, require_amount
from .freeze import require_not_frozen


def read_balance(ctx: Context, address: str) -> int:
    return int(ctx.load(DataKey.balance(address), 0))


def _write_balance(ctx: Context, address: str, amount: int) -> None:
    ctx.save(DataKey.balance(address), amount)


def receive_balance(ctx: Context, address: str, amount: int) -> int:
    require_amount(ctx, amount)
    require_not_frozen(ctx, address)
    new = checked_add(ctx, read_balance(ctx, address), amount)
    _write_balance(ctx, address, new)
    return new


def spend_balance(ctx: Context, address: str, amount: int, *, check_freeze: bool = True) -> int:
    require_amount(ctx, amount)
    if check_freeze:
        require_not_frozen(ctx, address)
    bal = read_balance(ctx, address)
    if bal < amount:
        raise InsufficientBalance(address=address, balance=bal, needed=amount)
    _write_balance(ctx, address, bal - amount)
    return bal - amount


def move_balance(ctx: Context, sender: str, recipient: str, amount: int) -> None:
    spend_balance(ctx, sender, amount)
    receive_balance(ctx, recipient, amount)


# --- total supply ---------------------------------------------------------


def read_total_supply(ctx: Context) -> int:
    return int(ctx.load(DataKey.total_supply(), 0))


def increase_supply(ctx: Context, amount: int) -> int:
    total = checked_add(ctx, read_total_supply(ctx), amount)
    ctx.save(DataKey.total_supply(), total)
    return total


def decrease_supply(ctx: Context, amount: int) -> int:
    total = read_total_supply(ctx) - amount
    if total < 0:
        # balances are bounded by supply, so this means corrupted state
        raise Overflow("total supply underflow", data={"amount": amount})
    ctx.save(DataKey.total_supply(), total)
    return total
