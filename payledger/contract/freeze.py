"""
Per-address freeze flags.

A frozen address cannot be debited or credited: `balance.spend_balance` and
`balance.receive_balance` call `require_not_frozen`, so every component that
moves value inherits the check. Admin clawback skips it.

Absent flag means not frozen; unfreezing removes the entry.
"""

from __future__ import annotations

from ..errors import Frozen, InvalidArgument
from ..runtime.env import Context
from ..state.keys import DataKey
from . import require_address
from .admin import check_admin


def is_frozen(ctx: Context, address: str) -> bool:
    return bool(ctx.load(DataKey.freeze(address), False))


def require_not_frozen(ctx: Context, address: str) -> None:
    if is_frozen(ctx, address):
        raise Frozen(address=address)


def freeze(ctx: Context, admin: str, target: str) -> None:
    check_admin(ctx, admin)
    require_address(target, "target")
    if target == ctx.contract:
        raise InvalidArgument("the ledger custody account cannot be frozen")
    ctx.save(DataKey.freeze(target), True)
    ctx.emit("admin/frozen", address=target)


def unfreeze(ctx: Context, admin: str, target: str) -> None:
    check_admin(ctx, admin)
    require_address(target, "target")
    ctx.remove(DataKey.freeze(target))
    ctx.emit("admin/unfrozen", address=target)
