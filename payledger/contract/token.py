"""
Token ledger
============

Fungible token accounting on top of `balance`, `allowance`, `freeze` and
`admin`.

Public interface
----------------
# one-time setup
initialize(admin, name, symbol, decimals)

# admin-gated supply control
mint(admin, to, amount)
clawback(admin, from_, amount)          burns; ignores freeze flags

# holder operations (authorized by the first address argument)
transfer(from_, to, amount)
burn(from_, amount)
approve(owner, spender, amount, expiration)
transfer_from(spender, owner, to, amount)
burn_from(spender, owner, amount)

Events
------
token/mint {to, amount} · token/burn {from, amount} · token/clawback {from, amount}
token/transfer {from, to, amount} · token/approve {owner, spender, amount, expiration}

Conservation: total_supply == sum of all balances (custody included) after
every operation. Mint is the only source; burn, burn_from and clawback are
the only sinks.
"""

from __future__ import annotations

from ..errors import AlreadyInitialized
from ..runtime.auth import require_auth
from ..runtime.env import Context
from ..state.keys import DataKey
from . import require_address, require_amount
from .admin import check_admin, has_admin, write_admin
from .allowance import spend_allowance, write_allowance
from .balance import decrease_supply, increase_supply, move_balance, receive_balance, spend_balance
from .history import PaymentKind, record_payment
from .metadata import TokenMetadata, write_metadata

# ------------------------------------------------------------------------------
# Setup
# ------------------------------------------------------------------------------


def initialize(ctx: Context, admin: str, name: str, symbol: str, decimals: int) -> TokenMetadata:
    require_address(admin, "admin")
    if has_admin(ctx):
        raise AlreadyInitialized()
    write_admin(ctx, admin)
    meta = write_metadata(ctx, name, symbol, decimals)
    ctx.save(DataKey.total_supply(), 0)
    ctx.emit("token/initialized", admin=admin, name=meta.name, symbol=meta.symbol, decimals=meta.decimals)
    return meta


# ------------------------------------------------------------------------------
# Supply control
# ------------------------------------------------------------------------------


def mint(ctx: Context, admin: str, to: str, amount: int) -> None:
    check_admin(ctx, admin)
    require_address(to, "to")
    require_amount(ctx, amount)
    receive_balance(ctx, to, amount)
    increase_supply(ctx, amount)
    record_payment(ctx, ctx.contract, to, amount, PaymentKind.MINT)
    ctx.emit("token/mint", to=to, amount=amount)


def burn(ctx: Context, from_: str, amount: int) -> None:
    require_auth(ctx, from_)
    require_amount(ctx, amount)
    spend_balance(ctx, from_, amount)
    decrease_supply(ctx, amount)
    record_payment(ctx, from_, ctx.contract, amount, PaymentKind.BURN)
    ctx.emit("token/burn", **{"from": from_, "amount": amount})


def burn_from(ctx: Context, spender: str, owner: str, amount: int) -> None:
    require_auth(ctx, spender)
    require_address(owner, "owner")
    require_amount(ctx, amount)
    spend_allowance(ctx, owner, spender, amount)
    spend_balance(ctx, owner, amount)
    decrease_supply(ctx, amount)
    record_payment(ctx, owner, ctx.contract, amount, PaymentKind.BURN)
    ctx.emit("token/burn", **{"from": owner, "amount": amount, "spender": spender})


def clawback(ctx: Context, admin: str, from_: str, amount: int) -> None:
    check_admin(ctx, admin)
    require_address(from_, "from")
    require_amount(ctx, amount)
    spend_balance(ctx, from_, amount, check_freeze=False)
    decrease_supply(ctx, amount)
    record_payment(ctx, from_, ctx.contract, amount, PaymentKind.CLAWBACK)
    ctx.emit("token/clawback", **{"from": from_, "amount": amount})


# ------------------------------------------------------------------------------
# Transfers & allowances
# ------------------------------------------------------------------------------


def transfer(ctx: Context, from_: str, to: str, amount: int) -> None:
    require_auth(ctx, from_)
    require_address(to, "to")
    require_amount(ctx, amount)
    move_balance(ctx, from_, to, amount)
    record_payment(ctx, from_, to, amount, PaymentKind.TRANSFER)
    ctx.emit("token/transfer", **{"from": from_, "to": to, "amount": amount})


def approve(ctx: Context, owner: str, spender: str, amount: int, expiration: int) -> None:
    require_auth(ctx, owner)
    require_address(spender, "spender")
    write_allowance(ctx, owner, spender, amount, expiration)
    ctx.emit("token/approve", owner=owner, spender=spender, amount=amount, expiration=expiration)


def transfer_from(ctx: Context, spender: str, owner: str, to: str, amount: int) -> None:
    require_auth(ctx, spender)
    require_address(owner, "owner")
    require_address(to, "to")
    require_amount(ctx, amount)
    spend_allowance(ctx, owner, spender, amount)
    move_balance(ctx, owner, to, amount)
    record_payment(ctx, owner, to, amount, PaymentKind.TRANSFER_FROM)
    ctx.emit("token/transfer", **{"from": owner, "to": to, "amount": amount, "spender": spender})
