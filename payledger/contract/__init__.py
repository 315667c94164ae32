"""
payledger.contract — ledger rules.

Every function in this package takes the per-invocation `Context` as its
first argument and either completes or raises a `LedgerError`. Rollback is
the executor's job; nothing here catches ledger errors.

Submodules
----------
admin      admin singleton and its guard
freeze     per-address freeze flags
metadata   token name / symbol / decimals
balance    balances and total supply (freeze checks live here)
allowance  delegated spending
history    payment records and per-user stats
token      token entry points
escrow     single and multi-recipient escrow
recurring  recurring payment schedules
splitter   one-shot proportional splits
dispute    disputes over escrows and splits

This module holds the argument validators and share arithmetic shared by
those submodules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Sequence, Tuple, Union

from ..errors import InvalidAmount, InvalidArgument, InvalidShares, InvalidToken, Overflow

if TYPE_CHECKING:
    from ..runtime.env import Context

MAX_ADDRESS_LEN = 128

Shares = List[Tuple[str, int]]


# ------------------------------------------------------------------------------
# Argument validators
# ------------------------------------------------------------------------------


def require_address(addr: Any, name: str = "address") -> str:
    if not isinstance(addr, str) or not addr or len(addr) > MAX_ADDRESS_LEN or not addr.isprintable():
        raise InvalidArgument(f"invalid {name}", data={name: repr(addr)})
    return addr


def require_amount(ctx: "Context", amount: Any, name: str = "amount") -> int:
    """Non-negative int within the configured amount range."""
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"{name} must be an integer", field_name=name, value=amount)
    if amount < 0:
        raise InvalidAmount(f"{name} must be non-negative", field_name=name, value=amount)
    if amount > ctx.config.max_amount:
        raise Overflow(f"{name} exceeds the amount range", data={"field": name})
    return amount


def require_positive(ctx: "Context", amount: Any, name: str = "amount") -> int:
    require_amount(ctx, amount, name)
    if amount == 0:
        raise InvalidAmount(f"{name} must be positive", field_name=name, value=amount)
    return amount


def checked_add(ctx: "Context", a: int, b: int) -> int:
    total = a + b
    if total > ctx.config.max_amount:
        raise Overflow("sum exceeds the amount range", data={"a": a, "b": b})
    return total


def require_token(ctx: "Context", token: Any) -> str:
    """The ledger only moves its own token; `token` must name this ledger."""
    if token != ctx.contract:
        raise InvalidToken(token=repr(token))
    return ctx.contract


def require_index(index: Any, kind: str) -> int:
    """Arena indices are positive ints; anything else can never name a record."""
    if not isinstance(index, int) or isinstance(index, bool) or index <= 0:
        raise InvalidArgument(f"{kind} index must be a positive integer", data={"index": repr(index)})
    return index


# ------------------------------------------------------------------------------
# Shares (basis points)
# ------------------------------------------------------------------------------


def normalize_shares(
    ctx: "Context",
    recipients: Union[Mapping[str, int], Iterable[Sequence[Any]]],
) -> Shares:
    """
    Validate a recipient list and return it as ordered (address, bps) pairs.

    Accepts a mapping (insertion order kept) or an iterable of pairs. Shares
    must be non-negative integers that sum to exactly `basis_points_total`;
    recipients must be unique, and the list non-empty and within
    `max_recipients`.
    """
    pairs = list(recipients.items()) if isinstance(recipients, Mapping) else list(recipients)
    if not pairs:
        raise InvalidShares("no recipients")
    if len(pairs) > ctx.config.max_recipients:
        raise InvalidShares("too many recipients", data={"count": len(pairs), "max": ctx.config.max_recipients})

    out: Shares = []
    seen = set()
    for item in pairs:
        if len(item) != 2:
            raise InvalidShares("recipient entries must be (address, bps) pairs")
        addr, bps = item
        require_address(addr, "recipient")
        if addr in seen:
            raise InvalidShares("duplicate recipient", data={"recipient": addr})
        if not isinstance(bps, int) or isinstance(bps, bool) or bps < 0:
            raise InvalidShares("shares must be non-negative integers", data={"recipient": addr})
        seen.add(addr)
        out.append((addr, bps))

    total = sum(bps for _, bps in out)
    if total != ctx.config.basis_points_total:
        raise InvalidShares(
            "shares must sum to the basis point total",
            data={"sum": total, "expected": ctx.config.basis_points_total},
        )
    return out


def apportion(total: int, shares: Shares, bps_total: int) -> Shares:
    """
    Split `total` by basis points: floor(total * bps / bps_total) each, with the
    rounding remainder added to the first recipient. Payouts sum to `total`.
    """
    payouts = [(addr, total * bps // bps_total) for addr, bps in shares]
    remainder = total - sum(p for _, p in payouts)
    if remainder:
        first, amount = payouts[0]
        payouts[0] = (first, amount + remainder)
    return payouts


def shares_to_record(shares: Shares) -> List[List[Any]]:
    return [[addr, bps] for addr, bps in shares]


def shares_from_record(raw: Iterable[Sequence[Any]]) -> Shares:
    return [(str(addr), int(bps)) for addr, bps in raw]


__all__ = [
    "require_address",
    "require_amount",
    "require_positive",
    "checked_add",
    "require_token",
    "require_index",
    "normalize_shares",
    "apportion",
    "shares_to_record",
    "shares_from_record",
    "Shares",
]
