"""
Dispute resolver.

A dispute freezes an unsettled escrow or split until a named resolver picks
a side. Opening it flags the payment as disputed, which blocks the normal
release/refund/distribute paths. Resolving it pays the full held amount to
the initiator (`decision=True`) or the respondent (`decision=False`) and
settles the underlying payment in the same invocation:

  escrow → RELEASED if the receiver was paid, REFUNDED if the sender was
  split  → DISTRIBUTED

The resolver must be a third party. The ledger admin may also resolve any
dispute, as the fallback arbiter when the named resolver is unavailable,
except one it is itself a party to.
A dispute resolves exactly once; later attempts fail with NotOpen.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from ..errors import (AlreadyDistributed, AlreadyFinalized, Disputed, InvalidAmount, InvalidArgument, InvalidParty,
                      NotFound, NotOpen, Unauthorized)
from ..runtime.auth import require_auth
from ..runtime.env import Context
from ..state.keys import DataKey, KeyKind
from . import require_address, require_index, require_positive, require_token
from .admin import has_admin, read_admin
from .escrow import EscrowStatus, get_escrow, save_escrow, settle_escrow
from .history import PaymentKind
from .splitter import SplitStatus, get_split, save_split, settle_split


class PaymentRefKind(str, enum.Enum):
    ESCROW = "escrow"
    SPLIT = "split"


@dataclass(frozen=True)
class PaymentRef:
    kind: PaymentRefKind
    index: int

    @classmethod
    def coerce(cls, value: Union["PaymentRef", Mapping[str, Any], Sequence[Any]]) -> "PaymentRef":
        """Accept a PaymentRef, {"kind": ..., "index": ...} or a (kind, index) pair."""
        if isinstance(value, PaymentRef):
            return value
        if isinstance(value, Mapping):
            kind, index = value.get("kind"), value.get("index")
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            kind, index = value
        else:
            raise InvalidArgument("payment reference must be (kind, index)")
        try:
            ref_kind = PaymentRefKind(kind)
        except ValueError:
            raise InvalidArgument("unknown payment kind", data={"kind": repr(kind)}) from None
        if not isinstance(index, int) or isinstance(index, bool) or index <= 0:
            raise InvalidArgument("payment index must be a positive integer")
        return cls(ref_kind, index)

    def to_record(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "index": self.index}


class DisputeStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED_INITIATOR = "resolved_initiator"
    RESOLVED_RESPONDENT = "resolved_respondent"


@dataclass(frozen=True)
class DisputeRecord:
    index: int
    payment: PaymentRef
    initiator: str
    respondent: str
    resolver: str
    reason: str
    amount: int
    token: str
    status: DisputeStatus = DisputeStatus.OPEN
    opened_at: int = 0
    resolved_at: Optional[int] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "payment": self.payment.to_record(),
            "initiator": self.initiator,
            "respondent": self.respondent,
            "resolver": self.resolver,
            "reason": self.reason,
            "amount": self.amount,
            "token": self.token,
            "status": self.status.value,
            "opened_at": self.opened_at,
            "resolved_at": self.resolved_at,
        }

    @classmethod
    def from_record(cls, index: int, rec: Mapping[str, Any]) -> "DisputeRecord":
        return cls(
            index=index,
            payment=PaymentRef(PaymentRefKind(rec["payment"]["kind"]), int(rec["payment"]["index"])),
            initiator=rec["initiator"],
            respondent=rec["respondent"],
            resolver=rec["resolver"],
            reason=rec["reason"],
            amount=int(rec["amount"]),
            token=rec["token"],
            status=DisputeStatus(rec["status"]),
            opened_at=int(rec["opened_at"]),
            resolved_at=rec["resolved_at"],
        )


def get_dispute(ctx: Context, index: int) -> DisputeRecord:
    require_index(index, "dispute")
    rec = ctx.load(DataKey.record(KeyKind.DISPUTE, index))
    if rec is None:
        raise NotFound("dispute not found", kind="dispute", index=index)
    return DisputeRecord.from_record(index, rec)


def _save(ctx: Context, d: DisputeRecord) -> None:
    ctx.save(DataKey.record(KeyKind.DISPUTE, d.index), d.to_record())


def _require_reason(ctx: Context, reason: Any) -> str:
    if not isinstance(reason, str) or not reason.strip():
        raise InvalidArgument("reason must be a non-empty string")
    if len(reason.encode("utf-8")) > ctx.config.max_reason_bytes:
        raise InvalidArgument("reason too long", data={"max_bytes": ctx.config.max_reason_bytes})
    return reason


def _lock_escrow(ctx: Context, ref: PaymentRef, initiator: str, respondent: str) -> int:
    esc = get_escrow(ctx, ref.index)
    if esc.status is not EscrowStatus.OPEN:
        raise AlreadyFinalized(index=esc.index, status=esc.status.value)
    if esc.disputed:
        raise Disputed(kind="escrow", index=esc.index)
    if {initiator, respondent} != {esc.sender, esc.receiver}:
        raise InvalidParty("initiator and respondent must be the escrow's sender and receiver")
    save_escrow(ctx, replace(esc, disputed=True))
    return esc.amount


def _lock_split(ctx: Context, ref: PaymentRef, initiator: str, respondent: str) -> int:
    sp = get_split(ctx, ref.index)
    if sp.status is SplitStatus.DISTRIBUTED:
        raise AlreadyDistributed(index=sp.index)
    if sp.disputed:
        raise Disputed(kind="split", index=sp.index)
    pair_ok = (initiator == sp.payer and respondent in sp.recipients) or (
        respondent == sp.payer and initiator in sp.recipients
    )
    if not pair_ok:
        raise InvalidParty("dispute parties must be the split's payer and one of its recipients")
    save_split(ctx, replace(sp, disputed=True))
    return sp.amount


def open_dispute(
    ctx: Context,
    initiator: str,
    payment_ref: Any,
    respondent: str,
    resolver: str,
    reason: str,
    amount: int,
    token: str,
) -> int:
    require_auth(ctx, initiator)
    ref = PaymentRef.coerce(payment_ref)
    require_address(respondent, "respondent")
    require_address(resolver, "resolver")
    if resolver in (initiator, respondent):
        raise InvalidParty("resolver must not be a party to the dispute")
    reason = _require_reason(ctx, reason)
    require_token(ctx, token)
    require_positive(ctx, amount)

    if ref.kind is PaymentRefKind.ESCROW:
        held = _lock_escrow(ctx, ref, initiator, respondent)
    else:
        held = _lock_split(ctx, ref, initiator, respondent)
    if amount != held:
        raise InvalidAmount("disputed amount must equal the held amount", field_name="amount", value=amount)

    idx = ctx.next_index(KeyKind.DISPUTE)
    _save(
        ctx,
        DisputeRecord(
            index=idx,
            payment=ref,
            initiator=initiator,
            respondent=respondent,
            resolver=resolver,
            reason=reason,
            amount=amount,
            token=ctx.contract,
            opened_at=ctx.sequence,
        ),
    )
    ctx.emit("dispute/opened", index=idx, payment=ref.to_record(), initiator=initiator,
             respondent=respondent, resolver=resolver, amount=amount)
    return idx


def resolve_dispute(ctx: Context, resolver: str, index: int, decision: bool) -> DisputeRecord:
    require_auth(ctx, resolver)
    d = get_dispute(ctx, index)
    if resolver in (d.initiator, d.respondent):
        raise InvalidParty("a party cannot resolve its own dispute", data={"resolver": resolver})
    if resolver != d.resolver and not (has_admin(ctx) and resolver == read_admin(ctx)):
        raise Unauthorized("caller is not the dispute resolver", address=resolver)
    if d.status is not DisputeStatus.OPEN:
        raise NotOpen(index=index, status=d.status.value)
    if not isinstance(decision, bool):
        raise InvalidArgument("decision must be a boolean")

    beneficiary = d.initiator if decision else d.respondent
    if d.payment.kind is PaymentRefKind.ESCROW:
        settle_escrow(ctx, get_escrow(ctx, d.payment.index), beneficiary, PaymentKind.DISPUTE_PAYOUT)
    else:
        settle_split(ctx, get_split(ctx, d.payment.index), beneficiary)

    resolved = replace(
        d,
        status=DisputeStatus.RESOLVED_INITIATOR if decision else DisputeStatus.RESOLVED_RESPONDENT,
        resolved_at=ctx.sequence,
    )
    _save(ctx, resolved)
    ctx.emit("dispute/resolved", index=index, decision=decision, to=beneficiary, amount=d.amount, by=resolver)
    return resolved
