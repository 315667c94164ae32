"""
Escrow engine
=============

Conditional holds of value in the ledger's own balance (custody).

Lifecycle
---------
OPEN ──release (condition holds)──▶ RELEASED
  └───refund (sender)───────────────▶ REFUNDED

Status leaves OPEN exactly once. While a dispute is open on an escrow, both
release and refund are blocked; the dispute settles it through
`settle_escrow`, the single settlement path.

Conditions
----------
A closed set, evaluated without side effects:
  - Deadline(tick)         holds once the ledger sequence reaches `tick`
  - Attestation(attestor)  holds once `attestor` has called attest_escrow

Multi-recipient escrows share the same lifecycle and conditions, and pay
recipients pro-rata by basis points on release (remainder to the first
recipient). Refund returns the whole amount to the sender.

Events: escrow/created, escrow/attested, escrow/released, escrow/refunded,
and the multi_escrow/* equivalents.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Union

from ..errors import (AlreadyFinalized, ConditionNotMet, Disputed, InvalidArgument, InvalidParty, NotFound,
                      Unauthorized)
from ..runtime.auth import require_auth
from ..runtime.env import Context
from ..state.keys import DataKey, KeyKind
from . import (Shares, apportion, normalize_shares, require_address, require_index, require_positive,
               require_token, shares_from_record, shares_to_record)
from .balance import move_balance
from .history import PaymentKind, record_payment


class EscrowStatus(str, enum.Enum):
    OPEN = "open"
    RELEASED = "released"
    REFUNDED = "refunded"


class ConditionKind(str, enum.Enum):
    DEADLINE = "deadline"
    ATTESTATION = "attestation"


@dataclass(frozen=True)
class Condition:
    kind: ConditionKind
    tick: int = 0
    attestor: Optional[str] = None

    @classmethod
    def deadline(cls, tick: int) -> "Condition":
        return cls(ConditionKind.DEADLINE, tick=tick)

    @classmethod
    def attestation(cls, attestor: str) -> "Condition":
        return cls(ConditionKind.ATTESTATION, attestor=attestor)

    @classmethod
    def coerce(cls, value: Union["Condition", Mapping[str, Any]]) -> "Condition":
        """Validate a Condition or its dict form ({"kind": "deadline", "tick": 10})."""
        if isinstance(value, Mapping):
            try:
                kind = ConditionKind(value.get("kind"))
            except ValueError:
                raise InvalidArgument("unknown condition kind", data={"kind": repr(value.get("kind"))}) from None
            value = cls(kind, tick=value.get("tick", 0), attestor=value.get("attestor"))
        if not isinstance(value, Condition):
            raise InvalidArgument("condition must be a Condition or mapping")
        if value.kind is ConditionKind.DEADLINE:
            if not isinstance(value.tick, int) or isinstance(value.tick, bool) or value.tick < 0:
                raise InvalidArgument("deadline tick must be a non-negative integer")
            return cls(ConditionKind.DEADLINE, tick=value.tick)
        return cls(ConditionKind.ATTESTATION, attestor=require_address(value.attestor, "attestor"))

    def holds(self, sequence: int, attested: bool) -> bool:
        if self.kind is ConditionKind.DEADLINE:
            return sequence >= self.tick
        return attested

    def to_record(self) -> Dict[str, Any]:
        if self.kind is ConditionKind.DEADLINE:
            return {"kind": self.kind.value, "tick": self.tick}
        return {"kind": self.kind.value, "attestor": self.attestor}

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "Condition":
        return cls(ConditionKind(rec["kind"]), tick=int(rec.get("tick", 0)), attestor=rec.get("attestor"))


@dataclass(frozen=True)
class EscrowRecord:
    index: int
    sender: str
    receiver: str
    token: str
    amount: int
    condition: Condition
    status: EscrowStatus = EscrowStatus.OPEN
    attested: bool = False
    disputed: bool = False
    created_at: int = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "receiver": self.receiver,
            "token": self.token,
            "amount": self.amount,
            "condition": self.condition.to_record(),
            "status": self.status.value,
            "attested": self.attested,
            "disputed": self.disputed,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, index: int, rec: Mapping[str, Any]) -> "EscrowRecord":
        return cls(
            index=index,
            sender=rec["sender"],
            receiver=rec["receiver"],
            token=rec["token"],
            amount=int(rec["amount"]),
            condition=Condition.from_record(rec["condition"]),
            status=EscrowStatus(rec["status"]),
            attested=bool(rec["attested"]),
            disputed=bool(rec["disputed"]),
            created_at=int(rec["created_at"]),
        )


@dataclass(frozen=True)
class MultiEscrowRecord:
    index: int
    sender: str
    token: str
    amount: int
    shares: Shares
    condition: Condition
    status: EscrowStatus = EscrowStatus.OPEN
    attested: bool = False
    created_at: int = 0

    @property
    def recipients(self):
        return [addr for addr, _ in self.shares]

    def to_record(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "token": self.token,
            "amount": self.amount,
            "shares": shares_to_record(self.shares),
            "condition": self.condition.to_record(),
            "status": self.status.value,
            "attested": self.attested,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, index: int, rec: Mapping[str, Any]) -> "MultiEscrowRecord":
        return cls(
            index=index,
            sender=rec["sender"],
            token=rec["token"],
            amount=int(rec["amount"]),
            shares=shares_from_record(rec["shares"]),
            condition=Condition.from_record(rec["condition"]),
            status=EscrowStatus(rec["status"]),
            attested=bool(rec["attested"]),
            created_at=int(rec["created_at"]),
        )


# ------------------------------------------------------------------------------
# Storage helpers
# ------------------------------------------------------------------------------


def get_escrow(ctx: Context, index: int) -> EscrowRecord:
    require_index(index, "escrow")
    rec = ctx.load(DataKey.record(KeyKind.ESCROW, index))
    if rec is None:
        raise NotFound("escrow not found", kind="escrow", index=index)
    return EscrowRecord.from_record(index, rec)


def save_escrow(ctx: Context, esc: EscrowRecord) -> None:
    ctx.save(DataKey.record(KeyKind.ESCROW, esc.index), esc.to_record())


def get_multi_escrow(ctx: Context, index: int) -> MultiEscrowRecord:
    require_index(index, "multi_escrow")
    rec = ctx.load(DataKey.record(KeyKind.MULTI_ESCROW, index))
    if rec is None:
        raise NotFound("multi-escrow not found", kind="multi_escrow", index=index)
    return MultiEscrowRecord.from_record(index, rec)


def _save_multi(ctx: Context, esc: MultiEscrowRecord) -> None:
    ctx.save(DataKey.record(KeyKind.MULTI_ESCROW, esc.index), esc.to_record())


def _require_open(esc: Union[EscrowRecord, MultiEscrowRecord]) -> None:
    if esc.status is not EscrowStatus.OPEN:
        raise AlreadyFinalized(index=esc.index, status=esc.status.value)


def _require_condition(ctx: Context, esc: Union[EscrowRecord, MultiEscrowRecord]) -> None:
    if not esc.condition.holds(ctx.sequence, esc.attested):
        raise ConditionNotMet(condition=esc.condition.to_record(), sequence=ctx.sequence)


def _attest(ctx: Context, attestor: str, esc: Union[EscrowRecord, MultiEscrowRecord]):
    require_auth(ctx, attestor)
    if esc.condition.kind is not ConditionKind.ATTESTATION:
        raise InvalidArgument("escrow condition is not an attestation", data={"index": esc.index})
    if attestor != esc.condition.attestor:
        raise Unauthorized("caller is not the attestor", address=attestor)
    _require_open(esc)
    return replace(esc, attested=True)


# ------------------------------------------------------------------------------
# Single escrow
# ------------------------------------------------------------------------------


def create_escrow(
    ctx: Context,
    sender: str,
    receiver: str,
    amount: int,
    condition: Union[Condition, Mapping[str, Any]],
    token: str,
) -> int:
    require_auth(ctx, sender)
    require_address(receiver, "receiver")
    if sender == receiver:
        raise InvalidParty("sender and receiver must differ")
    require_token(ctx, token)
    require_positive(ctx, amount)
    cond = Condition.coerce(condition)

    move_balance(ctx, sender, ctx.contract, amount)
    record_payment(ctx, sender, ctx.contract, amount, PaymentKind.ESCROW_LOCK)

    idx = ctx.next_index(KeyKind.ESCROW)
    save_escrow(
        ctx,
        EscrowRecord(
            index=idx,
            sender=sender,
            receiver=receiver,
            token=ctx.contract,
            amount=amount,
            condition=cond,
            created_at=ctx.sequence,
        ),
    )
    ctx.emit("escrow/created", index=idx, sender=sender, receiver=receiver, amount=amount,
             condition=cond.to_record())
    return idx


def attest_escrow(ctx: Context, attestor: str, index: int) -> None:
    esc = _attest(ctx, attestor, get_escrow(ctx, index))
    save_escrow(ctx, esc)
    ctx.emit("escrow/attested", index=index, attestor=attestor)


def settle_escrow(ctx: Context, esc: EscrowRecord, beneficiary: str, kind: PaymentKind) -> EscrowRecord:
    """
    Pay the held amount out of custody to `beneficiary` (the receiver or the
    sender) and close the escrow. Callers have already checked authorization,
    status and dispute state.
    """
    if beneficiary == esc.receiver:
        status, topic = EscrowStatus.RELEASED, "escrow/released"
    elif beneficiary == esc.sender:
        status, topic = EscrowStatus.REFUNDED, "escrow/refunded"
    else:
        raise InvalidParty("escrow can only settle to its sender or receiver")
    move_balance(ctx, ctx.contract, beneficiary, esc.amount)
    record_payment(ctx, ctx.contract, beneficiary, esc.amount, kind)
    settled = replace(esc, status=status, disputed=False)
    save_escrow(ctx, settled)
    ctx.emit(topic, index=esc.index, to=beneficiary, amount=esc.amount)
    return settled


def release_escrow(ctx: Context, caller: str, index: int) -> None:
    require_auth(ctx, caller)
    esc = get_escrow(ctx, index)
    if caller not in (esc.sender, esc.receiver):
        raise Unauthorized("only the sender or receiver can release", address=caller)
    _require_open(esc)
    if esc.disputed:
        raise Disputed(kind="escrow", index=index)
    _require_condition(ctx, esc)
    settle_escrow(ctx, esc, esc.receiver, PaymentKind.ESCROW_RELEASE)


def refund_escrow(ctx: Context, caller: str, index: int) -> None:
    require_auth(ctx, caller)
    esc = get_escrow(ctx, index)
    if caller != esc.sender:
        raise Unauthorized("only the sender can refund", address=caller)
    _require_open(esc)
    if esc.disputed:
        raise Disputed(kind="escrow", index=index)
    settle_escrow(ctx, esc, esc.sender, PaymentKind.ESCROW_REFUND)


# ------------------------------------------------------------------------------
# Multi-recipient escrow
# ------------------------------------------------------------------------------


def create_multi_escrow(
    ctx: Context,
    sender: str,
    recipients: Any,
    amount: int,
    condition: Union[Condition, Mapping[str, Any]],
    token: str,
) -> int:
    require_auth(ctx, sender)
    shares = normalize_shares(ctx, recipients)
    if any(addr == sender for addr, _ in shares):
        raise InvalidParty("sender cannot be a recipient")
    require_token(ctx, token)
    require_positive(ctx, amount)
    cond = Condition.coerce(condition)

    move_balance(ctx, sender, ctx.contract, amount)
    record_payment(ctx, sender, ctx.contract, amount, PaymentKind.ESCROW_LOCK)

    idx = ctx.next_index(KeyKind.MULTI_ESCROW)
    _save_multi(
        ctx,
        MultiEscrowRecord(
            index=idx,
            sender=sender,
            token=ctx.contract,
            amount=amount,
            shares=shares,
            condition=cond,
            created_at=ctx.sequence,
        ),
    )
    ctx.emit("multi_escrow/created", index=idx, sender=sender, amount=amount,
             recipients=shares_to_record(shares), condition=cond.to_record())
    return idx


def attest_multi_escrow(ctx: Context, attestor: str, index: int) -> None:
    esc = _attest(ctx, attestor, get_multi_escrow(ctx, index))
    _save_multi(ctx, esc)
    ctx.emit("multi_escrow/attested", index=index, attestor=attestor)


def release_multi_escrow(ctx: Context, caller: str, index: int) -> None:
    require_auth(ctx, caller)
    esc = get_multi_escrow(ctx, index)
    if caller != esc.sender and caller not in esc.recipients:
        raise Unauthorized("only the sender or a recipient can release", address=caller)
    _require_open(esc)
    _require_condition(ctx, esc)

    payouts = apportion(esc.amount, esc.shares, ctx.config.basis_points_total)
    for addr, share in payouts:
        if share == 0:
            continue
        move_balance(ctx, ctx.contract, addr, share)
        record_payment(ctx, ctx.contract, addr, share, PaymentKind.ESCROW_RELEASE)
    _save_multi(ctx, replace(esc, status=EscrowStatus.RELEASED))
    ctx.emit("multi_escrow/released", index=index, payouts=shares_to_record(payouts))


def refund_multi_escrow(ctx: Context, caller: str, index: int) -> None:
    require_auth(ctx, caller)
    esc = get_multi_escrow(ctx, index)
    if caller != esc.sender:
        raise Unauthorized("only the sender can refund", address=caller)
    _require_open(esc)
    move_balance(ctx, ctx.contract, esc.sender, esc.amount)
    record_payment(ctx, ctx.contract, esc.sender, esc.amount, PaymentKind.ESCROW_REFUND)
    _save_multi(ctx, replace(esc, status=EscrowStatus.REFUNDED))
    ctx.emit("multi_escrow/refunded", index=index, to=esc.sender, amount=esc.amount)
