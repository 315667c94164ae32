"""
payledger.errors — typed ledger exceptions.

Every public ledger operation either completes and commits, or raises one of
the exceptions below and leaves storage untouched. The executor reverts the
journal before the exception reaches the caller, so there is no partial
recovery path anywhere in the contract code.

Hierarchy
---------
LedgerError (base)
 ├─ Unauthorized          : missing authorization or caller is not the required party
 ├─ Frozen                : debit/credit touches a frozen address
 ├─ InvalidAmount         : negative / non-integer / zero where positive is required
 ├─ Overflow              : amount or sum leaves the signed 128-bit range
 ├─ InsufficientBalance   : debit would make a balance negative
 ├─ InsufficientAllowance : delegated spend exceeds the live allowance
 ├─ InvalidExpiration     : allowance expiration already in the past
 ├─ InvalidShares         : basis points do not sum to 10000 (or bad recipient list)
 ├─ InvalidToken          : token argument is not this ledger's token
 ├─ InvalidParty          : parties do not match the referenced payment
 ├─ InvalidArgument       : malformed address, reason, condition or oversized entry
 ├─ AlreadyInitialized    : initialize() called twice
 ├─ NotInitialized        : admin/metadata read before initialize()
 ├─ NotFound              : unknown escrow/split/recurring/dispute index
 ├─ AlreadyFinalized      : escrow already released or refunded
 ├─ AlreadyDistributed    : split already paid out
 ├─ Disputed              : payment is locked by an open dispute
 ├─ NotYetDue             : recurring installment requested before its tick
 │   └─ ConditionNotMet   : escrow release condition does not hold yet
 ├─ Inactive              : recurring schedule is completed or cancelled
 └─ NotOpen               : dispute already resolved

Codes are stable strings and are what metrics, logs and the CLI report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _details(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


@dataclass(eq=False)
class LedgerError(Exception):
    """
    Base ledger error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g. 'UNAUTHORIZED').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "ledger error"
    code: str = "LEDGER_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class Unauthorized(LedgerError):
    def __init__(
        self,
        message: str = "unauthorized",
        *,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="UNAUTHORIZED", data=_details(data, address=address))


class Frozen(LedgerError):
    def __init__(self, message: str = "account frozen", *, address: Optional[str] = None):
        super().__init__(message=message, code="FROZEN", data=_details(None, address=address))


class InvalidAmount(LedgerError):
    def __init__(
        self,
        message: str = "invalid amount",
        *,
        field_name: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_AMOUNT",
            data=_details(None, field=field_name, value=None if value is None else repr(value)),
        )


class Overflow(LedgerError):
    """Amount or running total does not fit the signed 128-bit range."""
    def __init__(self, message: str = "amount overflow", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="OVERFLOW", data=data)


class InsufficientBalance(LedgerError):
    def __init__(
        self,
        message: str = "insufficient balance",
        *,
        address: Optional[str] = None,
        balance: Optional[int] = None,
        needed: Optional[int] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_BALANCE",
            data=_details(None, address=address, balance=balance, needed=needed),
        )


class InsufficientAllowance(LedgerError):
    def __init__(
        self,
        message: str = "insufficient allowance",
        *,
        owner: Optional[str] = None,
        spender: Optional[str] = None,
        available: Optional[int] = None,
        needed: Optional[int] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_ALLOWANCE",
            data=_details(None, owner=owner, spender=spender, available=available, needed=needed),
        )


class InvalidExpiration(LedgerError):
    def __init__(self, message: str = "expiration is in the past", *, expiration: Optional[int] = None,
                 sequence: Optional[int] = None):
        super().__init__(
            message=message,
            code="INVALID_EXPIRATION",
            data=_details(None, expiration=expiration, sequence=sequence),
        )


class InvalidShares(LedgerError):
    def __init__(self, message: str = "invalid shares", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_SHARES", data=data)


class InvalidToken(LedgerError):
    def __init__(self, message: str = "unsupported token", *, token: Optional[str] = None):
        super().__init__(message=message, code="INVALID_TOKEN", data=_details(None, token=token))


class InvalidParty(LedgerError):
    def __init__(self, message: str = "invalid party", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_PARTY", data=data)


class InvalidArgument(LedgerError):
    def __init__(self, message: str = "invalid argument", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_ARGUMENT", data=data)


class AlreadyInitialized(LedgerError):
    def __init__(self, message: str = "already initialized"):
        super().__init__(message=message, code="ALREADY_INITIALIZED")


class NotInitialized(LedgerError):
    def __init__(self, message: str = "ledger not initialized"):
        super().__init__(message=message, code="NOT_INITIALIZED")


class NotFound(LedgerError):
    def __init__(self, message: str = "not found", *, kind: Optional[str] = None, index: Optional[int] = None):
        super().__init__(message=message, code="NOT_FOUND", data=_details(None, kind=kind, index=index))


class AlreadyFinalized(LedgerError):
    def __init__(self, message: str = "escrow already finalized", *, index: Optional[int] = None,
                 status: Optional[str] = None):
        super().__init__(
            message=message,
            code="ALREADY_FINALIZED",
            data=_details(None, index=index, status=status),
        )


class AlreadyDistributed(LedgerError):
    def __init__(self, message: str = "split already distributed", *, index: Optional[int] = None):
        super().__init__(message=message, code="ALREADY_DISTRIBUTED", data=_details(None, index=index))


class Disputed(LedgerError):
    """The payment is held by an open dispute and can only settle through it."""
    def __init__(self, message: str = "payment is under dispute", *, kind: Optional[str] = None,
                 index: Optional[int] = None):
        super().__init__(message=message, code="DISPUTED", data=_details(None, kind=kind, index=index))


class NotYetDue(LedgerError):
    def __init__(
        self,
        message: str = "not yet due",
        *,
        due: Optional[int] = None,
        sequence: Optional[int] = None,
        code: str = "NOT_YET_DUE",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, data=_details(data, due=due, sequence=sequence))


class ConditionNotMet(NotYetDue):
    def __init__(self, message: str = "release condition not met", *, condition: Optional[Dict[str, Any]] = None,
                 sequence: Optional[int] = None):
        super().__init__(
            message=message,
            sequence=sequence,
            code="CONDITION_NOT_MET",
            data=_details(None, condition=condition),
        )


class Inactive(LedgerError):
    def __init__(self, message: str = "schedule inactive", *, index: Optional[int] = None,
                 status: Optional[str] = None):
        super().__init__(message=message, code="INACTIVE", data=_details(None, index=index, status=status))


class NotOpen(LedgerError):
    def __init__(self, message: str = "dispute not open", *, index: Optional[int] = None,
                 status: Optional[str] = None):
        super().__init__(message=message, code="NOT_OPEN", data=_details(None, index=index, status=status))


# -------- helper utilities ---------------------------------------------------


def error_to_result(err: BaseException) -> Dict[str, Any]:
    """
    Map an exception raised by an invocation to a result dict:

        {"status": "ABORTED" | "ERROR", "error": {code, message, data?}}

    LedgerError means the operation was rejected by ledger rules. Anything
    else is a host bug and is reported as ERROR with its type name.
    """
    if isinstance(err, LedgerError):
        return {"status": "ABORTED", "error": err.to_dict()}
    return {"status": "ERROR", "error": {"code": type(err).__name__, "message": str(err)}}


__all__ = [
    "LedgerError",
    "Unauthorized",
    "Frozen",
    "InvalidAmount",
    "Overflow",
    "InsufficientBalance",
    "InsufficientAllowance",
    "InvalidExpiration",
    "InvalidShares",
    "InvalidToken",
    "InvalidParty",
    "InvalidArgument",
    "AlreadyInitialized",
    "NotInitialized",
    "NotFound",
    "AlreadyFinalized",
    "AlreadyDistributed",
    "Disputed",
    "NotYetDue",
    "ConditionNotMet",
    "Inactive",
    "NotOpen",
    "error_to_result",
]
