"""
payledger.ledger — the public facade.

`PayLedger` owns the host pieces (storage, clock, authorizer, event sink,
executor) and exposes every ledger operation as a method. Each call runs as
one atomic invocation: it either commits all of its writes and events or
raises a `LedgerError` and changes nothing.

    from payledger.ledger import PayLedger
    from payledger.runtime import MockAuthorizer

    auth = MockAuthorizer(allow_all=True)
    pl = PayLedger("ledger", authorizer=auth)
    pl.initialize("admin", "Pay Token", "PAY", 7)
    pl.mint("admin", "alice", 1_000)
    eid = pl.create_escrow("alice", "bob", 200, Condition.deadline(50))
    pl.advance(50)
    pl.release_escrow("bob", eid)

Methods taking `token` default it to this ledger's own address; anything
else is rejected with InvalidToken.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, FrozenSet, List, Optional, TypeVar

from .config import LedgerConfig, load_config
from .contract import allowance as _allowance
from .contract import dispute as _dispute
from .contract import escrow as _escrow
from .contract import freeze as _freeze
from .contract import history as _history
from .contract import recurring as _recurring
from .contract import splitter as _splitter
from .contract import token as _token
from .contract.admin import read_admin, transfer_admin
from .contract.balance import read_balance, read_total_supply
from .contract.metadata import TokenMetadata, read_metadata
from .runtime.auth import Authorizer
from .runtime.env import Context, LedgerClock
from .runtime.executor import Executor
from .state.events import EventSink, InMemoryEventSink, LedgerEvent
from .state.keys import DataKey
from .state.storage import TieredStorage

T = TypeVar("T")

# Entry points reachable by name (scenario runner).
OPERATIONS: FrozenSet[str] = frozenset(
    {
        "initialize", "transfer_admin", "freeze", "unfreeze",
        "mint", "burn", "burn_from", "transfer", "approve", "transfer_from", "clawback",
        "create_escrow", "attest_escrow", "release_escrow", "refund_escrow",
        "create_multi_escrow", "attest_multi_escrow", "release_multi_escrow", "refund_multi_escrow",
        "setup_recurring", "execute_recurring", "cancel_recurring",
        "create_split", "distribute",
        "open_dispute", "resolve_dispute",
        "balance", "allowance", "total_supply", "name", "symbol", "decimals", "admin", "is_frozen",
        "get_escrow", "get_multi_escrow", "get_recurring", "get_split", "get_dispute",
        "payment_record", "payment_count", "user_stats",
    }
)


class PayLedger:
    def __init__(
        self,
        address: str = "payledger",
        *,
        authorizer: Authorizer,
        clock: Optional[LedgerClock] = None,
        storage: Optional[TieredStorage] = None,
        config: Optional[LedgerConfig] = None,
        sink: Optional[EventSink] = None,
    ) -> None:
        self.address = address
        self.config = config or load_config()
        self.clock = clock or LedgerClock()
        self.storage = storage if storage is not None else TieredStorage()
        self.sink: EventSink = sink if sink is not None else InMemoryEventSink()
        self.executor = Executor(
            storage=self.storage,
            clock=self.clock,
            authorizer=authorizer,
            contract=address,
            config=self.config,
            sink=self.sink,
        )

    def _run(self, op: str, fn: Callable[[Context], T], caller: Optional[str] = None) -> T:
        return self.executor.invoke(op, fn, caller=caller)

    def _token(self, token: Optional[str]) -> str:
        return self.address if token is None else token

    # ------------------------------------------------------------------
    # Host controls
    # ------------------------------------------------------------------

    @property
    def sequence(self) -> int:
        return self.clock.sequence

    def advance(self, ticks: int = 1) -> int:
        return self.clock.advance(ticks)

    def set_sequence(self, sequence: int) -> int:
        return self.clock.set(sequence)

    def lease(self, key: DataKey) -> Optional[int]:
        return self.storage.lease(key)

    def expired(self) -> List[DataKey]:
        return self.storage.expired(self.clock.sequence)

    def sweep(self) -> int:
        """Archive record entries whose lease lapsed. Run between invocations."""
        return self.storage.sweep(self.clock.sequence)

    def archived(self) -> List[DataKey]:
        return self.storage.archived()

    def events(self, topic: Optional[str] = None) -> List[LedgerEvent]:
        return list(self.sink.get_events(topic=topic))

    # ------------------------------------------------------------------
    # Admin & freeze
    # ------------------------------------------------------------------

    def initialize(self, admin: str, name: str, symbol: str, decimals: int) -> TokenMetadata:
        return self._run("initialize", lambda c: _token.initialize(c, admin, name, symbol, decimals), admin)

    def transfer_admin(self, new_admin: str) -> None:
        self._run("transfer_admin", lambda c: transfer_admin(c, new_admin))

    def freeze(self, admin: str, target: str) -> None:
        self._run("freeze", lambda c: _freeze.freeze(c, admin, target), admin)

    def unfreeze(self, admin: str, target: str) -> None:
        self._run("unfreeze", lambda c: _freeze.unfreeze(c, admin, target), admin)

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def mint(self, admin: str, to: str, amount: int) -> None:
        self._run("mint", lambda c: _token.mint(c, admin, to, amount), admin)

    def burn(self, from_: str, amount: int) -> None:
        self._run("burn", lambda c: _token.burn(c, from_, amount), from_)

    def burn_from(self, spender: str, owner: str, amount: int) -> None:
        self._run("burn_from", lambda c: _token.burn_from(c, spender, owner, amount), spender)

    def transfer(self, from_: str, to: str, amount: int) -> None:
        self._run("transfer", lambda c: _token.transfer(c, from_, to, amount), from_)

    def approve(self, owner: str, spender: str, amount: int, expiration: int) -> None:
        self._run("approve", lambda c: _token.approve(c, owner, spender, amount, expiration), owner)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        self._run("transfer_from", lambda c: _token.transfer_from(c, spender, owner, to, amount), spender)

    def clawback(self, admin: str, from_: str, amount: int) -> None:
        self._run("clawback", lambda c: _token.clawback(c, admin, from_, amount), admin)

    # ------------------------------------------------------------------
    # Escrow
    # ------------------------------------------------------------------

    def create_escrow(self, sender: str, receiver: str, amount: int, condition: Any,
                      token: Optional[str] = None) -> int:
        tok = self._token(token)
        return self._run(
            "create_escrow", lambda c: _escrow.create_escrow(c, sender, receiver, amount, condition, tok), sender
        )

    def attest_escrow(self, attestor: str, index: int) -> None:
        self._run("attest_escrow", lambda c: _escrow.attest_escrow(c, attestor, index), attestor)

    def release_escrow(self, caller: str, index: int) -> None:
        self._run("release_escrow", lambda c: _escrow.release_escrow(c, caller, index), caller)

    def refund_escrow(self, caller: str, index: int) -> None:
        self._run("refund_escrow", lambda c: _escrow.refund_escrow(c, caller, index), caller)

    def get_escrow(self, index: int) -> _escrow.EscrowRecord:
        return self._run("get_escrow", lambda c: _escrow.get_escrow(c, index))

    def create_multi_escrow(self, sender: str, recipients: Any, amount: int, condition: Any,
                            token: Optional[str] = None) -> int:
        tok = self._token(token)
        return self._run(
            "create_multi_escrow",
            lambda c: _escrow.create_multi_escrow(c, sender, recipients, amount, condition, tok),
            sender,
        )

    def attest_multi_escrow(self, attestor: str, index: int) -> None:
        self._run("attest_multi_escrow", lambda c: _escrow.attest_multi_escrow(c, attestor, index), attestor)

    def release_multi_escrow(self, caller: str, index: int) -> None:
        self._run("release_multi_escrow", lambda c: _escrow.release_multi_escrow(c, caller, index), caller)

    def refund_multi_escrow(self, caller: str, index: int) -> None:
        self._run("refund_multi_escrow", lambda c: _escrow.refund_multi_escrow(c, caller, index), caller)

    def get_multi_escrow(self, index: int) -> _escrow.MultiEscrowRecord:
        return self._run("get_multi_escrow", lambda c: _escrow.get_multi_escrow(c, index))

    # ------------------------------------------------------------------
    # Recurring
    # ------------------------------------------------------------------

    def setup_recurring(self, payer: str, payee: str, amount: int, interval: int, iterations: int,
                        token: Optional[str] = None) -> int:
        tok = self._token(token)
        return self._run(
            "setup_recurring",
            lambda c: _recurring.setup_recurring(c, payer, payee, amount, interval, iterations, tok),
            payer,
        )

    def execute_recurring(self, caller: str, index: int) -> _recurring.RecurringRecord:
        return self._run("execute_recurring", lambda c: _recurring.execute_recurring(c, caller, index), caller)

    def cancel_recurring(self, caller: str, index: int) -> None:
        self._run("cancel_recurring", lambda c: _recurring.cancel_recurring(c, caller, index), caller)

    def get_recurring(self, index: int) -> _recurring.RecurringRecord:
        return self._run("get_recurring", lambda c: _recurring.get_recurring(c, index))

    # ------------------------------------------------------------------
    # Splits
    # ------------------------------------------------------------------

    def create_split(self, payer: str, recipients: Any, total_amount: int, token: Optional[str] = None) -> int:
        tok = self._token(token)
        return self._run(
            "create_split", lambda c: _splitter.create_split(c, payer, recipients, total_amount, tok), payer
        )

    def distribute(self, caller: str, index: int) -> None:
        self._run("distribute", lambda c: _splitter.distribute(c, caller, index), caller)

    def get_split(self, index: int) -> _splitter.SplitRecord:
        return self._run("get_split", lambda c: _splitter.get_split(c, index))

    # ------------------------------------------------------------------
    # Disputes
    # ------------------------------------------------------------------

    def open_dispute(self, initiator: str, payment_ref: Any, respondent: str, resolver: str, reason: str,
                     amount: int, token: Optional[str] = None) -> int:
        tok = self._token(token)
        return self._run(
            "open_dispute",
            lambda c: _dispute.open_dispute(c, initiator, payment_ref, respondent, resolver, reason, amount, tok),
            initiator,
        )

    def resolve_dispute(self, resolver: str, index: int, decision: bool) -> _dispute.DisputeRecord:
        return self._run(
            "resolve_dispute", lambda c: _dispute.resolve_dispute(c, resolver, index, decision), resolver
        )

    def get_dispute(self, index: int) -> _dispute.DisputeRecord:
        return self._run("get_dispute", lambda c: _dispute.get_dispute(c, index))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def balance(self, address: str) -> int:
        return self._run("balance", lambda c: read_balance(c, address))

    def allowance(self, owner: str, spender: str) -> int:
        return self._run("allowance", lambda c: _allowance.read_allowance(c, owner, spender).amount)

    def total_supply(self) -> int:
        return self._run("total_supply", read_total_supply)

    def name(self) -> str:
        return self._run("name", lambda c: read_metadata(c).name)

    def symbol(self) -> str:
        return self._run("symbol", lambda c: read_metadata(c).symbol)

    def decimals(self) -> int:
        return self._run("decimals", lambda c: read_metadata(c).decimals)

    def admin(self) -> str:
        return self._run("admin", read_admin)

    def is_frozen(self, address: str) -> bool:
        return self._run("is_frozen", lambda c: _freeze.is_frozen(c, address))

    def payment_record(self, index: int) -> _history.PaymentRecord:
        return self._run("payment_record", lambda c: _history.payment_record(c, index))

    def payment_count(self) -> int:
        return self._run("payment_count", _history.payment_count)

    def user_stats(self, address: str) -> _history.UserStats:
        return self._run("user_stats", lambda c: _history.user_stats(c, address))

    def balances(self, addresses: List[str]) -> Dict[str, int]:
        return self._run("balances", lambda c: {a: read_balance(c, a) for a in addresses})


__all__ = ["PayLedger", "OPERATIONS"]
