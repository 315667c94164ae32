"""
payledger.runtime.auth — the authorization boundary.

The ledger does not verify signatures itself. It asks an `Authorizer` whether
an address has authorized the current invocation and aborts with
`Unauthorized` when it has not. Hosts plug in whatever scheme they use;
`MockAuthorizer` covers tests, simulations and the scenario CLI.
"""

from __future__ import annotations

from collections import deque
from contextlib import contextmanager
from typing import TYPE_CHECKING, Deque, Iterable, Iterator, Protocol, Set, runtime_checkable

from ..errors import Unauthorized

if TYPE_CHECKING:
    from .env import Context


@runtime_checkable
class Authorizer(Protocol):
    def authorized(self, address: str) -> bool:
        """True if `address` authorized the invocation in progress."""


class MockAuthorizer:
    """
    Signer-set authorizer.

    - `allow_all=True` accepts every address (scenario runs, benchmarks).
    - otherwise only addresses in the signer set are accepted.

    The most recent `history` checks are kept in `checked` so tests can
    assert which party an operation asked for; `clear_checks()` empties it.
    """

    def __init__(self, signers: Iterable[str] = (), *, allow_all: bool = False, history: int = 256) -> None:
        self.allow_all = allow_all
        self._signers: Set[str] = set(signers)
        self.checked: Deque[str] = deque(maxlen=history)

    def authorized(self, address: str) -> bool:
        self.checked.append(address)
        return self.allow_all or address in self._signers

    def clear_checks(self) -> None:
        self.checked.clear()

    def sign(self, *addresses: str) -> None:
        self._signers.update(addresses)

    def revoke(self, *addresses: str) -> None:
        self._signers.difference_update(addresses)

    @contextmanager
    def only(self, *addresses: str) -> Iterator["MockAuthorizer"]:
        """Temporarily restrict authorization to exactly `addresses`."""
        prev_signers, prev_all = set(self._signers), self.allow_all
        self._signers, self.allow_all = set(addresses), False
        try:
            yield self
        finally:
            self._signers, self.allow_all = prev_signers, prev_all


def require_auth(ctx: "Context", address: str) -> None:
    if not ctx.auth.authorized(address):
        raise Unauthorized("authorization required", address=address)


__all__ = ["Authorizer", "MockAuthorizer", "require_auth"]
