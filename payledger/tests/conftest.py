from __future__ import annotations

from typing import Callable, Optional

import pytest
from prometheus_client import CollectorRegistry

from payledger import metrics
from payledger.config import LedgerConfig
from payledger.ledger import PayLedger
from payledger.runtime import LedgerClock, MockAuthorizer

ADMIN = "admin"
START_SEQUENCE = 100


@pytest.fixture
def registry() -> CollectorRegistry:
    reg = CollectorRegistry()
    metrics.set_registry(reg)
    return reg


@pytest.fixture
def auth() -> MockAuthorizer:
    return MockAuthorizer(allow_all=True)


@pytest.fixture
def make_ledger(auth: MockAuthorizer) -> Callable[..., PayLedger]:
    def _make(
        *,
        sequence: int = START_SEQUENCE,
        config: Optional[LedgerConfig] = None,
        initialize: bool = True,
    ) -> PayLedger:
        pl = PayLedger("ledger", authorizer=auth, clock=LedgerClock(sequence), config=config or LedgerConfig())
        if initialize:
            pl.initialize(ADMIN, "Pay Token", "PAY", 7)
        return pl

    return _make


@pytest.fixture
def ledger(make_ledger: Callable[..., PayLedger]) -> PayLedger:
    return make_ledger()


@pytest.fixture
def funded(ledger: PayLedger) -> PayLedger:
    """Initialized ledger with alice=1000, bob=500."""
    ledger.mint(ADMIN, "alice", 1_000)
    ledger.mint(ADMIN, "bob", 500)
    return ledger
