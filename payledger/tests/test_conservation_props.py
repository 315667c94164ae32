from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from payledger.config import BASIS_POINTS_TOTAL, LedgerConfig
from payledger.contract import apportion
from payledger.contract.escrow import Condition
from payledger.errors import LedgerError
from payledger.ledger import PayLedger
from payledger.runtime import LedgerClock, MockAuthorizer

ADMIN = "admin"
USERS = ["alice", "bob", "carol"]

_user = st.sampled_from(USERS)
_amount = st.integers(min_value=-5, max_value=400)
_idx = st.integers(min_value=1, max_value=4)

_op = st.one_of(
    st.tuples(st.just("mint"), _user, _amount),
    st.tuples(st.just("burn"), _user, _amount),
    st.tuples(st.just("transfer"), _user, _user, _amount),
    st.tuples(st.just("clawback"), _user, _amount),
    st.tuples(st.just("freeze"), _user),
    st.tuples(st.just("unfreeze"), _user),
    st.tuples(st.just("escrow"), _user, _user, _amount, st.integers(0, 20)),
    st.tuples(st.just("release"), _user, _idx),
    st.tuples(st.just("refund"), _user, _idx),
    st.tuples(st.just("split"), _user, _amount, st.integers(0, BASIS_POINTS_TOTAL)),
    st.tuples(st.just("distribute"), _user, _idx),
    st.tuples(st.just("advance"), st.integers(0, 10)),
)


def _apply(pl: PayLedger, op) -> None:
    name, *args = op
    if name == "mint":
        pl.mint(ADMIN, args[0], args[1])
    elif name == "burn":
        pl.burn(args[0], args[1])
    elif name == "transfer":
        pl.transfer(*args)
    elif name == "clawback":
        pl.clawback(ADMIN, args[0], args[1])
    elif name == "freeze":
        pl.freeze(ADMIN, args[0])
    elif name == "unfreeze":
        pl.unfreeze(ADMIN, args[0])
    elif name == "escrow":
        sender, receiver, amount, wait = args
        pl.create_escrow(sender, receiver, amount, Condition.deadline(pl.sequence + wait))
    elif name == "release":
        pl.release_escrow(*args)
    elif name == "refund":
        pl.refund_escrow(*args)
    elif name == "split":
        payer, amount, bps = args
        others = [u for u in USERS if u != payer]
        pl.create_split(payer, [(others[0], bps), (others[1], BASIS_POINTS_TOTAL - bps)], amount)
    elif name == "distribute":
        pl.distribute(*args)
    elif name == "advance":
        pl.advance(args[0])


@settings(max_examples=75, deadline=None)
@given(ops=st.lists(_op, max_size=40))
def test_supply_equals_sum_of_balances(ops) -> None:
    pl = PayLedger("ledger", authorizer=MockAuthorizer(allow_all=True), clock=LedgerClock(0), config=LedgerConfig())
    pl.initialize(ADMIN, "Pay Token", "PAY", 7)
    holders = USERS + [pl.address]
    for op in ops:
        before = pl.balances(holders)
        count = pl.payment_count()
        try:
            _apply(pl, op)
        except LedgerError:
            # aborted calls change nothing
            assert pl.balances(holders) == before
            assert pl.payment_count() == count
        bals = pl.balances(holders)
        assert all(b >= 0 for b in bals.values())
        assert sum(bals.values()) == pl.total_supply()


@settings(max_examples=200, deadline=None)
@given(
    total=st.integers(min_value=0, max_value=10**30),
    cuts=st.lists(st.integers(min_value=0, max_value=BASIS_POINTS_TOTAL), min_size=0, max_size=8),
)
def test_apportion_sums_to_total(total, cuts) -> None:
    points = sorted(cuts)
    bps = [b - a for a, b in zip([0] + points, points + [BASIS_POINTS_TOTAL])]
    shares = [(f"r{i}", b) for i, b in enumerate(bps)]
    payouts = apportion(total, shares, BASIS_POINTS_TOTAL)
    assert sum(p for _, p in payouts) == total
    assert [a for a, _ in payouts] == [a for a, _ in shares]
    for (_, p), (_, b) in zip(payouts[1:], shares[1:]):
        assert p == total * b // BASIS_POINTS_TOTAL
    # the first recipient absorbs less than one unit per recipient
    assert payouts[0][1] - total * bps[0] // BASIS_POINTS_TOTAL < len(shares)
