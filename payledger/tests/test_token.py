from __future__ import annotations

import pytest

from payledger.contract.history import PaymentKind
from payledger.errors import (AlreadyInitialized, Frozen, InsufficientAllowance, InsufficientBalance,
                              InvalidAmount, InvalidArgument, InvalidExpiration, NotInitialized, Overflow,
                              Unauthorized)
from payledger.runtime import MockAuthorizer

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"


def test_initialize_sets_metadata_and_admin(ledger) -> None:
    assert ledger.name() == "Pay Token"
    assert ledger.symbol() == "PAY"
    assert ledger.decimals() == 7
    assert ledger.admin() == ADMIN
    assert ledger.total_supply() == 0


def test_initialize_twice_fails(ledger) -> None:
    with pytest.raises(AlreadyInitialized):
        ledger.initialize("mallory", "Other", "OTH", 2)
    assert ledger.admin() == ADMIN


def test_views_before_initialize(make_ledger) -> None:
    pl = make_ledger(initialize=False)
    with pytest.raises(NotInitialized):
        pl.admin()
    with pytest.raises(NotInitialized):
        pl.name()
    with pytest.raises(NotInitialized):
        pl.mint(ADMIN, ALICE, 1)
    assert pl.balance(ALICE) == 0


def test_initialize_rejects_bad_metadata(make_ledger) -> None:
    pl = make_ledger(initialize=False)
    with pytest.raises(InvalidAmount):
        pl.initialize(ADMIN, "Pay", "PAY", 19)
    with pytest.raises(InvalidArgument):
        pl.initialize(ADMIN, "", "PAY", 7)
    with pytest.raises(InvalidArgument):
        pl.initialize(ADMIN, "Pay", "X" * 17, 7)
    # nothing stuck: a valid initialize still works
    pl.initialize(ADMIN, "Pay", "PAY", 18)
    assert pl.decimals() == 18


def test_mint_requires_admin(ledger, auth) -> None:
    with pytest.raises(Unauthorized):
        ledger.mint(ALICE, ALICE, 10)
    with auth.only(ALICE):
        with pytest.raises(Unauthorized):
            ledger.mint(ADMIN, ALICE, 10)
    assert ledger.total_supply() == 0


def test_mint_and_transfer(funded) -> None:
    funded.transfer(ALICE, BOB, 250)
    assert funded.balance(ALICE) == 750
    assert funded.balance(BOB) == 750
    assert funded.total_supply() == 1_500


def test_transfer_requires_sender_auth(funded, auth) -> None:
    with auth.only(BOB):
        with pytest.raises(Unauthorized):
            funded.transfer(ALICE, BOB, 1)
    assert auth.checked[-1] == ALICE
    assert funded.balance(ALICE) == 1_000


def test_authorizer_keeps_recent_checks_only() -> None:
    auth = MockAuthorizer(allow_all=True, history=3)
    for addr in (ALICE, BOB, CAROL, ADMIN):
        assert auth.authorized(addr)
    assert list(auth.checked) == [BOB, CAROL, ADMIN]
    auth.clear_checks()
    assert not auth.checked


def test_transfer_insufficient_balance_is_atomic(funded) -> None:
    count = funded.payment_count()
    with pytest.raises(InsufficientBalance) as ei:
        funded.transfer(ALICE, BOB, 1_001)
    assert ei.value.data == {"address": ALICE, "balance": 1_000, "needed": 1_001}
    assert funded.balance(ALICE) == 1_000
    assert funded.balance(BOB) == 500
    assert funded.payment_count() == count


def test_negative_and_non_integer_amounts(funded) -> None:
    with pytest.raises(InvalidAmount):
        funded.transfer(ALICE, BOB, -1)
    with pytest.raises(InvalidAmount):
        funded.transfer(ALICE, BOB, 1.5)
    with pytest.raises(InvalidAmount):
        funded.transfer(ALICE, BOB, True)


def test_zero_transfer_is_recorded(funded) -> None:
    before = funded.payment_count()
    funded.transfer(ALICE, BOB, 0)
    assert funded.payment_count() == before + 1
    rec = funded.payment_record(before + 1)
    assert rec.amount == 0
    assert rec.kind is PaymentKind.TRANSFER


def test_mint_overflow(make_ledger) -> None:
    from payledger.config import LedgerConfig

    pl = make_ledger(config=LedgerConfig(amount_bits=63))
    top = (1 << 63) - 1
    pl.mint(ADMIN, ALICE, top)
    with pytest.raises(Overflow):
        pl.mint(ADMIN, BOB, 1)
    with pytest.raises(Overflow):
        pl.mint(ADMIN, BOB, top + 1)
    assert pl.total_supply() == top
    assert pl.balance(BOB) == 0


def test_burn(funded) -> None:
    funded.burn(ALICE, 400)
    assert funded.balance(ALICE) == 600
    assert funded.total_supply() == 1_100
    with pytest.raises(InsufficientBalance):
        funded.burn(BOB, 501)


# --------------------------------------------------------------------------
# Allowances
# --------------------------------------------------------------------------


def test_approve_and_transfer_from(funded) -> None:
    funded.approve(ALICE, BOB, 300, funded.sequence + 10)
    assert funded.allowance(ALICE, BOB) == 300

    funded.transfer_from(BOB, ALICE, CAROL, 120)
    assert funded.allowance(ALICE, BOB) == 180
    assert funded.balance(ALICE) == 880
    assert funded.balance(CAROL) == 120

    with pytest.raises(InsufficientAllowance):
        funded.transfer_from(BOB, ALICE, CAROL, 181)
    assert funded.allowance(ALICE, BOB) == 180


def test_allowance_expires_after_its_sequence(funded) -> None:
    exp = funded.sequence + 5
    funded.approve(ALICE, BOB, 50, exp)
    funded.set_sequence(exp)
    assert funded.allowance(ALICE, BOB) == 50
    funded.advance(1)
    assert funded.allowance(ALICE, BOB) == 0
    with pytest.raises(InsufficientAllowance):
        funded.transfer_from(BOB, ALICE, CAROL, 1)


def test_approve_in_the_past_rejected_unless_zero(funded) -> None:
    with pytest.raises(InvalidExpiration):
        funded.approve(ALICE, BOB, 10, funded.sequence - 1)
    funded.approve(ALICE, BOB, 10, funded.sequence)
    # zero amount clears the allowance whatever the expiration
    funded.approve(ALICE, BOB, 0, 0)
    assert funded.allowance(ALICE, BOB) == 0


def test_burn_from(funded) -> None:
    funded.approve(ALICE, BOB, 100, funded.sequence + 1)
    funded.burn_from(BOB, ALICE, 60)
    assert funded.balance(ALICE) == 940
    assert funded.allowance(ALICE, BOB) == 40
    assert funded.total_supply() == 1_440


def test_transfer_from_checks_owner_freeze(funded) -> None:
    funded.approve(ALICE, BOB, 100, funded.sequence + 1)
    funded.freeze(ADMIN, ALICE)
    with pytest.raises(Frozen):
        funded.transfer_from(BOB, ALICE, CAROL, 10)
    # allowance untouched by the aborted call
    assert funded.allowance(ALICE, BOB) == 100


# --------------------------------------------------------------------------
# Clawback
# --------------------------------------------------------------------------


def test_clawback_ignores_freeze_and_burns(funded) -> None:
    funded.freeze(ADMIN, BOB)
    funded.clawback(ADMIN, BOB, 200)
    assert funded.balance(BOB) == 300
    assert funded.total_supply() == 1_300
    rec = funded.payment_record(funded.payment_count())
    assert (rec.sender, rec.recipient, rec.kind) == (BOB, "ledger", PaymentKind.CLAWBACK)


def test_clawback_is_admin_only(funded) -> None:
    with pytest.raises(Unauthorized):
        funded.clawback(ALICE, BOB, 1)
