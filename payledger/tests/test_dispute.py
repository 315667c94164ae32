from __future__ import annotations

import pytest

from payledger.contract.dispute import DisputeStatus, PaymentRef, PaymentRefKind
from payledger.contract.escrow import Condition, EscrowStatus
from payledger.contract.history import PaymentKind
from payledger.contract.splitter import SplitStatus
from payledger.errors import (AlreadyDistributed, AlreadyFinalized, Disputed, InvalidAmount, InvalidArgument,
                              InvalidParty, NotOpen, Unauthorized)

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"
JUDGE = "judge"


@pytest.fixture
def escrowed(funded):
    idx = funded.create_escrow(ALICE, BOB, 200, Condition.deadline(10_000))
    return funded, idx


def test_open_blocks_release_and_refund(escrowed) -> None:
    pl, eid = escrowed
    did = pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "goods not delivered", 200)
    assert pl.get_escrow(eid).disputed
    pl.set_sequence(10_000)
    with pytest.raises(Disputed):
        pl.release_escrow(BOB, eid)
    with pytest.raises(Disputed):
        pl.refund_escrow(ALICE, eid)
    d = pl.get_dispute(did)
    assert d.status is DisputeStatus.OPEN
    assert d.payment == PaymentRef(PaymentRefKind.ESCROW, eid)
    assert d.opened_at == 100


def test_resolve_for_initiator_releases_escrow(escrowed) -> None:
    pl, eid = escrowed
    did = pl.open_dispute(BOB, {"kind": "escrow", "index": eid}, ALICE, JUDGE, "late", 200)
    d = pl.resolve_dispute(JUDGE, did, True)
    assert d.status is DisputeStatus.RESOLVED_INITIATOR
    assert d.resolved_at == pl.sequence
    assert pl.balance(BOB) == 700
    esc = pl.get_escrow(eid)
    assert esc.status is EscrowStatus.RELEASED
    assert not esc.disputed
    rec = pl.payment_record(pl.payment_count())
    assert (rec.recipient, rec.kind) == (BOB, PaymentKind.DISPUTE_PAYOUT)


def test_resolve_for_respondent_refunds_escrow(escrowed) -> None:
    pl, eid = escrowed
    did = pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "late", 200)
    pl.resolve_dispute(JUDGE, did, False)
    assert pl.balance(ALICE) == 1_000
    assert pl.get_escrow(eid).status is EscrowStatus.REFUNDED
    assert pl.get_dispute(did).status is DisputeStatus.RESOLVED_RESPONDENT


def test_resolves_exactly_once(escrowed) -> None:
    pl, eid = escrowed
    did = pl.open_dispute(ALICE, ("escrow", eid), BOB, JUDGE, "changed mind", 200)
    pl.resolve_dispute(JUDGE, did, True)
    with pytest.raises(NotOpen):
        pl.resolve_dispute(JUDGE, did, False)
    assert pl.balance(ALICE) == 1_000


def test_only_resolver_or_admin(escrowed) -> None:
    pl, eid = escrowed
    did = pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "late", 200)
    with pytest.raises(Unauthorized):
        pl.resolve_dispute(BOB, did, True)
    with pytest.raises(Unauthorized):
        pl.resolve_dispute(CAROL, did, True)
    pl.resolve_dispute(ADMIN, did, False)
    assert pl.get_dispute(did).status is DisputeStatus.RESOLVED_RESPONDENT


def test_admin_party_cannot_resolve_own_dispute(ledger) -> None:
    ledger.mint(ADMIN, ADMIN, 500)
    eid = ledger.create_escrow(ADMIN, BOB, 200, Condition.deadline(10_000))
    did = ledger.open_dispute(ADMIN, ("escrow", eid), BOB, JUDGE, "never shipped", 200)
    with pytest.raises(InvalidParty):
        ledger.resolve_dispute(ADMIN, did, True)
    assert ledger.balance(ADMIN) == 300
    assert ledger.get_escrow(eid).status is EscrowStatus.OPEN
    assert ledger.get_dispute(did).status is DisputeStatus.OPEN

    ledger.resolve_dispute(JUDGE, did, False)
    assert ledger.balance(BOB) == 200
    assert ledger.get_escrow(eid).status is EscrowStatus.RELEASED


def test_decision_must_be_bool(escrowed) -> None:
    pl, eid = escrowed
    did = pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "late", 200)
    with pytest.raises(InvalidArgument):
        pl.resolve_dispute(JUDGE, did, 1)


def test_open_validation(escrowed) -> None:
    pl, eid = escrowed
    with pytest.raises(InvalidParty):
        pl.open_dispute(BOB, ("escrow", eid), ALICE, ALICE, "late", 200)
    with pytest.raises(InvalidParty):
        pl.open_dispute(CAROL, ("escrow", eid), ALICE, JUDGE, "late", 200)
    with pytest.raises(InvalidAmount):
        pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "late", 150)
    with pytest.raises(InvalidArgument):
        pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "", 200)
    with pytest.raises(InvalidArgument):
        pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "x" * 65, 200)
    with pytest.raises(InvalidArgument):
        pl.open_dispute(BOB, ("loan", eid), ALICE, JUDGE, "late", 200)
    with pytest.raises(InvalidArgument):
        pl.open_dispute(BOB, ("escrow", 0), ALICE, JUDGE, "late", 200)
    assert not pl.get_escrow(eid).disputed


def test_second_dispute_on_same_payment(escrowed) -> None:
    pl, eid = escrowed
    pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "late", 200)
    with pytest.raises(Disputed):
        pl.open_dispute(ALICE, ("escrow", eid), BOB, JUDGE, "also late", 200)


def test_cannot_dispute_settled_escrow(escrowed) -> None:
    pl, eid = escrowed
    pl.refund_escrow(ALICE, eid)
    with pytest.raises(AlreadyFinalized):
        pl.open_dispute(BOB, ("escrow", eid), ALICE, JUDGE, "late", 200)


# --------------------------------------------------------------------------
# Splits
# --------------------------------------------------------------------------


def test_split_dispute_pays_whole_amount(funded) -> None:
    sid = funded.create_split(ALICE, [(BOB, 5_000), (CAROL, 5_000)], 100)
    did = funded.open_dispute(CAROL, ("split", sid), ALICE, JUDGE, "wrong share", 100)
    with pytest.raises(Disputed):
        funded.distribute(ALICE, sid)

    funded.resolve_dispute(JUDGE, did, True)
    assert funded.balance(CAROL) == 100
    assert funded.balance(BOB) == 500
    sp = funded.get_split(sid)
    assert sp.status is SplitStatus.DISTRIBUTED
    assert not sp.disputed
    with pytest.raises(AlreadyDistributed):
        funded.distribute(ALICE, sid)


def test_split_dispute_parties(funded) -> None:
    sid = funded.create_split(ALICE, [(BOB, 5_000), (CAROL, 5_000)], 100)
    with pytest.raises(InvalidParty):
        funded.open_dispute(BOB, ("split", sid), CAROL, JUDGE, "share", 100)
    funded.distribute(ALICE, sid)
    with pytest.raises(AlreadyDistributed):
        funded.open_dispute(BOB, ("split", sid), ALICE, JUDGE, "share", 100)
