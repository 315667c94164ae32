from __future__ import annotations

import pytest

from payledger.config import DAY_IN_LEDGERS, LedgerConfig
from payledger.contract.escrow import Condition, EscrowStatus
from payledger.errors import AlreadyInitialized, InvalidArgument, Unauthorized
from payledger.state import codec
from payledger.state.journal import Journal
from payledger.state.keys import DataKey, KeyKind, Tier
from payledger.state.storage import Entry, LeasePolicy, TieredStorage

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"

CFG = LedgerConfig()


def mk_journal(cfg: LedgerConfig = CFG):
    st = TieredStorage()
    return st, Journal(st, LeasePolicy(cfg))


# --------------------------------------------------------------------------
# Keys
# --------------------------------------------------------------------------


def test_key_tiers() -> None:
    assert DataKey.admin().tier is Tier.CONFIG
    assert DataKey.metadata().tier is Tier.CONFIG
    assert DataKey.total_supply().tier is Tier.CONFIG
    assert DataKey.balance(ALICE).tier is Tier.RECORD
    assert DataKey.allowance(ALICE, ADMIN).tier is Tier.RECORD
    assert DataKey.record(KeyKind.ESCROW, 1).tier is Tier.RECORD
    assert DataKey.counter(KeyKind.DISPUTE).tier is Tier.RECORD


def test_key_encoding_is_canonical_and_decodable() -> None:
    k = DataKey.allowance(ALICE, "bob")
    assert k.encode() == DataKey(KeyKind.ALLOWANCE, (ALICE, "bob")).encode()
    assert DataKey.decode(k.encode()) == k
    assert k.encode() != DataKey.allowance("bob", ALICE).encode()


def test_key_shape_is_enforced() -> None:
    with pytest.raises(ValueError):
        DataKey(KeyKind.BALANCE)
    with pytest.raises(TypeError):
        DataKey(KeyKind.ESCROW, ("1",))
    with pytest.raises(TypeError):
        DataKey(KeyKind.ESCROW, (True,))
    with pytest.raises(ValueError):
        DataKey.record(KeyKind.BALANCE, 1)


def test_counter_pairs() -> None:
    assert DataKey.counter(KeyKind.ESCROW).kind is KeyKind.ESCROW_COUNT
    assert DataKey.counter(KeyKind.PAYMENT_RECORD).kind is KeyKind.RECORD_COUNT


# --------------------------------------------------------------------------
# Lease policy
# --------------------------------------------------------------------------


def test_lease_constants() -> None:
    assert CFG.config_bump_amount == 30 * DAY_IN_LEDGERS
    assert CFG.config_threshold == 29 * DAY_IN_LEDGERS
    assert CFG.record_bump_amount == 7 * DAY_IN_LEDGERS
    assert CFG.record_threshold == 6 * DAY_IN_LEDGERS
    assert CFG.config_bump_amount > CFG.record_bump_amount


def test_policy_renews_only_under_threshold() -> None:
    pol = LeasePolicy(CFG)
    e = Entry(value=b"x", tier=Tier.RECORD, live_until=CFG.record_bump_amount)
    # exactly at threshold: kept
    assert pol.renew(e, DAY_IN_LEDGERS) is e
    # one tick later: renewed to now + bump
    r = pol.renew(e, DAY_IN_LEDGERS + 1)
    assert r.live_until == DAY_IN_LEDGERS + 1 + CFG.record_bump_amount
    assert r.value == b"x"


# --------------------------------------------------------------------------
# Journal-level lease handling
# --------------------------------------------------------------------------


def test_create_grants_full_lease_per_tier() -> None:
    st, j = mk_journal()
    j.begin()
    j.set(DataKey.admin(), codec.dumps(ADMIN), now=50)
    j.set(DataKey.balance(ALICE), codec.dumps(1), now=50)
    j.commit()
    assert st.lease(DataKey.admin()) == 50 + CFG.config_bump_amount
    assert st.lease(DataKey.balance(ALICE)) == 50 + CFG.record_bump_amount


def test_read_renews_lease_and_commit_persists_it() -> None:
    st, j = mk_journal()
    k = DataKey.balance(ALICE)
    j.begin()
    j.set(k, codec.dumps(7), now=0)
    j.commit()

    later = DAY_IN_LEDGERS + 5
    j.begin()
    assert codec.loads(j.get(k, now=later)) == 7
    # staged, not yet in base
    assert st.lease(k) == CFG.record_bump_amount
    j.commit()
    assert st.lease(k) == later + CFG.record_bump_amount


def test_reverted_read_does_not_renew() -> None:
    st, j = mk_journal()
    k = DataKey.balance(ALICE)
    j.begin()
    j.set(k, codec.dumps(7), now=0)
    j.commit()

    j.begin()
    j.has(k, now=DAY_IN_LEDGERS * 2)
    j.revert()
    assert st.lease(k) == CFG.record_bump_amount


def test_reads_outside_checkpoint_never_renew() -> None:
    st, j = mk_journal()
    k = DataKey.admin()
    j.begin()
    j.set(k, codec.dumps(ADMIN), now=0)
    j.commit()
    assert j.get(k, now=CFG.config_bump_amount - 1) is not None
    assert j.lease(k) == CFG.config_bump_amount


def test_overwrite_keeps_fresh_lease() -> None:
    st, j = mk_journal()
    k = DataKey.balance(ALICE)
    j.begin()
    j.set(k, codec.dumps(1), now=0)
    j.set(k, codec.dumps(2), now=10)
    j.commit()
    # lease was still above threshold at tick 10
    assert st.lease(k) == CFG.record_bump_amount
    assert codec.loads(st.get_entry(k.encode()).value) == 2


def test_write_outside_checkpoint_is_rejected() -> None:
    _, j = mk_journal()
    with pytest.raises(RuntimeError):
        j.set(DataKey.admin(), b"x", now=0)
    with pytest.raises(RuntimeError):
        j.remove(DataKey.admin())


def test_value_and_key_caps() -> None:
    cfg = LedgerConfig(max_value_bytes=1_024, max_key_bytes=64)
    _, j = mk_journal(cfg)
    j.begin()
    with pytest.raises(InvalidArgument):
        j.set(DataKey.balance(ALICE), b"\x00" * 2_000, now=0)
    with pytest.raises(InvalidArgument):
        j.set(DataKey.allowance("a" * 60, "b" * 60), b"\x01", now=0)


# --------------------------------------------------------------------------
# Host maintenance through the facade
# --------------------------------------------------------------------------


def test_facade_reads_bump_record_and_config_tiers(make_ledger) -> None:
    pl = make_ledger(sequence=100)
    pl.mint(ADMIN, ALICE, 10)
    bal_key = DataKey.balance(ALICE)
    assert pl.lease(bal_key) == 100 + CFG.record_bump_amount
    assert pl.lease(DataKey.admin()) == 100 + CFG.config_bump_amount

    pl.set_sequence(100 + DAY_IN_LEDGERS)
    assert pl.balance(ALICE) == 10
    assert pl.lease(bal_key) == 100 + CFG.record_bump_amount

    pl.advance(1)
    assert pl.balance(ALICE) == 10
    assert pl.lease(bal_key) == pl.sequence + CFG.record_bump_amount

    # admin is read by mint's guard and renewed on the same rule
    pl.mint(ADMIN, ALICE, 1)
    assert pl.lease(DataKey.admin()) == pl.sequence + CFG.config_bump_amount


def test_sweep_archives_record_tier_only() -> None:
    st, j = mk_journal()
    bal = DataKey.balance(ALICE)
    j.begin()
    j.set(DataKey.admin(), codec.dumps(ADMIN), now=0)
    j.set(bal, codec.dumps(5), now=0)
    j.commit()

    later = CFG.config_bump_amount + 1
    assert st.expired(later) == [bal]
    assert st.sweep(later) == 1
    assert st.archived() == [bal]
    assert st.total_keys() == 1
    assert not st.is_archived(DataKey.admin())

    # readable while archived; a read outside a checkpoint does not restore
    assert codec.loads(j.get(bal, now=later)) == 5
    assert st.is_archived(bal)

    j.begin()
    j.has(bal, now=later)
    j.revert()
    assert st.is_archived(bal)

    j.begin()
    assert codec.loads(j.get(bal, now=later)) == 5
    j.commit()
    assert st.total_archived() == 0
    assert st.lease(bal) == later + CFG.record_bump_amount


def test_removing_archived_entry_clears_it() -> None:
    st, j = mk_journal()
    bal = DataKey.balance(ALICE)
    j.begin()
    j.set(bal, codec.dumps(5), now=0)
    j.commit()
    st.sweep(CFG.record_bump_amount + 1)

    j.begin()
    j.remove(bal)
    j.commit()
    assert st.total_archived() == 0
    assert st.lease(bal) is None


def test_config_entries_survive_sweep(make_ledger) -> None:
    pl = make_ledger(sequence=0)
    pl.mint(ADMIN, ALICE, 10)

    pl.set_sequence(CFG.config_bump_amount + 1)
    expired = pl.expired()
    assert DataKey.balance(ALICE) in expired
    assert DataKey.admin() not in expired
    assert pl.sweep() == len(expired)

    for key in (DataKey.admin(), DataKey.metadata(), DataKey.total_supply()):
        assert not pl.storage.is_archived(key)
        assert pl.lease(key) is not None
    with pytest.raises(AlreadyInitialized):
        pl.initialize("mallory", "Evil", "EVL", 7)
    with pytest.raises(Unauthorized):
        pl.mint("mallory", "mallory", 10**6)
    assert pl.admin() == ADMIN
    assert pl.balance(ALICE) == 10
    assert pl.total_supply() == 10


def test_swept_escrow_is_restored_and_conserves_custody(make_ledger) -> None:
    pl = make_ledger(sequence=0)
    pl.mint(ADMIN, ALICE, 100)
    eid = pl.create_escrow(ALICE, BOB, 60, Condition.deadline(0))
    esc_key = DataKey.record(KeyKind.ESCROW, eid)

    pl.set_sequence(CFG.record_bump_amount + 1)
    assert pl.sweep() == pl.storage.total_archived()
    assert esc_key in pl.archived()
    assert DataKey.balance(pl.address) in pl.archived()

    # a failed invocation leaves the archive untouched
    with pytest.raises(Unauthorized):
        pl.refund_escrow(BOB, eid)
    assert pl.storage.is_archived(esc_key)

    pl.release_escrow(BOB, eid)
    assert not pl.storage.is_archived(esc_key)
    assert pl.lease(esc_key) == pl.sequence + CFG.record_bump_amount
    assert pl.get_escrow(eid).status is EscrowStatus.RELEASED
    assert pl.balances([ALICE, BOB, pl.address]) == {ALICE: 40, BOB: 60, pl.address: 0}
    assert pl.total_supply() == 100
