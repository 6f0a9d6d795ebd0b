from __future__ import annotations

import pytest

from callvm.state.journal import Journal
from callvm.state.storage import StorageView
from callvm.types.hexutil import to_address

A = to_address(0x01)
B = to_address(0x02)


# ---------------------------------------------------------------------------
# StorageView
# ---------------------------------------------------------------------------

def test_storage_missing_slot_reads_zero():
    sv = StorageView()
    assert sv.get(A, 123) == 0
    assert not sv.has(A, 123)


def test_storage_zero_value_deletes_slot():
    sv = StorageView()
    sv.set(A, 1, 5)
    assert sv.has(A, 1)
    sv.set(A, 1, 0)
    assert not sv.has(A, 1)
    assert sv.accounts() == []


def test_storage_values_wrap_to_256_bits():
    sv = StorageView()
    sv.set(A, 1, (1 << 256) + 7)
    assert sv.get(A, 1) == 7


def test_storage_rejects_negative_and_non_int():
    sv = StorageView()
    with pytest.raises(ValueError):
        sv.set(A, -1, 1)
    with pytest.raises(TypeError):
        sv.set(A, 1, "x")  # type: ignore[arg-type]


def test_storage_items_sorted_and_export():
    sv = StorageView()
    sv.set(A, 9, 1)
    sv.set(A, 2, 3)
    assert list(sv.items(A)) == [(2, 3), (9, 1)]
    assert sv.export_account_hex(A) == {"0x2": "0x3", "0x9": "0x1"}
    sv.clear_account(A)
    assert len(sv) == 0


def test_storage_uses_external_backend():
    backend = {}
    sv = StorageView(backend=backend)
    sv.set(A, 1, 2)
    assert backend == {A: {1: 2}}


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------

def test_set_then_get_within_uncommitted_scope():
    j = Journal()
    tok = j.checkpoint()
    j.set(A, 1, 10)
    assert j.get(A, 1) == 10
    assert j.base.get(A, 1) == 0
    j.rollback(tok)
    assert j.get(A, 1) == 0


def test_rollback_restores_pre_set_value():
    base = StorageView()
    base.set(A, 1, 3)
    j = Journal(base)
    tok = j.checkpoint()
    j.set(A, 1, 4)
    j.set(A, 2, 9)
    j.rollback(tok)
    assert j.get(A, 1) == 3
    assert j.get(A, 2) == 0
    assert j.pending_writes() == 0


def test_nested_rollback_keeps_outer_writes():
    j = Journal()
    outer = j.checkpoint()
    j.set(A, 1, 1)
    inner = j.checkpoint()
    j.set(B, 1, 2)
    j.set(A, 1, 99)
    j.rollback(inner)
    assert j.get(A, 1) == 1
    assert j.get(B, 1) == 0
    assert j.depth() == 1
    j.release(outer)
    j.commit()
    assert j.base.get(A, 1) == 1


def test_release_folds_into_enclosing_scope():
    j = Journal()
    outer = j.checkpoint()
    inner = j.checkpoint()
    j.set(B, 7, 70)
    j.release(inner)
    assert j.get(B, 7) == 70
    # Rolling back the enclosing scope undoes the released writes too.
    j.rollback(outer)
    assert j.get(B, 7) == 0


def test_rollback_closes_later_checkpoints():
    j = Journal()
    first = j.checkpoint()
    second = j.checkpoint()
    j.rollback(first)
    with pytest.raises(ValueError):
        j.rollback(second)
    assert j.depth() == 0


def test_commit_applies_everything_and_closes_checkpoints():
    j = Journal()
    j.checkpoint()
    j.set(A, 1, 5)
    j.checkpoint()
    j.set(A, 1, 6)
    j.set(A, 2, 0)
    j.commit()
    assert j.depth() == 0
    assert j.base.get(A, 1) == 6
    assert not j.base.has(A, 2)


def test_staged_zero_shadows_base_value():
    base = StorageView()
    base.set(A, 1, 8)
    j = Journal(base)
    j.checkpoint()
    j.set(A, 1, 0)
    assert j.get(A, 1) == 0
    j.commit()
    assert not base.has(A, 1)


def test_unknown_token_raises():
    j = Journal()
    with pytest.raises(ValueError):
        j.rollback(42)
    with pytest.raises(ValueError):
        j.release(0)  # the root layer is not a checkpoint


def test_discard_drops_all_pending_writes():
    j = Journal()
    j.set(A, 1, 1)
    j.checkpoint()
    j.set(A, 2, 2)
    j.discard()
    assert j.pending_writes() == 0
    assert j.get(A, 1) == 0
