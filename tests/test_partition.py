import pytest

from wfsim.core.free_index import FreeIndex
from wfsim.core.partition import FREE_TAG, PartitionArena, StalePartitionError


def addresses(arena):
    return [p.address for p in arena]


def test_append_and_insert_before_keep_order():
    arena = PartitionArena()
    a = arena.append(FREE_TAG, 10, 0)
    c = arena.append(3, 10, 20)
    arena.insert_before(c, 2, 10, 10)
    arena.insert_before(a, 9, 0, 0)
    assert [p.tag for p in arena] == [9, FREE_TAG, 2, 3]
    assert len(arena) == 4
    assert arena.at(arena.head).tag == 9
    assert arena.at(arena.tail).tag == 3


def test_remove_relinks_neighbours():
    arena = PartitionArena()
    a = arena.append(1, 10, 0)
    b = arena.append(2, 10, 10)
    c = arena.append(3, 10, 20)
    arena.remove(b)
    assert addresses(arena) == [0, 20]
    assert arena.at(a).next == c
    assert arena.at(c).prev == a
    arena.remove(c)
    assert arena.tail == a
    arena.remove(a)
    assert arena.head is None and arena.tail is None
    assert list(arena) == []


def test_stale_reference_detected_after_slot_reuse():
    arena = PartitionArena()
    a = arena.append(1, 10, 0)
    old = arena.ref(a)
    assert arena.get(old).tag == 1

    arena.remove(a)
    with pytest.raises(StalePartitionError):
        arena.get(old)

    reused = arena.append(2, 5, 0)
    assert reused == a
    with pytest.raises(StalePartitionError):
        arena.get(old)
    assert arena.get(arena.ref(reused)).tag == 2


def test_free_index_orders_by_size_then_address():
    idx = FreeIndex()
    idx.add(0, 10, 100)
    idx.add(1, 30, 50)
    idx.add(2, 30, 10)
    idx.add(3, 0, 0)
    assert list(idx) == [2, 1, 0, 3]
    assert idx.first() == 2
    assert idx.largest_size() == 30

    idx.discard(2)
    assert idx.first() == 1
    assert 2 not in idx
    assert len(idx) == 3


def test_free_index_discard_uses_insertion_key():
    idx = FreeIndex()
    idx.add(7, 10, 0)
    idx.discard(7)
    idx.discard(7)
    assert idx.first() is None
    assert idx.largest_size() == 0


def test_free_index_rejects_duplicate_slot():
    idx = FreeIndex()
    idx.add(1, 10, 0)
    with pytest.raises(ValueError):
        idx.add(1, 20, 0)
