import random

import pytest

from wfsim.core.heap import MemSimResult, WorstFitAllocator, simulate
from wfsim.core.partition import FREE_TAG
from wfsim.sim.workload_generators import generate_workload


def layout(alloc):
    """[(address, end, tag)] para comparar contra los escenarios a mano."""
    return [(a, a + s, t) for a, s, t in alloc.partitions()]


def heap_at_one_free_page(page_size=100):
    alloc = WorstFitAllocator(page_size)
    alloc.allocate(1, page_size)
    alloc.deallocate(1)
    return alloc


def test_starts_with_empty_sentinel():
    alloc = WorstFitAllocator(100)
    assert alloc.partitions() == [(0, 0, FREE_TAG)]
    assert alloc.stats() == MemSimResult(0, 0, 0)
    alloc.check_invariants()


def test_first_allocation_grows_one_page():
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 50)
    assert layout(alloc) == [(0, 50, 1), (50, 100, FREE_TAG)]
    assert alloc.stats() == MemSimResult(50, 50, 1)
    alloc.check_invariants()


def test_split_takes_the_only_free_partition():
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 50)
    alloc.allocate(2, 10)
    assert layout(alloc) == [(0, 50, 1), (50, 60, 2), (60, 100, FREE_TAG)]
    assert alloc.stats().n_pages_requested == 1
    alloc.check_invariants()


def test_free_merges_with_both_neighbours():
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 50)
    alloc.allocate(2, 10)

    alloc.deallocate(1)
    assert layout(alloc) == [(0, 50, FREE_TAG), (50, 60, 2), (60, 100, FREE_TAG)]
    alloc.check_invariants()

    alloc.deallocate(2)
    assert layout(alloc) == [(0, 100, FREE_TAG)]
    assert alloc.stats() == MemSimResult(0, 100, 1)
    alloc.check_invariants()


def test_growth_reuses_free_tail_bytes():
    alloc = heap_at_one_free_page(100)
    assert layout(alloc) == [(0, 100, FREE_TAG)]
    before = alloc.stats().n_pages_requested

    alloc.allocate(3, 150)

    assert layout(alloc) == [(0, 150, 3), (150, 200, FREE_TAG)]
    assert alloc.stats().n_pages_requested == before + 1
    alloc.check_invariants()


def test_same_tag_partitions_freed_together():
    alloc = WorstFitAllocator(100)
    alloc.allocate(5, 20)
    alloc.allocate(7, 10)
    alloc.allocate(5, 30)
    assert len(alloc.tag_partitions(5)) == 2

    alloc.deallocate(5)

    assert layout(alloc) == [(0, 20, FREE_TAG), (20, 30, 7), (30, 100, FREE_TAG)]
    assert 5 not in alloc.live_tags()
    assert alloc.stats() == MemSimResult(30, 70, 1)
    alloc.check_invariants()


def test_adjacent_same_tag_partitions_collapse_into_one():
    alloc = WorstFitAllocator(100)
    alloc.allocate(5, 20)
    alloc.allocate(5, 30)
    alloc.deallocate(5)
    assert layout(alloc) == [(0, 100, FREE_TAG)]
    alloc.check_invariants()


def test_worst_fit_prefers_largest_then_lowest_address():
    alloc = WorstFitAllocator(10)
    for tag, size in [(1, 30), (2, 5), (3, 30), (4, 5), (5, 20)]:
        alloc.allocate(tag, size)
    # heap de 90 B: [1:0-30][2:30-35][3:35-65][4:65-70][5:70-90]
    alloc.deallocate(1)
    alloc.deallocate(3)
    assert alloc.stats()[:2] == (0, 30)

    alloc.allocate(6, 10)
    assert layout(alloc)[0] == (0, 10, 6)
    # ahora la mayor es [35, 65)
    assert alloc.stats()[:2] == (35, 30)
    alloc.check_invariants()


def test_exact_fit_leaves_zero_size_free_partition():
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 60)
    alloc.allocate(2, 40)
    assert layout(alloc) == [(0, 60, 1), (60, 100, 2), (100, 100, FREE_TAG)]
    assert alloc.stats() == MemSimResult(100, 0, 1)
    alloc.check_invariants()


def test_growth_rounds_up_to_whole_pages():
    alloc = WorstFitAllocator(64)
    alloc.allocate(1, 200)
    assert alloc.stats() == MemSimResult(200, 56, 4)
    assert alloc.total_size == 256
    alloc.check_invariants()


def test_unknown_tag_deallocate_is_noop():
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 10)
    before = alloc.partitions()
    alloc.deallocate(42)
    assert alloc.partitions() == before
    alloc.check_invariants()


def test_stats_is_idempotent():
    alloc = WorstFitAllocator(32)
    alloc.allocate(1, 40)
    alloc.allocate(2, 7)
    alloc.deallocate(1)
    assert alloc.stats() == alloc.stats()


def test_round_trip_without_growth_restores_layout():
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 30)
    alloc.allocate(2, 20)
    alloc.deallocate(1)
    before = alloc.partitions()
    pages = alloc.stats().n_pages_requested

    alloc.allocate(9, 25)
    assert alloc.stats().n_pages_requested == pages
    alloc.deallocate(9)

    assert alloc.partitions() == before
    alloc.check_invariants()


def test_round_trip_with_growth_keeps_free_bytes_at_tail():
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 70)
    tail_address = alloc.partitions()[-1][0]
    free_before = alloc.free_bytes()

    alloc.allocate(9, 250)
    grown = alloc.total_size - 100
    alloc.deallocate(9)

    assert alloc.partitions()[-1] == (tail_address, free_before + grown, FREE_TAG)
    alloc.check_invariants()


@pytest.mark.parametrize("page_size", [1, 7, 64, 4096])
@pytest.mark.parametrize("seed", [0, 1, 2])
def test_invariants_hold_over_random_workloads(page_size, seed):
    cfg = {
        "n_requests": 400,
        "small_size_range": (1, 100),
        "large_size_range": (200, 5000),
        "large_ratio": 0.2,
        "free_rate": 0.4,
        "tag_reuse_rate": 0.1,
    }
    alloc = WorstFitAllocator(page_size)
    last_size, last_pages = 0, 0
    for req in generate_workload(cfg, seed=seed):
        if req.is_free:
            alloc.deallocate(req.target_tag)
        else:
            alloc.allocate(req.tag, req.size)
        alloc.check_invariants()
        assert alloc.total_size >= last_size
        assert alloc.pages_requested >= last_pages
        last_size, last_pages = alloc.total_size, alloc.pages_requested


def test_largest_free_matches_linear_scan():
    rng = random.Random(7)
    alloc = WorstFitAllocator(50)
    live = []
    for tag in range(1, 300):
        if live and rng.random() < 0.4:
            alloc.deallocate(live.pop(rng.randrange(len(live))))
        else:
            alloc.allocate(tag, rng.randint(1, 120))
            live.append(tag)
    free = [(a, s) for a, s, t in alloc.partitions() if t == FREE_TAG]
    address, size = min(free, key=lambda p: (-p[1], p[0]))
    assert alloc.stats()[:2] == (address, size)


def test_simulate_dispatches_by_tag_sign():
    requests = [(1, 50), (2, 10), (-1, 0), (-2, 0), (3, 150)]
    assert simulate(100, requests) == MemSimResult(150, 50, 2)


@pytest.mark.parametrize("page_size", [0, -1, 1_000_001])
def test_rejects_page_size_out_of_range(page_size):
    with pytest.raises(ValueError):
        WorstFitAllocator(page_size)


def test_rejects_non_int_page_size():
    with pytest.raises(TypeError):
        WorstFitAllocator(4.5)


@pytest.mark.parametrize("tag,size", [(1, 0), (1, -5), (-1, 10)])
def test_allocate_rejects_bad_input_without_touching_state(tag, size):
    alloc = WorstFitAllocator(100)
    alloc.allocate(1, 10)
    before = alloc.partitions()
    with pytest.raises(ValueError):
        alloc.allocate(tag, size)
    assert alloc.partitions() == before
    alloc.check_invariants()


def test_events_report_split_grow_and_merges():
    events = []
    alloc = WorstFitAllocator(100, on_event=lambda kind, **payload: events.append((kind, payload)))
    alloc.allocate(1, 50)
    alloc.allocate(2, 10)
    alloc.deallocate(2)

    kinds = [k for k, _ in events]
    assert kinds == ["allocate:grow", "allocate:split", "deallocate"]
    assert events[0][1]["pages"] == 1
    assert events[1][1]["address"] == 50
    assert events[2][1] == {"tag": 2, "released": 1, "merges": 1}


def test_event_callback_without_payload_support():
    kinds = []
    alloc = WorstFitAllocator(100, on_event=lambda kind: kinds.append(kind))
    alloc.allocate(1, 10)
    assert kinds == ["allocate:grow"]
