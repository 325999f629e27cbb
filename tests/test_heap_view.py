import pytest

pytest.importorskip("customtkinter")

from wfsim.ui.heap_view import scale_partitions


def test_scale_partitions_covers_cells_in_order():
    runs = scale_partitions([(0, 150, 3), (150, 50, -1)], 4)
    assert runs == [(0, 2, False), (3, 3, True)]


def test_scale_partitions_skips_empty_heap_and_zero_size():
    assert scale_partitions([(0, 0, -1)], 10) == []
    assert scale_partitions([(0, 100, 1), (100, 0, -1)], 10) == [(0, 9, False)]
