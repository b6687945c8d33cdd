import numpy as np
import pytest

from vector_extraction.features.pattern_mapping import (
    ALL_SAME_BIN,
    N_BINS,
    NON_UNIFORM_BIN,
    build_uniform_pattern_table,
)


def _runs():
    for i in range(8):
        for j in range(1, 8):
            s = ((1 << j) - 1) << i
            yield i, j, (s | (s >> 8)) & 0xFF


def test_table_has_58_distinct_bins_in_range():
    table = build_uniform_pattern_table()
    assert table.shape == (256,)
    assert table.dtype == np.uint8
    assert len(np.unique(table)) == N_BINS
    assert table.min() == 0
    assert table.max() == 57


def test_all_same_codes_map_to_bin_56():
    table = build_uniform_pattern_table()
    assert table[0x00] == ALL_SAME_BIN == 56
    assert table[0xFF] == ALL_SAME_BIN


def test_every_rotation_and_run_length_gets_its_own_bin():
    table = build_uniform_pattern_table()
    codes = set()
    for i, j, code in _runs():
        assert table[code] == i * 7 + (j - 1)
        codes.add(code)
    assert len(codes) == 56


def test_runs_wrap_across_bit_seven():
    table = build_uniform_pattern_table()
    # bits 7 and 0 set: a run of two starting at bit 7
    assert table[0b10000001] == 7 * 7 + 1
    # bits 6, 7, 0, 1 set: a run of four starting at bit 6
    assert table[0b11000011] == 6 * 7 + 3


@pytest.mark.parametrize("code", [0b00000101, 0b01010101, 0b10100101, 0b00110011])
def test_multiple_runs_are_non_uniform(code):
    assert build_uniform_pattern_table()[code] == NON_UNIFORM_BIN


def test_non_uniform_count():
    table = build_uniform_pattern_table()
    assert int((table == NON_UNIFORM_BIN).sum()) == 256 - 58


def test_table_is_shared_and_read_only():
    table = build_uniform_pattern_table()
    assert build_uniform_pattern_table() is table
    with pytest.raises(ValueError):
        table[3] = 0
