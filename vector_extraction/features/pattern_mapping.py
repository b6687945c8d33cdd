"""
Uniform LBP pattern mapping.

Reduces the 256 possible 8-neighbour comparison codes to 58 bins:
56 single circular runs of ones (8 rotations x 7 run lengths),
one bin for the all-same codes 0x00/0xFF and one catch-all bin
for every non-uniform code.
"""
from __future__ import annotations

from functools import lru_cache

import numpy as np

N_NEIGHBORS = 8
N_BINS = 58
ALL_SAME_BIN = 56
NON_UNIFORM_BIN = 57


def _rotated_run(start: int, length: int) -> int:
    s = ((1 << length) - 1) << start
    return (s | (s >> N_NEIGHBORS)) & 0xFF


@lru_cache(maxsize=None)
def build_uniform_pattern_table() -> np.ndarray:
    """
    Build the code -> bin lookup table.

    Returns:
        Read-only uint8 array of length 256 with values in [0, 57]
    """
    table = np.full(256, NON_UNIFORM_BIN, dtype=np.uint8)
    table[0x00] = ALL_SAME_BIN
    table[0xFF] = ALL_SAME_BIN

    for i in range(N_NEIGHBORS):
        for j in range(1, N_NEIGHBORS):
            table[_rotated_run(i, j)] = i * (N_NEIGHBORS - 1) + (j - 1)

    table.flags.writeable = False
    return table
