from __future__ import annotations

from typing import Callable

import numpy as np

from vector_extraction.errors import LengthMismatchError

DistanceMetric = Callable[[np.ndarray, np.ndarray], float]


def chi_squared(h1: np.ndarray, h2: np.ndarray) -> float:
    """
    Chi-squared histogram distance: sum((a - b)^2 / (a + b)) over a + b > 0.

    Raises:
        LengthMismatchError: If the vectors differ in length
    """
    a = np.asarray(h1, dtype=np.float64).reshape(-1)
    b = np.asarray(h2, dtype=np.float64).reshape(-1)
    if a.shape[0] != b.shape[0]:
        raise LengthMismatchError(
            f"The histograms are not of equal length: {a.shape[0]} != {b.shape[0]}"
        )
    total = a + b
    mask = total > 0
    diff = a[mask] - b[mask]
    return float(np.sum(diff * diff / total[mask]))
