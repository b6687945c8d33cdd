from __future__ import annotations

import numpy as np

NORM_EPS = 1e-10


def hellinger_normalize(hist: np.ndarray) -> np.ndarray:
    """
    Square-root normalize each spatial cell across its bins, in place.

    `hist` is bin-major: axis 0 holds the bins, the remaining axes the cells.
    Each cell ends up (approximately) on the unit L2 sphere; empty cells stay zero.
    """
    if hist.dtype != np.float64:
        raise TypeError(f"Expected float64 histogram, got {hist.dtype}")
    norm = np.sqrt(hist.sum(axis=0)) + NORM_EPS
    np.sqrt(hist, out=hist)
    hist /= norm
    return hist
