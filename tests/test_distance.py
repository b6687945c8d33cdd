import numpy as np
import pytest

from classifiers.distance import chi_squared
from vector_extraction.errors import LBPError, LengthMismatchError


def test_distance_to_self_is_zero(rng):
    a = rng.random(58 * 4)
    assert chi_squared(a, a) == 0.0


def test_distance_is_symmetric(rng):
    a = rng.random(116)
    b = rng.random(116)
    assert chi_squared(a, b) == chi_squared(b, a)
    assert chi_squared(a, b) > 0.0


def test_known_values():
    assert chi_squared([1.0, 0.0], [0.0, 1.0]) == pytest.approx(2.0)
    assert chi_squared([2.0, 0.0], [0.0, 0.0]) == pytest.approx(2.0)
    assert chi_squared([0.5, 0.5], [0.25, 0.75]) == pytest.approx(0.0625 / 0.75 + 0.0625 / 1.25)


def test_zero_denominator_terms_contribute_nothing():
    a = np.array([0.0, 0.0, 1.0])
    b = np.array([0.0, 0.0, 1.0])
    d = chi_squared(a, b)
    assert d == 0.0
    assert not np.isnan(d)


def test_length_mismatch_raises():
    with pytest.raises(LengthMismatchError):
        chi_squared(np.zeros(58), np.zeros(116))


def test_length_mismatch_is_a_value_error():
    with pytest.raises(ValueError):
        chi_squared([1.0], [1.0, 2.0])
    assert issubclass(LengthMismatchError, LBPError)
