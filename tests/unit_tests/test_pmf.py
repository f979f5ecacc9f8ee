import numpy as np
import pytest

from alphapi.exceptions import InvariantViolationError
from alphapi.inference.pmf import PMF


def test_pmf_support():
    pmf = PMF(2, [0.2, 0.3, 0.5])

    assert pmf.last_support == 4
    assert len(pmf) == 3
    assert pmf.probability(3) == pytest.approx(0.3)
    assert pmf.probability(1) == 0.0
    assert pmf.probability(5) == 0.0
    assert np.allclose(pmf.values_over(0, 5), [0.0, 0.0, 0.2, 0.3, 0.5, 0.0])
    assert np.allclose(pmf.values_over(3, 3), [0.3])


def test_pmf_invalid_table():
    with pytest.raises(ValueError):
        PMF(0, [])

    with pytest.raises(ValueError):
        PMF(0, [[0.5, 0.5]])


def test_pmf_normalized():
    pmf = PMF(0, [1.0, 3.0]).normalized()

    assert np.allclose(pmf.table, [0.25, 0.75])


def test_pmf_normalized_without_mass_is_uniform():
    pmf = PMF(1, [0.0, 0.0, 0.0, 0.0]).normalized()

    assert pmf.first_support == 1
    assert np.allclose(pmf.table, 0.25)


@pytest.mark.parametrize("poison", [np.nan, np.inf])
def test_pmf_normalized_non_finite(poison):
    with pytest.raises(InvariantViolationError):
        PMF(0, [0.5, poison]).normalized()


def test_pmf_product_on_intersection():
    pmf = PMF(0, [0.1, 0.2, 0.3]) * PMF(1, [0.5, 0.5, 1.0])

    assert pmf.first_support == 1
    assert np.allclose(pmf.table, [0.1, 0.15])


def test_pmf_product_disjoint():
    with pytest.raises(InvariantViolationError):
        PMF(0, [1.0]) * PMF(2, [1.0])


def test_pmf_convolve():
    pmf = PMF(0, [0.5, 0.5]).convolve(PMF(1, [0.2, 0.8]))

    assert pmf.first_support == 1
    assert np.allclose(pmf.table, [0.1, 0.5, 0.4])
    assert pmf.table.sum() == pytest.approx(1.0)


def test_pmf_dampened():
    new = PMF(0, [1.0, 0.0])
    old = PMF(0, [0.0, 1.0])

    assert np.allclose(new.dampened(old, 0.25).table, [0.75, 0.25])
    assert new.dampened(old, 0.0) is new


def test_pmf_distance():
    assert PMF(0, [0.5, 0.5]).distance(PMF(0, [0.5, 0.5])) == 0.0
    assert PMF(0, [1.0, 0.0]).distance(PMF(0, [0.0, 1.0])) == pytest.approx(2.0)
    assert PMF(0, [1.0]).distance(PMF(1, [1.0])) == pytest.approx(2.0)
