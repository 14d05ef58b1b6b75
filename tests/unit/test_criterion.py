import numpy as np
import pytest

from symbolnet.core.errors import DimensionMismatch
from symbolnet.training.criterion import REGISTRY, CriterionFunction, accuracy, which_class


@pytest.mark.parametrize(
    "solution, expected",
    [
        ([0.2, 0.9, 0.1], 1),
        ([0.0, 0.0, 0.0], 0),
        ([-1.0, -0.5, -2.0], 0),
        ([0.4, 0.7, 0.7], 1),
        ([float("nan"), 0.3], 1),
        ([], 0),
    ],
)
def test_which_class_scan(solution, expected):
    assert which_class(solution) == expected


def test_misclassification_per_expected_class():
    given = np.array([[0.9, 0.1], [0.2, 0.8], [0.7, 0.3], [0.1, 0.6]])
    expected = np.array([[1, 0], [1, 0], [0, 1], [0, 1]])
    errors = CriterionFunction().evaluate_per_symbol(given, expected)
    assert errors.shape == (2,)
    assert np.allclose(errors, [0.5, 0.5])


def test_mse_per_expected_class():
    given = np.array([[1.0, 0.0], [0.5, 0.5], [0.0, 1.0]])
    expected = np.array([[1, 0], [1, 0], [0, 1]])
    errors = CriterionFunction("mse").evaluate_per_symbol(given, expected)
    assert np.allclose(errors, [0.125, 0.0])


def test_class_without_samples_scores_zero():
    given = np.array([[0.1, 0.9, 0.0]])
    expected = np.array([[1, 0, 0]])
    errors = CriterionFunction()(given, expected)
    assert np.allclose(errors, [1.0, 0.0, 0.0])


def test_criterion_is_deterministic():
    rng = np.random.default_rng(0)
    given = rng.random((12, 4))
    expected = np.eye(4, dtype=int)[rng.integers(0, 4, size=12)]
    criterion = CriterionFunction()
    first = criterion.evaluate_per_symbol(given, expected)
    second = criterion.evaluate_per_symbol(given.copy(), expected.copy())
    assert np.array_equal(first, second)


def test_criterion_shape_checks():
    with pytest.raises(DimensionMismatch):
        CriterionFunction().evaluate_per_symbol(np.ones((2, 3)), np.ones((3, 3)))
    with pytest.raises(KeyError):
        CriterionFunction("hinge")
    assert set(REGISTRY.names()) == {"misclassification", "mse"}


def test_accuracy_uses_which_class():
    given = np.array([[0.0, 0.0], [0.2, 0.9]])
    expected = np.array([[1, 0], [0, 1]])
    assert accuracy(given, expected) == 1.0
