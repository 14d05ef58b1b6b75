"""Per-class error criteria."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Sequence

import numpy as np

from ..core.errors import DimensionMismatch
from ..core.types import Array

StatisticFn = Callable[[Array, Array, Array], Array]


def which_class(solution: Sequence[float]) -> int:
    """Return the index of the largest output.

    The scan starts from ``max = 0`` and only moves on a strictly greater
    value, so the first index wins ties and an all non-positive vector maps to
    class ``0``.  NaN entries never win.
    """

    which = 0
    best = 0.0
    for idx, value in enumerate(solution):
        if not value > best:
            continue
        best = value
        which = idx
    return which


def _per_class_mean(values: Array, classes: Array, num_classes: int) -> Array:
    out = np.zeros(num_classes, dtype=np.float64)
    for cls in range(num_classes):
        mask = classes == cls
        if np.any(mask):
            out[cls] = float(np.mean(values[mask]))
    return out


def _misclassification(given: Array, expected: Array, classes: Array) -> Array:
    predicted = np.array([which_class(row) for row in given], dtype=np.int64)
    wrong = (predicted != classes).astype(np.float64)
    return _per_class_mean(wrong, classes, expected.shape[1])


def _mse(given: Array, expected: Array, classes: Array) -> Array:
    squared = np.mean((expected - given) ** 2, axis=1)
    return _per_class_mean(squared, classes, expected.shape[1])


@dataclass(frozen=True)
class Statistic:
    name: str
    fn: StatisticFn

    def __call__(self, given: Array, expected: Array, classes: Array) -> Array:
        return self.fn(given, expected, classes)


class StatisticRegistry:
    """Central registry for per-class error statistics."""

    def __init__(self) -> None:
        self._registry: Dict[str, Statistic] = {}

    def register(self, name: str, fn: StatisticFn) -> None:
        self._registry[name] = Statistic(name, fn)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def get(self, name: str) -> Statistic:
        if name not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown criterion {name!r}. Available criteria: {available}")
        return self._registry[name]


REGISTRY = StatisticRegistry()
REGISTRY.register("misclassification", _misclassification)
REGISTRY.register("mse", _mse)


class CriterionFunction:
    """Compare predicted and expected classes, one error value per class.

    ``misclassification`` (the default) scores each expected class by the
    fraction of its samples that :func:`which_class` assigns elsewhere, so
    every entry lies in ``[0, 1]``.  ``mse`` scores each class by the mean
    squared output error of its samples.  Classes without samples score 0.
    """

    def __init__(self, statistic: str = "misclassification") -> None:
        self.statistic = REGISTRY.get(statistic)

    @property
    def name(self) -> str:
        return self.statistic.name

    def evaluate_per_symbol(
        self,
        given_outputs: Sequence[Sequence[float]] | Array,
        expected_outputs: Sequence[Sequence[int]] | Array,
    ) -> Array:
        given = np.asarray(given_outputs, dtype=np.float64)
        expected = np.asarray(expected_outputs, dtype=np.float64)
        if expected.ndim != 2:
            raise DimensionMismatch(
                f"Expected outputs must be one-hot rows, got shape {expected.shape}"
            )
        if given.shape[0] == 0:
            return np.zeros(expected.shape[1], dtype=np.float64)
        if given.shape != expected.shape:
            raise DimensionMismatch(
                f"Given outputs {given.shape} do not match expected outputs {expected.shape}"
            )
        classes = np.argmax(expected, axis=1)
        return self.statistic(given, expected, classes)

    __call__ = evaluate_per_symbol


def accuracy(given_outputs: Array, expected_outputs: Array) -> float:
    given = np.asarray(given_outputs, dtype=np.float64)
    expected = np.asarray(expected_outputs)
    if given.shape[0] == 0:
        return 0.0
    predicted = np.array([which_class(row) for row in given])
    return float(np.mean(predicted == np.argmax(expected, axis=1)))


__all__ = ["CriterionFunction", "StatisticRegistry", "REGISTRY", "which_class", "accuracy"]
