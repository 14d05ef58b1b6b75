"""Activation functions and their registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .errors import InvalidConfiguration
from .types import Array

ActivationFn = Callable[[Array], Array]


@dataclass(frozen=True)
class ActivationFunction:
    """Activation wrapper exposing the value and the slope at ``z``.

    Both callables take the pre-activation ``z`` and operate on the last axis,
    so they accept a single vector or a batch of row vectors.
    """

    name: str
    fn: ActivationFn
    deriv: ActivationFn

    def apply(self, z: Array) -> Array:
        return self.fn(z)

    def derivative(self, z: Array) -> Array:
        return self.deriv(z)

    __call__ = apply


class ActivationRegistry:
    """Central registry for activation functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, ActivationFunction] = {}

    def register(self, name: str, fn: ActivationFn, deriv: ActivationFn) -> None:
        self._registry[name] = ActivationFunction(name, fn, deriv)

    def alias(self, name: str, target: str) -> None:
        self._registry[name] = self._registry[target]

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, function: str | ActivationFunction | None) -> ActivationFunction:
        """Return the activation for ``function``.

        ``None`` is rejected rather than treated as identity; pass
        ``"identity"`` explicitly for a linear layer.
        """

        if function is None:
            raise InvalidConfiguration(
                "No activation function supplied; use 'identity' for a linear layer"
            )
        if isinstance(function, ActivationFunction):
            return function
        key = str(function).lower()
        if key not in self._registry:
            available = ", ".join(self.names())
            raise InvalidConfiguration(
                f"Unknown activation {function!r}. Available activations: {available}"
            )
        return self._registry[key]


REGISTRY = ActivationRegistry()


def _identity(z: Array) -> Array:
    return np.asarray(z, dtype=np.float64)


def _identity_deriv(z: Array) -> Array:
    return np.ones_like(z, dtype=np.float64)


def _sigmoid(z: Array) -> Array:
    # Split on sign so large |z| never overflows exp.
    z = np.asarray(z, dtype=np.float64)
    out = np.empty_like(z)
    pos = z >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-z[pos]))
    ez = np.exp(z[~pos])
    out[~pos] = ez / (1.0 + ez)
    return out


def _sigmoid_deriv(z: Array) -> Array:
    s = _sigmoid(z)
    return s * (1.0 - s)


def _tanh(z: Array) -> Array:
    return np.tanh(np.asarray(z, dtype=np.float64))


def _tanh_deriv(z: Array) -> Array:
    return 1.0 - np.tanh(np.asarray(z, dtype=np.float64)) ** 2


def _relu(z: Array) -> Array:
    return np.maximum(np.asarray(z, dtype=np.float64), 0.0)


def _relu_deriv(z: Array) -> Array:
    return (np.asarray(z) > 0).astype(np.float64)


def _softmax(z: Array) -> Array:
    z = np.asarray(z, dtype=np.float64)
    shifted = z - np.max(z, axis=-1, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=-1, keepdims=True)


def _softmax_deriv(z: Array) -> Array:
    # Diagonal of the Jacobian, as used by the per-unit delta rule.
    s = _softmax(z)
    return s * (1.0 - s)


REGISTRY.register("identity", _identity, _identity_deriv)
REGISTRY.register("sigmoid", _sigmoid, _sigmoid_deriv)
REGISTRY.register("tanh", _tanh, _tanh_deriv)
REGISTRY.register("relu", _relu, _relu_deriv)
REGISTRY.register("softmax", _softmax, _softmax_deriv)
REGISTRY.alias("logistic", "sigmoid")

IDENTITY = REGISTRY.resolve("identity")
SIGMOID = REGISTRY.resolve("sigmoid")
TANH = REGISTRY.resolve("tanh")
RELU = REGISTRY.resolve("relu")
SOFTMAX = REGISTRY.resolve("softmax")


def resolve(function: str | ActivationFunction | None) -> ActivationFunction:
    return REGISTRY.resolve(function)


__all__ = [
    "ActivationFunction",
    "ActivationRegistry",
    "REGISTRY",
    "IDENTITY",
    "SIGMOID",
    "TANH",
    "RELU",
    "SOFTMAX",
    "resolve",
]
