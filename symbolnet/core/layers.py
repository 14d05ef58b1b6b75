"""Fully connected neuron layer."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .activations import ActivationFunction, IDENTITY, resolve
from .errors import DimensionMismatch, InvalidConfiguration, NumericalInstability
from .types import Array


@dataclass(eq=False)
class NeuronLayer:
    """One layer of a feed-forward network.

    The layer owns the incoming weight matrix of shape ``(n_in, width)`` and
    the bias vector of length ``width``.  A layer with ``n_in == 0`` is the
    input layer: it performs no weighting and passes its input through.

    Attributes
    ----------
    width:
        Number of neurons in the layer.
    n_in:
        Width of the previous layer, ``0`` for the input layer.
    activation:
        Activation name or :class:`ActivationFunction`.  Ignored by the input
        layer; required for every other layer.
    seed:
        Seed of the generator used by :meth:`reset`.  Successive resets keep
        drawing from the same generator, so they produce fresh weights.
    """

    width: int
    n_in: int
    activation: str | ActivationFunction | None = "sigmoid"
    seed: int = 0
    weights: Array = field(init=False, repr=False)
    bias: Array = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.width < 1:
            raise InvalidConfiguration(f"Layer width must be positive, got {self.width}")
        if self.n_in < 0:
            raise InvalidConfiguration(f"Layer fan-in must be >= 0, got {self.n_in}")
        if self.is_input:
            self.activation = IDENTITY
        else:
            self.activation = resolve(self.activation)
        self._rng = np.random.default_rng(self.seed)
        self.last_input: Array | None = None
        self.last_z: Array | None = None
        self.last_output: Array | None = None
        self.reset()

    @property
    def is_input(self) -> bool:
        return self.n_in == 0

    def reset(self) -> None:
        """Redraw weights and biases and clear accumulated gradients."""

        if self.is_input:
            self.weights = np.zeros((0, self.width), dtype=np.float64)
            self.bias = np.zeros(self.width, dtype=np.float64)
        else:
            scale = 1.0 / np.sqrt(self.n_in)
            self.weights = self._rng.standard_normal((self.n_in, self.width)) * scale
            self.bias = self._rng.standard_normal(self.width) * 0.05
        self._grad_w = np.zeros_like(self.weights)
        self._grad_b = np.zeros_like(self.bias)
        self.last_input = None
        self.last_z = None
        self.last_output = None

    def forward(self, inputs: Array) -> Array:
        """Propagate ``inputs`` (a vector or a batch of rows) through the layer."""

        x = np.asarray(inputs, dtype=np.float64)
        expected = self.width if self.is_input else self.n_in
        if x.ndim not in (1, 2) or x.shape[-1] != expected:
            raise DimensionMismatch(
                f"Layer expects inputs of width {expected}, got shape {x.shape}"
            )
        batch = np.atleast_2d(x)
        if self.is_input:
            z = batch
            out = batch
        else:
            z = batch @ self.weights + self.bias
            out = self.activation.apply(z)
        self.last_input = batch
        self.last_z = z
        self.last_output = out
        return out[0] if x.ndim == 1 else out

    def derivative(self) -> Array:
        """Activation slope at the cached pre-activation."""

        self._require_forward()
        return self.activation.derivative(self.last_z)

    def backward(self, delta: Array) -> Array:
        """Return ``delta`` propagated onto this layer's inputs (``delta @ W.T``).

        The caller multiplies the result by the previous layer's derivative to
        obtain that layer's delta.
        """

        delta = np.atleast_2d(delta)
        if delta.shape[-1] != self.width:
            raise DimensionMismatch(
                f"Delta of width {delta.shape[-1]} does not match layer width {self.width}"
            )
        return delta @ self.weights.T

    def accumulate(self, delta: Array, eta: float) -> None:
        """Add ``eta * input_i * delta_j`` (summed over the cached rows)."""

        self._require_forward()
        delta = np.atleast_2d(delta)
        if delta.shape != self.last_z.shape:
            raise DimensionMismatch(
                f"Delta shape {delta.shape} does not match cached batch {self.last_z.shape}"
            )
        if self.is_input:
            return
        self._grad_w += eta * (self.last_input.T @ delta)
        self._grad_b += eta * delta.sum(axis=0)

    def apply_gradients(self) -> None:
        """Apply and clear the accumulated updates."""

        if self.is_input:
            return
        self.weights = self.weights + self._grad_w
        self.bias = self.bias + self._grad_b
        self._grad_w = np.zeros_like(self.weights)
        self._grad_b = np.zeros_like(self.bias)
        if not (np.all(np.isfinite(self.weights)) and np.all(np.isfinite(self.bias))):
            raise NumericalInstability(
                f"Non-finite parameters in layer of width {self.width} after update"
            )

    def has_pending_gradients(self) -> bool:
        return bool(np.any(self._grad_w) or np.any(self._grad_b))

    def parameter_count(self) -> int:
        return 0 if self.is_input else int(self.weights.size + self.bias.size)

    def _require_forward(self) -> None:
        if self.last_z is None:
            raise RuntimeError("forward must run before the backward pass")


__all__ = ["NeuronLayer"]
