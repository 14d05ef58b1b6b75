"""Backpropagation training loop with batch, online and mini-batch updates."""

from __future__ import annotations

from enum import Enum
from typing import Iterator, Mapping, Sequence

import numpy as np

from ..core.errors import DimensionMismatch, InvalidConfiguration, NumericalInstability
from ..core.layers import NeuronLayer
from ..core.types import Array, Instance, TrainResult
from .config import BackpropagationType, Hyperparameters
from .criterion import CriterionFunction, accuracy


class TrainingState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CONVERGED = "converged"
    ITERATION_LIMIT_REACHED = "iteration_limit_reached"
    STOPPED = "stopped"


class BackpropagationEngine:
    """Train a layer chain with the generalised delta rule.

    One epoch is one full pass over the corpus.  The policy decides how often
    accumulated updates reach the weights: once per epoch (``Batch``), after
    every sample (``Online``) or after every ``mini_batch_size`` samples
    (``MiniBatch``).  Samples are always visited in corpus order.

    Callbacks receive ``on_epoch(epoch, metrics)`` (or are called directly)
    after every epoch; a callback may call :meth:`stop` to end training at
    the next epoch boundary.  An empty corpus runs no epochs and leaves the
    engine ``IDLE``.
    """

    def __init__(
        self,
        layers: Sequence[NeuronLayer],
        criterion: CriterionFunction | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if len(layers) < 3:
            raise InvalidConfiguration(
                f"Backpropagation needs at least 3 layers, got {len(layers)}"
            )
        if not layers[0].is_input:
            raise InvalidConfiguration("First layer must be the input layer")
        self.layers = list(layers)
        self.criterion = criterion or CriterionFunction()
        self.callbacks = list(callbacks or [])
        self.state = TrainingState.IDLE
        self.epoch = 0
        self._stop_requested = False

    def stop(self) -> None:
        """Request an abort, honoured at the next epoch boundary."""

        self._stop_requested = True

    def train(self, instance: Instance, hyperparameters: Hyperparameters) -> TrainResult:
        inputs = instance.inputs()
        targets = instance.targets().astype(np.float64)
        if inputs.shape[1] != self.layers[0].width:
            raise DimensionMismatch(
                f"Instance input width {inputs.shape[1]} does not match "
                f"input layer width {self.layers[0].width}"
            )
        if targets.shape[1] != self.layers[-1].width:
            raise DimensionMismatch(
                f"Instance has {targets.shape[1]} classes but the output layer "
                f"has {self.layers[-1].width} neurons"
            )

        self.state = TrainingState.RUNNING
        self._stop_requested = False
        self.epoch = 0
        loss = float("nan")
        try:
            if inputs.shape[0] == 0:
                self.state = TrainingState.IDLE
                return TrainResult(epochs=0, state=self.state.value, loss=0.0)
            for epoch in range(1, hyperparameters.max_iteration + 1):
                loss = self._run_epoch(inputs, targets, hyperparameters)
                self.epoch = epoch
                metrics = {"loss": loss}
                every = hyperparameters.eval_every
                if every and epoch % every == 0:
                    metrics.update(self._evaluate_metrics(inputs, targets))
                self._emit_epoch(epoch, metrics)

                if hyperparameters.tolerance is not None and loss < hyperparameters.tolerance:
                    self.state = TrainingState.CONVERGED
                    break
                if self._stop_requested:
                    self.state = TrainingState.STOPPED
                    break
            else:
                self.state = TrainingState.ITERATION_LIMIT_REACHED
        except Exception:
            self.state = TrainingState.IDLE
            raise

        return TrainResult(epochs=self.epoch, state=self.state.value, loss=float(loss))

    # ------------------------------------------------------------------
    # Internal helpers

    def _run_epoch(
        self, inputs: Array, targets: Array, hyperparameters: Hyperparameters
    ) -> float:
        eta = hyperparameters.eta
        total = 0.0
        for rows in self._slices(inputs.shape[0], hyperparameters):
            outputs = self._forward(inputs[rows])
            expected = targets[rows]
            total += float(0.5 * np.sum((expected - outputs) ** 2))
            self._backward(expected - outputs, eta)
            if hyperparameters.policy is not BackpropagationType.BATCH:
                self._apply()
        if hyperparameters.policy is BackpropagationType.BATCH:
            self._apply()
        return total / inputs.shape[0]

    @staticmethod
    def _slices(n: int, hyperparameters: Hyperparameters) -> Iterator[slice]:
        policy = hyperparameters.policy
        if policy is BackpropagationType.BATCH:
            step = n
        elif policy is BackpropagationType.ONLINE:
            step = 1
        else:
            step = hyperparameters.mini_batch_size
        for start in range(0, n, step):
            yield slice(start, min(start + step, n))

    def _forward(self, batch: Array) -> Array:
        h = batch
        for layer in self.layers:
            h = layer.forward(h)
        if not np.all(np.isfinite(h)):
            raise NumericalInstability(
                f"Non-finite network outputs at epoch {self.epoch + 1}"
            )
        return h

    def _backward(self, error: Array, eta: float) -> None:
        # Output delta: (expected - actual) * f'(z_out)
        delta = error * self.layers[-1].derivative()
        for idx in range(len(self.layers) - 1, 0, -1):
            layer = self.layers[idx]
            layer.accumulate(delta, eta)
            if idx > 1:
                delta = layer.backward(delta) * self.layers[idx - 1].derivative()

    def _apply(self) -> None:
        for layer in self.layers[1:]:
            layer.apply_gradients()

    def _evaluate_metrics(self, inputs: Array, targets: Array) -> Mapping[str, float]:
        outputs = self._forward(inputs)
        per_class = self.criterion.evaluate_per_symbol(outputs, targets)
        metrics = {"accuracy": accuracy(outputs, targets)}
        metrics.update({f"class_{idx}": float(value) for idx, value in enumerate(per_class)})
        return metrics

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["BackpropagationEngine", "TrainingState"]
