"""Neural network holding the architecture, the layer chain and per-class error."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .core.activations import ActivationFunction, resolve
from .core.errors import DimensionMismatch, InvalidArgument, InvalidConfiguration, InvalidOperation
from .core.layers import NeuronLayer
from .core.types import Array, Instance, TrainResult
from .training.backprop import BackpropagationEngine
from .training.config import (
    BackpropagationType,
    Hyperparameters,
    check_eta,
    check_iterations,
    check_width,
)
from .training.criterion import CriterionFunction, which_class

MIN_LAYERS = 3


class NeuralNetwork:
    """A feed-forward classifier for the symbols of an :class:`Instance`.

    The architecture starts as ``[2 * num_symbol_samples, num_symbols,
    num_symbols]``.  Hidden widths can be edited between runs; the first and
    last entries never change.  Edits only take effect when the layer chain
    is rebuilt by :meth:`train`.

    Attributes
    ----------
    instance:
        Shared, read-only training corpus.
    function:
        Activation of the hidden layers.
    output_function:
        Activation of the output layer.
    hyperparameters:
        Learning rate, epoch budget and update policy for the next run.
    criterion:
        Statistic used by :meth:`evaluate`.
    """

    def __init__(
        self,
        instance: Instance,
        function: str | ActivationFunction | None = "sigmoid",
        output_function: str | ActivationFunction | None = "sigmoid",
        hyperparameters: Hyperparameters | None = None,
        criterion: str | CriterionFunction = "misclassification",
    ) -> None:
        self.instance = instance
        self._neuron_default = instance.num_symbols
        architecture = [instance.input_width, self._neuron_default, instance.output_width]
        self.hyperparameters = hyperparameters or Hyperparameters()
        if not isinstance(criterion, CriterionFunction):
            criterion = CriterionFunction(criterion)
        self.criterion = criterion
        self._engine: BackpropagationEngine | None = None
        self._init_neural_network(architecture, function, output_function)
        self._init_network()

    # ------------------------------------------------------------------
    # Read-only views

    @property
    def number_of_layers(self) -> int:
        return len(self._architecture)

    @property
    def architecture(self) -> Tuple[int, ...]:
        return tuple(self._architecture)

    def get_architecture(self) -> Tuple[int, ...]:
        return self.architecture

    @property
    def per_class_error(self) -> Tuple[float, ...]:
        return tuple(float(v) for v in self._per_symbol_error)

    @property
    def layers(self) -> Tuple[NeuronLayer, ...]:
        return tuple(self._layers)

    @property
    def function(self) -> ActivationFunction:
        return self._function

    @property
    def output_function(self) -> ActivationFunction:
        return self._output_function

    def parameter_count(self) -> int:
        return sum(layer.parameter_count() for layer in self._layers)

    # ------------------------------------------------------------------
    # Architecture editing

    def add_layer(self) -> None:
        """Insert a hidden layer of default width just before the output layer."""

        self._architecture.insert(len(self._architecture) - 1, self._neuron_default)

    def remove_layer(self) -> None:
        """Drop the last hidden layer, keeping at least one.

        The output width stays in the last position, so ``add_layer`` followed
        by ``remove_layer`` restores the previous architecture.
        """

        if len(self._architecture) - 1 < MIN_LAYERS:
            raise InvalidOperation(
                f"Architecture must contain at least one hidden layer: {self._architecture}"
            )
        del self._architecture[-2]

    def update_layer(self, index: int, value: int) -> None:
        if index == 0 or index == len(self._architecture) - 1:
            raise InvalidOperation("Input and output layers cannot be changed!")
        if not 0 < index < len(self._architecture) - 1:
            raise InvalidArgument(
                f"Layer index {index} outside the hidden range "
                f"[1, {len(self._architecture) - 2}]"
            )
        self._architecture[index] = check_width(value)

    # ------------------------------------------------------------------
    # Hyperparameters

    def change_eta(self, eta: float) -> None:
        self.hyperparameters = self.hyperparameters.replace(eta=check_eta(eta))

    def get_eta(self) -> float:
        return self.hyperparameters.eta

    def change_iterations(self, iterations: int) -> None:
        self.hyperparameters = self.hyperparameters.replace(
            max_iteration=check_iterations(iterations)
        )

    def get_iterations(self) -> int:
        return self.hyperparameters.max_iteration

    def set_policy(self, policy: str | BackpropagationType) -> None:
        self.hyperparameters = self.hyperparameters.replace(
            policy=BackpropagationType.to_enum(policy)
        )

    def get_policy(self) -> BackpropagationType:
        return self.hyperparameters.policy

    # ------------------------------------------------------------------
    # Training and inference

    def train(self, callbacks: Sequence[object] | None = None) -> TrainResult:
        """Rebuild the layer chain from the architecture and train it.

        Prior weights are discarded.  The network is evaluated right after the
        rebuild and again once backpropagation finishes.
        """

        self._init_network()
        self._engine = BackpropagationEngine(
            self._layers, criterion=self.criterion, callbacks=callbacks
        )
        try:
            result = self._engine.train(self.instance, self.hyperparameters)
        finally:
            self._engine = None
        self.evaluate()
        return TrainResult(
            epochs=result.epochs,
            state=result.state,
            loss=result.loss,
            per_class_error=self.per_class_error,
        )

    def stop_training(self) -> None:
        """Ask a running :meth:`train` to stop at the next epoch boundary."""

        if self._engine is not None:
            self._engine.stop()

    def reset_network(self) -> None:
        """Redraw every layer's weights, keeping the current layer chain."""

        for layer in self._layers:
            layer.reset()

    def get_outputs(self, x_values: Sequence[float], y_values: Sequence[float]) -> Array:
        inputs = self._format_input(x_values, y_values)
        if inputs.shape[0] != self._layers[0].width:
            raise DimensionMismatch(
                f"Got {inputs.shape[0]} input values, network expects {self._layers[0].width}"
            )
        return self._forward(inputs)

    def predict(self, x_values: Sequence[float], y_values: Sequence[float]) -> int:
        return which_class(self.get_outputs(x_values, y_values))

    def evaluate(self) -> Tuple[float, ...]:
        """Re-run every symbol and overwrite the per-class error."""

        symbols = self.instance.symbols
        given_outputs = np.zeros((len(symbols), self.instance.num_symbols), dtype=np.float64)
        for idx, symbol in enumerate(symbols):
            given_outputs[idx] = self.get_outputs(symbol.x_positions, symbol.y_positions)
        expected_outputs = self.instance.targets()
        self._per_symbol_error = self.criterion.evaluate_per_symbol(
            given_outputs, expected_outputs
        )
        return self.per_class_error

    def is_equals(
        self,
        architecture: Sequence[int],
        function: str | ActivationFunction | None = "sigmoid",
        output_function: str | ActivationFunction | None = "sigmoid",
    ) -> bool:
        """Return whether this network has ``architecture`` and the given activations.

        Activations that do not resolve never match.
        """

        if len(self._architecture) != len(architecture):
            return False
        try:
            hidden, output = resolve(function), resolve(output_function)
        except InvalidConfiguration:
            return False
        if self._function != hidden or self._output_function != output:
            return False
        return all(int(a) == int(b) for a, b in zip(self._architecture, architecture))

    # ------------------------------------------------------------------
    # Internal helpers

    def _init_neural_network(
        self,
        architecture: List[int],
        function: str | ActivationFunction | None,
        output_function: str | ActivationFunction | None,
    ) -> None:
        if len(architecture) < MIN_LAYERS:
            raise InvalidConfiguration(
                f"Architecture must contain at least one hidden layer: {architecture}"
            )
        self._architecture = list(architecture)
        self._function = resolve(function)
        self._output_function = resolve(output_function)
        self._per_symbol_error = np.zeros(self.instance.num_symbols, dtype=np.float64)

    def _init_network(self) -> None:
        layers: List[NeuronLayer] = []
        seed = self.hyperparameters.seed
        last = len(self._architecture) - 1
        for idx, width in enumerate(self._architecture):
            n_in = 0 if idx == 0 else self._architecture[idx - 1]
            function = self._output_function if idx == last else self._function
            layers.append(NeuronLayer(width, n_in, activation=function, seed=seed + idx))
        self._layers = layers
        self.evaluate()

    @staticmethod
    def _format_input(x_values: Sequence[float], y_values: Sequence[float]) -> Array:
        xs = np.asarray(x_values, dtype=np.float64).reshape(-1)
        ys = np.asarray(y_values, dtype=np.float64).reshape(-1)
        return np.concatenate([xs, ys])

    def _forward(self, inputs: Array) -> Array:
        h = inputs
        for layer in self._layers:
            h = layer.forward(h)
        return h


__all__ = ["NeuralNetwork", "MIN_LAYERS"]
