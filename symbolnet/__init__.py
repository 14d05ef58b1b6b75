"""symbolnet public API."""

from .core import activations  # noqa: F401
from .core.errors import (
    DimensionMismatch,
    InvalidArgument,
    InvalidConfiguration,
    InvalidOperation,
    NetworkError,
    NumericalInstability,
)
from .core.layers import NeuronLayer
from .core.types import Instance, RunResult, Symbol, TrainResult
from .data import get_dataset, make_symbols
from .network import NeuralNetwork
from .training.backprop import BackpropagationEngine, TrainingState
from .training.config import BackpropagationType, Hyperparameters
from .training.criterion import CriterionFunction, which_class
from .training.pipelines import load_preset, presets, run_pipeline

__all__ = [
    "BackpropagationEngine",
    "BackpropagationType",
    "CriterionFunction",
    "DimensionMismatch",
    "Hyperparameters",
    "Instance",
    "InvalidArgument",
    "InvalidConfiguration",
    "InvalidOperation",
    "NetworkError",
    "NeuralNetwork",
    "NeuronLayer",
    "NumericalInstability",
    "RunResult",
    "Symbol",
    "TrainResult",
    "TrainingState",
    "activations",
    "get_dataset",
    "load_preset",
    "make_symbols",
    "presets",
    "run_pipeline",
    "which_class",
]
