"""Training components: hyperparameters, criteria and the backpropagation loop."""

from .backprop import BackpropagationEngine, TrainingState
from .config import BackpropagationType, Hyperparameters
from .criterion import CriterionFunction, which_class

__all__ = [
    "BackpropagationEngine",
    "BackpropagationType",
    "CriterionFunction",
    "Hyperparameters",
    "TrainingState",
    "which_class",
]
