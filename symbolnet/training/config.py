"""Training hyperparameters and their bounds."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping

from ..core.errors import InvalidArgument

ETA_MIN = 0.001
ETA_DEFAULT = 0.01
ETA_MAX = 1.0

LIMIT_MIN = 100
LIMIT_DEFAULT = 10_000
LIMIT_MAX = 1_000_000

NEURON_MIN = 1
NEURON_MAX = 50

MINI_BATCH_DEFAULT = 10


class BackpropagationType(str, Enum):
    """Weight update policy used by the backpropagation engine."""

    BATCH = "Batch"
    ONLINE = "Online"
    MINI_BATCH = "MiniBatch"

    @classmethod
    def to_enum(cls, token: "str | BackpropagationType") -> "BackpropagationType":
        if isinstance(token, cls):
            return token
        for member in cls:
            if member.value == token:
                return member
        choices = ", ".join(member.value for member in cls)
        raise InvalidArgument(f"Unknown backpropagation type {token!r}. Choose one of: {choices}")

    @staticmethod
    def to_string(policy: "BackpropagationType") -> str:
        return BackpropagationType.to_enum(policy).value

    @classmethod
    def tokens(cls) -> list[str]:
        return [member.value for member in cls]


def _finite(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidArgument(f"{name} must be finite, got {value}")
    return number


def _integer(value: Any, name: str) -> int:
    number = _finite(value, name)
    if int(number) != number:
        raise InvalidArgument(f"{name} must be an integer, got {value}")
    return int(number)


def check_eta(eta: float) -> float:
    eta = _finite(eta, "eta")
    if not ETA_MIN <= eta <= ETA_MAX:
        raise InvalidArgument(f"eta must be in [{ETA_MIN}, {ETA_MAX}], got {eta}")
    return eta


def check_iterations(iterations: int) -> int:
    iterations = _integer(iterations, "max_iteration")
    if not LIMIT_MIN <= iterations <= LIMIT_MAX:
        raise InvalidArgument(
            f"max_iteration must be in [{LIMIT_MIN}, {LIMIT_MAX}], got {iterations}"
        )
    return iterations


def check_width(width: int) -> int:
    width = _integer(width, "Layer width")
    if not NEURON_MIN <= width <= NEURON_MAX:
        raise InvalidArgument(
            f"Layer width must be in [{NEURON_MIN}, {NEURON_MAX}], got {width}"
        )
    return width


@dataclass(frozen=True)
class Hyperparameters:
    """Training configuration owned by a :class:`NeuralNetwork`.

    Values outside their documented bounds are rejected with
    :class:`InvalidArgument`; nothing is clamped.

    Attributes
    ----------
    eta:
        Learning rate in ``[0.001, 1]``.
    max_iteration:
        Epoch budget in ``[100, 1_000_000]``.
    policy:
        One of ``Batch``, ``Online`` or ``MiniBatch``.
    mini_batch_size:
        Samples per update for the ``MiniBatch`` policy.
    tolerance:
        Epoch loss below which training stops early.  ``None`` never stops
        early.
    seed:
        Seed for weight initialisation.
    eval_every:
        Epoch interval at which per-class error is attached to the epoch
        metrics handed to callbacks.  ``0`` disables it.
    """

    eta: float = ETA_DEFAULT
    max_iteration: int = LIMIT_DEFAULT
    policy: BackpropagationType = BackpropagationType.BATCH
    mini_batch_size: int = MINI_BATCH_DEFAULT
    tolerance: float | None = None
    seed: int = 0
    eval_every: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "eta", check_eta(self.eta))
        object.__setattr__(self, "max_iteration", check_iterations(self.max_iteration))
        object.__setattr__(self, "policy", BackpropagationType.to_enum(self.policy))
        mini_batch_size = _integer(self.mini_batch_size, "mini_batch_size")
        if mini_batch_size < 1:
            raise InvalidArgument(f"mini_batch_size must be positive, got {mini_batch_size}")
        object.__setattr__(self, "mini_batch_size", mini_batch_size)
        if self.tolerance is not None:
            tolerance = _finite(self.tolerance, "tolerance")
            if tolerance < 0:
                raise InvalidArgument(f"tolerance must be >= 0, got {tolerance}")
            object.__setattr__(self, "tolerance", tolerance)
        eval_every = _integer(self.eval_every, "eval_every")
        if eval_every < 0:
            raise InvalidArgument(f"eval_every must be >= 0, got {eval_every}")
        object.__setattr__(self, "eval_every", eval_every)
        object.__setattr__(self, "seed", _integer(self.seed, "seed"))

    def replace(self, **changes: Any) -> "Hyperparameters":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["policy"] = self.policy.value
        return payload

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "Hyperparameters":
        known = {
            "eta",
            "max_iteration",
            "policy",
            "mini_batch_size",
            "tolerance",
            "seed",
            "eval_every",
        }
        return cls(**{key: value for key, value in config.items() if key in known})


__all__ = [
    "BackpropagationType",
    "Hyperparameters",
    "ETA_MIN",
    "ETA_DEFAULT",
    "ETA_MAX",
    "LIMIT_MIN",
    "LIMIT_DEFAULT",
    "LIMIT_MAX",
    "NEURON_MIN",
    "NEURON_MAX",
    "check_eta",
    "check_iterations",
    "check_width",
]
