"""Core typing contracts for symbolnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np

from .errors import InvalidConfiguration

Array = np.ndarray


def _frozen(values, dtype) -> Array:
    arr = np.array(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


def one_hot(index: int, num_classes: int) -> Array:
    if not 0 <= index < num_classes:
        raise InvalidConfiguration(
            f"Class index {index} outside [0, {num_classes})"
        )
    out = np.zeros(num_classes, dtype=np.int64)
    out[index] = 1
    return out


@dataclass(frozen=True)
class Symbol:
    """One labelled training example made of ``(x, y)`` coordinate pairs.

    Attributes
    ----------
    x_positions, y_positions:
        Sampled coordinates of the drawn symbol, equal length.
    target:
        One-hot class vector.  A bare integer class index is also accepted;
        the owning :class:`Instance` expands it to one-hot once the number
        of classes is known.  :meth:`labelled` does the expansion up front.
    """

    x_positions: Array
    y_positions: Array
    target: Array

    def __post_init__(self) -> None:
        object.__setattr__(self, "x_positions", _frozen(self.x_positions, np.float64))
        object.__setattr__(self, "y_positions", _frozen(self.y_positions, np.float64))
        object.__setattr__(self, "target", _frozen(self.target, np.int64))
        if self.target.ndim > 1:
            raise InvalidConfiguration(
                "Symbol target must be a class index or a 1-D vector, "
                f"got shape {self.target.shape}"
            )
        if self.x_positions.ndim != 1 or self.y_positions.ndim != 1:
            raise InvalidConfiguration("Symbol coordinates must be 1-D sequences")
        if self.x_positions.shape != self.y_positions.shape:
            raise InvalidConfiguration(
                f"Symbol has {self.x_positions.size} x positions "
                f"but {self.y_positions.size} y positions"
            )

    @classmethod
    def labelled(
        cls,
        x_positions: Sequence[float],
        y_positions: Sequence[float],
        class_index: int,
        num_classes: int,
    ) -> "Symbol":
        return cls(x_positions, y_positions, one_hot(class_index, num_classes))

    @property
    def num_samples(self) -> int:
        return int(self.x_positions.size)

    @property
    def class_index(self) -> int:
        if self.target.ndim == 0:
            return int(self.target)
        return int(np.argmax(self.target))

    def features(self) -> Array:
        """Return the x positions followed by the y positions."""

        return np.concatenate([self.x_positions, self.y_positions])


@dataclass(frozen=True)
class Instance:
    """Immutable training corpus shared by reference with the network."""

    num_symbol_samples: int
    num_symbols: int
    symbols: Tuple[Symbol, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.num_symbol_samples < 1:
            raise InvalidConfiguration("num_symbol_samples must be positive")
        if self.num_symbols < 1:
            raise InvalidConfiguration("num_symbols must be positive")
        symbols = []
        for idx, symbol in enumerate(self.symbols):
            if symbol.target.ndim == 0:
                symbol = Symbol.labelled(
                    symbol.x_positions,
                    symbol.y_positions,
                    int(symbol.target),
                    self.num_symbols,
                )
            if symbol.num_samples != self.num_symbol_samples:
                raise InvalidConfiguration(
                    f"Symbol {idx} has {symbol.num_samples} samples, "
                    f"expected {self.num_symbol_samples}"
                )
            if symbol.target.shape != (self.num_symbols,):
                raise InvalidConfiguration(
                    f"Symbol {idx} target has shape {symbol.target.shape}, "
                    f"expected ({self.num_symbols},)"
                )
            if not (np.isin(symbol.target, (0, 1)).all() and symbol.target.sum() == 1):
                raise InvalidConfiguration(
                    f"Symbol {idx} target {symbol.target.tolist()} is not one-hot"
                )
            symbols.append(symbol)
        object.__setattr__(self, "symbols", tuple(symbols))

    @property
    def input_width(self) -> int:
        return 2 * self.num_symbol_samples

    @property
    def output_width(self) -> int:
        return self.num_symbols

    def __len__(self) -> int:
        return len(self.symbols)

    def inputs(self) -> Array:
        """Return the ``(n, 2 * num_symbol_samples)`` input matrix."""

        if not self.symbols:
            return np.zeros((0, self.input_width), dtype=np.float64)
        return np.stack([symbol.features() for symbol in self.symbols])

    def targets(self) -> Array:
        """Return the ``(n, num_symbols)`` one-hot target matrix."""

        if not self.symbols:
            return np.zeros((0, self.num_symbols), dtype=np.int64)
        return np.stack([symbol.target for symbol in self.symbols])

    @classmethod
    def from_arrays(
        cls,
        x_positions: Array,
        y_positions: Array,
        labels: Array,
        num_symbols: int | None = None,
    ) -> "Instance":
        """Build an instance from ``(n, k)`` coordinate arrays.

        ``labels`` may be a vector of class indices or an ``(n, c)`` one-hot
        matrix.
        """

        xs = np.asarray(x_positions, dtype=np.float64)
        ys = np.asarray(y_positions, dtype=np.float64)
        labels = np.asarray(labels)
        if xs.ndim != 2 or xs.shape != ys.shape:
            raise InvalidConfiguration(
                f"Coordinate arrays must share a 2-D shape, got {xs.shape} and {ys.shape}"
            )
        if labels.ndim == 2:
            num_symbols = num_symbols or int(labels.shape[1])
            targets = labels.astype(np.int64)
        else:
            indices = labels.reshape(-1).astype(int)
            num_symbols = num_symbols or int(indices.max()) + 1
            targets = np.stack([one_hot(int(i), num_symbols) for i in indices])
        if targets.shape[0] != xs.shape[0]:
            raise InvalidConfiguration(
                f"Got {targets.shape[0]} labels for {xs.shape[0]} symbols"
            )
        symbols = tuple(
            Symbol(xs[i], ys[i], targets[i]) for i in range(xs.shape[0])
        )
        return cls(
            num_symbol_samples=int(xs.shape[1]),
            num_symbols=int(num_symbols),
            symbols=symbols,
        )


@dataclass(frozen=True)
class TrainResult:
    """Summary returned by :meth:`BackpropagationEngine.train`."""

    epochs: int
    state: str
    loss: float
    per_class_error: Tuple[float, ...] = ()


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`symbolnet.training.pipelines.run_pipeline`."""

    epochs: int
    state: str
    loss: float
    architecture: Tuple[int, ...]
    per_class_error: Tuple[float, ...]
    metrics_path: str
    manifest_path: str


__all__ = ["Array", "Symbol", "Instance", "TrainResult", "RunResult", "one_hot"]
