"""Deterministic synthetic symbol corpora."""

from __future__ import annotations

from typing import Callable, List, Tuple

import numpy as np

from ..core.types import Array, Instance, Symbol
from .registry import DatasetSpec, register_dataset

Curve = Callable[[Array], Tuple[Array, Array]]


def _circle(t: Array) -> Tuple[Array, Array]:
    return np.cos(2 * np.pi * t), np.sin(2 * np.pi * t)


def _horizontal(t: Array) -> Tuple[Array, Array]:
    return 2 * t - 1, np.zeros_like(t)


def _vertical(t: Array) -> Tuple[Array, Array]:
    return np.zeros_like(t), 2 * t - 1


def _diagonal(t: Array) -> Tuple[Array, Array]:
    return 2 * t - 1, 2 * t - 1


def _vee(t: Array) -> Tuple[Array, Array]:
    x = 2 * t - 1
    return x, 2 * np.abs(x) - 1


def _zigzag(t: Array) -> Tuple[Array, Array]:
    return 2 * t - 1, np.sign(np.sin(4 * np.pi * t + 1e-3))


_TEMPLATES: List[Curve] = [_circle, _horizontal, _vertical, _diagonal, _vee, _zigzag]


def template(class_index: int) -> Curve:
    """Return the curve drawn for ``class_index``.

    The first classes use fixed shapes; later ones fall back to Lissajous
    figures whose frequencies depend on the index.
    """

    if class_index < len(_TEMPLATES):
        return _TEMPLATES[class_index]
    extra = class_index - len(_TEMPLATES)
    a = 1 + extra % 3
    b = 2 + extra // 3

    def _lissajous(t: Array) -> Tuple[Array, Array]:
        return np.sin(2 * np.pi * a * t), np.sin(2 * np.pi * b * t + np.pi / 4)

    return _lissajous


def make_symbols(
    num_symbols: int = 3,
    num_symbol_samples: int = 5,
    samples_per_symbol: int = 10,
    noise: float = 0.05,
    seed: int = 0,
) -> Instance:
    """Draw ``samples_per_symbol`` noisy copies of each class template.

    Classes are interleaved so that consecutive symbols belong to different
    classes.
    """

    if samples_per_symbol < 1:
        raise ValueError("samples_per_symbol must be positive")
    if noise < 0:
        raise ValueError("noise must be >= 0")
    rng = np.random.default_rng(seed)
    t = np.linspace(0.0, 1.0, num_symbol_samples)
    curves = [template(cls) for cls in range(num_symbols)]
    symbols: List[Symbol] = []
    for _ in range(samples_per_symbol):
        for cls, curve in enumerate(curves):
            x, y = curve(t)
            x = x + noise * rng.standard_normal(num_symbol_samples)
            y = y + noise * rng.standard_normal(num_symbol_samples)
            symbols.append(Symbol.labelled(x, y, cls, num_symbols))
    return Instance(
        num_symbol_samples=num_symbol_samples,
        num_symbols=num_symbols,
        symbols=tuple(symbols),
    )


def _factory(
    num_symbols: int = 3,
    num_symbol_samples: int = 5,
    samples_per_symbol: int = 10,
    noise: float = 0.05,
    seed: int = 0,
    **_: object,
) -> DatasetSpec:
    instance = make_symbols(
        num_symbols=num_symbols,
        num_symbol_samples=num_symbol_samples,
        samples_per_symbol=samples_per_symbol,
        noise=noise,
        seed=seed,
    )
    provenance = {
        "type": "synthetic_symbols",
        "num_symbols": num_symbols,
        "num_symbol_samples": num_symbol_samples,
        "samples_per_symbol": samples_per_symbol,
        "noise": noise,
        "seed": seed,
    }
    return DatasetSpec(name="synthetic_symbols", instance=instance, provenance=provenance)


register_dataset("synthetic_symbols", _factory)
