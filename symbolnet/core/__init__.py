"""Core numerical primitives for symbolnet."""

from . import activations, errors, layers, types

__all__ = ["activations", "errors", "layers", "types"]
