"""Exception taxonomy for symbolnet."""

from __future__ import annotations


class NetworkError(Exception):
    """Base class for all errors raised by the network engine."""


class InvalidConfiguration(NetworkError, ValueError):
    """Raised when a network or corpus is constructed from an invalid setup."""


class InvalidArgument(NetworkError, ValueError):
    """Raised when a setter or editor receives an out-of-bounds value."""


class InvalidOperation(NetworkError, RuntimeError):
    """Raised when an architecture edit would touch a fixed layer."""


class DimensionMismatch(NetworkError, ValueError):
    """Raised when a vector does not match the width a layer expects."""


class NumericalInstability(NetworkError, ArithmeticError):
    """Raised when training produces non-finite activations or weights."""


__all__ = [
    "NetworkError",
    "InvalidConfiguration",
    "InvalidArgument",
    "InvalidOperation",
    "DimensionMismatch",
    "NumericalInstability",
]
