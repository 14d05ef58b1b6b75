"""Dataset registry and built-in symbol corpora."""

from . import symbols as _symbols  # noqa: F401
from .registry import DatasetSpec, available_datasets, get_dataset, register_dataset
from .symbols import make_symbols

__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "make_symbols",
    "register_dataset",
]
