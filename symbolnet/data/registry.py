"""Dataset registry returning symbol corpora."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from ..core.types import Instance


@dataclass(frozen=True)
class DatasetSpec:
    """A registered corpus together with the metadata needed to reproduce it."""

    name: str
    instance: Instance
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def num_symbols(self) -> int:
        return self.instance.num_symbols

    @property
    def num_symbol_samples(self) -> int:
        return self.instance.num_symbol_samples


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("letters")
        def make_letters(**kwargs):
            ...

    or directly::

        register_dataset("letters", make_letters)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Build the :class:`DatasetSpec` registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset: {dataset}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if not isinstance(spec.instance, Instance):
        raise TypeError(f"Dataset {spec.name!r} did not produce an Instance")
    if len(spec.instance) == 0:
        raise ValueError(f"Dataset {spec.name!r} contains no symbols")


__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
