"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from ..core.types import Array


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    d_in:
        Flattened dimensionality of one input sample.
    d_out:
        Width of the one-hot label rows.
    num_classes:
        Number of discrete classes (equal to ``d_out``).
    normalization:
        Metadata describing scaling already applied to the inputs.
    """

    d_in: int
    d_out: int
    num_classes: int
    normalization: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetSpec:
    """Train and test arrays plus their provenance.

    ``*_inputs`` are ``N x d_in`` float32 features; ``*_labels`` are
    ``N x d_out`` one-hot float32 rows.
    """

    name: str
    train_inputs: Array
    train_labels: Array
    test_inputs: Array
    test_labels: Array
    data_spec: DataSpec
    provenance: Dict[str, Any]

    @property
    def splits(self) -> Dict[str, int]:
        return {
            "train": int(self.train_inputs.shape[0]),
            "test": int(self.test_inputs.shape[0]),
        }


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("digits")
        def build_digits(**kwargs):
            ...

    or directly::

        register_dataset("digits", build_digits)
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
    """Return the :class:`DatasetSpec` built by the factory registered as ``dataset``."""

    if dataset not in _REGISTRY:
        raise KeyError(f"Unknown dataset: {dataset}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    d_in, d_out = spec.data_spec.d_in, spec.data_spec.d_out
    for split, inputs, labels in (
        ("train", spec.train_inputs, spec.train_labels),
        ("test", spec.test_inputs, spec.test_labels),
    ):
        if inputs.ndim != 2 or inputs.shape[1] != d_in:
            raise ValueError(f"{split} inputs must be N x {d_in}, got {inputs.shape}")
        if labels.shape != (inputs.shape[0], d_out):
            raise ValueError(
                f"{split} labels must be {(inputs.shape[0], d_out)}, got {labels.shape}"
            )


__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
