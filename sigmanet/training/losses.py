"""Loss registry used to report training cost.

The registered losses are for reporting only: the backward pass always
propagates ``activated - expected`` from the output layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.types import Array

LossFn = Callable[[Array, Array], float]


@dataclass(frozen=True)
class Loss:
    """Named scalar cost over one prediction/target pair."""

    name: str
    fn: LossFn

    def __call__(self, predictions: Array, targets: Array) -> float:
        return self.fn(predictions, targets)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn) -> None:
        self._registry[name] = Loss(name, fn)

    def get(self, name: str) -> Loss:
        try:
            return self._registry[name]
        except KeyError as exc:
            raise KeyError(f"Unknown loss: {name}") from exc

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str) -> Loss:
        if name == "auto":
            name = "mae"
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return self._registry[name]


REGISTRY = LossRegistry()


def _mae(pred: Array, target: Array) -> float:
    return float(np.mean(np.abs(pred - target)))


def _mse(pred: Array, target: Array) -> float:
    return float(np.mean(np.square(pred - target)))


REGISTRY.register("mae", _mae)
REGISTRY.register("mse", _mse)

__all__ = ["Loss", "LossRegistry", "REGISTRY"]
