"""Core typing contracts for sigmanet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network topology."""

    layer_dims: List[int]

    @property
    def parameter_count(self) -> int:
        dims = self.layer_dims
        weights = sum(dims[i] * dims[i - 1] for i in range(1, len(dims)))
        return int(weights + sum(dims[1:]))


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :meth:`sigmanet.training.trainer.Trainer.fit`."""

    epochs: int
    updates: int
    accuracy: float | None
    checkpoint_path: str = ""
    metrics_path: str = ""
    manifest_path: str = ""
