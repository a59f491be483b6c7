"""Metric helpers for evaluating network outputs against one-hot labels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping

import numpy as np

from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def argmax(values: Array) -> int:
    """Index of the largest value; ties resolve to the lowest index."""

    return int(np.argmax(values))


def one_hot_matches(predictions: Array, targets: Array) -> int:
    """Count rows whose predicted argmax is a ``1`` in the one-hot target."""

    if predictions.shape[0] == 0:
        return 0
    pred_idx = np.argmax(predictions, axis=1)
    hits = targets[np.arange(targets.shape[0]), pred_idx] == 1
    return int(np.count_nonzero(hits))


def compute_metric(name: str, predictions: Array, targets: Array) -> MetricResult:
    key = name.lower()
    total = predictions.shape[0]
    if key == "accuracy":
        value = one_hot_matches(predictions, targets) / total if total else 0.0
    elif key == "mae":
        value = float(np.mean(np.abs(predictions - targets))) if total else 0.0
    elif key == "rmse":
        value = float(np.sqrt(np.mean((predictions - targets) ** 2))) if total else 0.0
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=float(value))


def compute_metrics(
    names: Iterable[str], predictions: Array, targets: Array
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets)
        results[metric.name] = metric.value
    return results


__all__ = ["MetricResult", "argmax", "compute_metrics", "one_hot_matches"]
