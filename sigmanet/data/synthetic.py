"""Pure in-memory synthetic classification data."""

from __future__ import annotations

import numpy as np

from .registry import DataSpec, DatasetSpec, register_dataset
from .utils import deterministic_split, ensure_float32, one_hot


def _make_blobs(
    n_points: int, d_in: int, num_classes: int, spread: float, seed: int
) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    centers = rng.uniform(0.0, 1.0, size=(num_classes, d_in))
    labels = np.arange(n_points) % num_classes
    rng.shuffle(labels)
    points = centers[labels] + spread * rng.standard_normal((n_points, d_in))
    return ensure_float32(points), labels


@register_dataset("synthetic")
def build_synthetic(
    *,
    n_points: int = 200,
    d_in: int = 4,
    num_classes: int = 3,
    spread: float = 0.05,
    test_split: float = 0.2,
    seed: int = 0,
) -> DatasetSpec:
    """Gaussian blobs around random centres in the unit cube."""

    inputs, labels = _make_blobs(n_points, d_in, num_classes, spread, seed)
    targets = one_hot(labels, num_classes)
    splits = deterministic_split(n_points, test_split=test_split, seed=seed)
    return DatasetSpec(
        name="synthetic",
        train_inputs=inputs[splits.train],
        train_labels=targets[splits.train],
        test_inputs=inputs[splits.test],
        test_labels=targets[splits.test],
        data_spec=DataSpec(d_in=d_in, d_out=num_classes, num_classes=num_classes),
        provenance={
            "type": "synthetic",
            "n_points": n_points,
            "spread": spread,
            "test_split": test_split,
            "seed": seed,
        },
    )


__all__ = ["build_synthetic"]
