"""Utility helpers for dataset providers."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SplitIndices:
    """Indices for train/test partitions."""

    train: np.ndarray
    test: np.ndarray


def deterministic_split(n_samples: int, *, test_split: float = 0.2, seed: int = 0) -> SplitIndices:
    """Return shuffled but reproducible train/test indices."""

    if not 0 <= test_split < 1:
        raise ValueError("test_split must be in [0, 1)")

    rng = np.random.default_rng(seed)
    indices = np.arange(n_samples)
    rng.shuffle(indices)

    test_size = int(round(n_samples * test_split))
    # Ensure at least one test sample when a test split was requested
    test_size = min(max(test_size, 1 if test_split > 0 else 0), n_samples)
    if n_samples - test_size <= 0:
        raise ValueError("Not enough samples for the requested split")
    return SplitIndices(train=indices[test_size:], test=indices[:test_size])


def one_hot(labels: np.ndarray, num_classes: int) -> np.ndarray:
    """Encode integer class labels as float32 one-hot rows."""

    labels = np.asarray(labels).reshape(-1).astype(np.int64)
    if labels.size and (labels.min() < 0 or labels.max() >= num_classes):
        raise ValueError(f"Labels must lie in [0, {num_classes}), got {labels.min()}..{labels.max()}")
    eye = np.eye(num_classes, dtype=np.float32)
    return eye[labels]


def ensure_float32(array: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(array, dtype=np.float32)


def take(array: np.ndarray, max_items: int | None) -> np.ndarray:
    return array if max_items is None else array[: int(max_items)]


__all__ = ["SplitIndices", "deterministic_split", "ensure_float32", "one_hot", "take"]
