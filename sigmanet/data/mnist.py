"""MNIST from a local ``.npz`` archive with an offline synthetic fallback."""

from __future__ import annotations

import os
from pathlib import Path

import numpy as np

from .registry import DataSpec, DatasetSpec, register_dataset
from .utils import ensure_float32, one_hot, take

MNIST_PATH_ENV = "SIGMANET_MNIST_PATH"


def _load_archive(path: Path) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    with np.load(path) as data:
        return (
            data["x_train"],
            data["y_train"].astype(np.int64),
            data["x_test"],
            data["y_test"].astype(np.int64),
        )


def _prepare_inputs(images: np.ndarray) -> np.ndarray:
    images = images.astype(np.float32)
    if images.size and images.max() > 1:
        images /= 255.0
    return ensure_float32(images.reshape(images.shape[0], -1))


def _offline_dataset(seed: int) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Return a deterministic synthetic MNIST-shaped dataset."""

    rng = np.random.default_rng(12345 + seed)
    images = rng.integers(0, 256, size=(320, 28, 28), dtype=np.uint8)
    labels = rng.integers(0, 10, size=(320,), dtype=np.int64)
    return images[:256], labels[:256], images[256:], labels[256:]


@register_dataset("mnist")
def build_mnist(
    *,
    path: str | Path | None = None,
    seed: int = 0,
    max_items: int | None = None,
) -> DatasetSpec:
    """Create a :class:`DatasetSpec` for MNIST.

    ``path`` (or ``$SIGMANET_MNIST_PATH``) must point at an archive holding
    ``x_train``, ``y_train``, ``x_test`` and ``y_test``.  Without one a
    synthetic fixture of the same shape is used.
    """

    path = path or os.environ.get(MNIST_PATH_ENV)
    if path is not None and Path(path).exists():
        x_train, y_train, x_test, y_test = _load_archive(Path(path))
        provenance: dict[str, object] = {"mode": "local", "local_path": str(path)}
    else:
        x_train, y_train, x_test, y_test = _offline_dataset(seed)
        provenance = {"mode": "offline", "source": "synthetic"}
    provenance.update({"seed": seed, "max_items": max_items})

    return DatasetSpec(
        name="mnist",
        train_inputs=take(_prepare_inputs(x_train), max_items),
        train_labels=take(one_hot(y_train, 10), max_items),
        test_inputs=take(_prepare_inputs(x_test), max_items),
        test_labels=take(one_hot(y_test, 10), max_items),
        data_spec=DataSpec(
            d_in=784,
            d_out=10,
            num_classes=10,
            normalization={"inputs": {"method": "minmax", "range": [0.0, 1.0]}},
        ),
        provenance=provenance,
    )


__all__ = ["build_mnist"]
