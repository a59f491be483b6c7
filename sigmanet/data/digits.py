"""scikit-learn 8x8 handwritten digits."""

from __future__ import annotations

from sklearn.datasets import load_digits

from .registry import DataSpec, DatasetSpec, register_dataset
from .utils import deterministic_split, ensure_float32, one_hot, take


@register_dataset("digits")
def build_digits(
    *,
    test_split: float = 0.2,
    seed: int = 0,
    max_items: int | None = None,
) -> DatasetSpec:
    """Create a :class:`DatasetSpec` for the bundled 1797-sample digits set."""

    bunch = load_digits()
    # Pixel intensities are integers in [0, 16].
    inputs = ensure_float32(bunch.data / 16.0)
    labels = one_hot(bunch.target, num_classes=10)
    splits = deterministic_split(inputs.shape[0], test_split=test_split, seed=seed)

    return DatasetSpec(
        name="digits",
        train_inputs=take(inputs[splits.train], max_items),
        train_labels=take(labels[splits.train], max_items),
        test_inputs=take(inputs[splits.test], max_items),
        test_labels=take(labels[splits.test], max_items),
        data_spec=DataSpec(
            d_in=int(inputs.shape[1]),
            d_out=10,
            num_classes=10,
            normalization={"inputs": {"method": "scale", "divisor": 16.0}},
        ),
        provenance={
            "source": "sklearn.datasets.load_digits",
            "test_split": test_split,
            "seed": seed,
            "max_items": max_items,
        },
    )


__all__ = ["build_digits"]
