"""Layer buffers tying weights, activations and errors together."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import AllocationFailure
from .tensor import DTYPE, Matrix, Vector, add, multiply


def _fill_uniform(rng: np.random.Generator, buffer: np.ndarray) -> None:
    """Draw ``[-1, 1)`` values straight into ``buffer``."""

    if buffer.size == 0:
        return
    try:
        rng.random(dtype=DTYPE, out=buffer)
    except MemoryError as exc:
        raise AllocationFailure(f"Unable to initialise buffer of shape {buffer.shape}") from exc
    # float32 draws in [0, 1) scale exactly onto [-1, 1)
    buffer *= DTYPE(2.0)
    buffer -= DTYPE(1.0)


@dataclass(eq=False)
class Layer:
    """One network layer.

    ``weights`` has shape ``length x previous_length``.  The input layer is
    built with ``previous_length == 0``; its weights and biases are never
    read and its ``activated_outputs`` holds the injected sample.
    """

    weights: Matrix
    biases: Vector
    weighted_outputs: Vector
    activated_outputs: Vector
    error: Vector

    @classmethod
    def create(
        cls,
        length: int,
        previous_length: int,
        rng: np.random.Generator | None = None,
    ) -> "Layer":
        if length <= 0:
            raise ValueError(f"Layer length must be positive, got {length}")
        if previous_length < 0:
            raise ValueError(f"previous_length must be non-negative, got {previous_length}")
        weights = Matrix.zeros(length, previous_length)
        biases = Vector.zeros(length)
        if rng is not None:
            _fill_uniform(rng, weights.data)
            _fill_uniform(rng, biases.data)
        return cls(
            weights=weights,
            biases=biases,
            weighted_outputs=Vector.zeros(length),
            activated_outputs=Vector.zeros(length),
            error=Vector.zeros(length),
        )

    @property
    def length(self) -> int:
        return len(self.biases)

    @property
    def previous_length(self) -> int:
        return self.weights.cols

    def feed_forward(self, previous: "Layer") -> Vector:
        """Set ``weighted_outputs = weights . previous.activated_outputs + biases``."""

        multiply(self.weighted_outputs, self.weights, previous.activated_outputs)
        add(self.weighted_outputs, self.weighted_outputs, self.biases)
        return self.weighted_outputs


__all__ = ["Layer"]
