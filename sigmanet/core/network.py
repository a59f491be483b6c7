"""Ordered layer stack with the forward and backward passes."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence

import numpy as np

from .activations import dsigmoid_vector, sigmoid_vector
from .errors import ShapeMismatch
from .layer import Layer
from .tensor import Matrix, Vector, assign, hadamard, multiply, subtract, transpose
from .types import Array, ModelDescription


def _as_vector(values: Vector | Array | Iterable[float]) -> Vector:
    if isinstance(values, Vector):
        return values
    return Vector.from_array(values)


class Network:
    """Feed-forward sigmoid network; ``layers[0]`` is the input layer."""

    def __init__(self, layers: Sequence[Layer]) -> None:
        layers = list(layers)
        if len(layers) < 2:
            raise ValueError(f"A network needs at least 2 layers, got {len(layers)}")
        for idx in range(1, len(layers)):
            expected = (layers[idx].length, layers[idx - 1].length)
            if layers[idx].weights.shape != expected:
                raise ShapeMismatch(f"layer {idx} weights", expected, layers[idx].weights.shape)
        self.layers: List[Layer] = layers
        # Scratch buffers reused by every backward pass.
        self._derivs = [Vector.zeros(layer.length) for layer in layers]
        self._transposed: List[Matrix | None] = [None] + [
            Matrix.zeros(layer.weights.cols, layer.weights.rows) for layer in layers[1:]
        ]

    @classmethod
    def from_sizes(
        cls,
        sizes: Sequence[int],
        *,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> "Network":
        """Build a network with weights and biases drawn from ``[-1, 1)``."""

        if rng is None:
            rng = np.random.default_rng(seed)
        return cls(cls._build_layers(sizes, rng))

    @classmethod
    def zeros(cls, sizes: Sequence[int]) -> "Network":
        """Build a network whose weights and biases are all zero."""

        return cls(cls._build_layers(sizes, None))

    @staticmethod
    def _build_layers(sizes: Sequence[int], rng: np.random.Generator | None) -> List[Layer]:
        dims = [int(size) for size in sizes]
        if len(dims) < 2:
            raise ValueError(f"A network needs at least 2 layers, got {len(dims)}")
        layers = [Layer.create(dims[0], 0, rng)]
        for prev, size in zip(dims[:-1], dims[1:]):
            layers.append(Layer.create(size, prev, rng))
        return layers

    # ------------------------------------------------------------------
    # Introspection

    def __len__(self) -> int:
        return len(self.layers)

    @property
    def sizes(self) -> List[int]:
        return [layer.length for layer in self.layers]

    @property
    def input_layer(self) -> Layer:
        return self.layers[0]

    @property
    def output_layer(self) -> Layer:
        return self.layers[-1]

    def describe(self) -> ModelDescription:
        return ModelDescription(layer_dims=self.sizes)

    def parameter_count(self) -> int:
        return self.describe().parameter_count

    def state_dict(self) -> Mapping[str, Array]:
        state: Dict[str, Array] = {}
        for idx, layer in enumerate(self.layers):
            state[f"W{idx}"] = layer.weights.data.copy()
            state[f"b{idx}"] = layer.biases.data.copy()
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx, layer in enumerate(self.layers):
            for key, buffer in ((f"W{idx}", layer.weights.data), (f"b{idx}", layer.biases.data)):
                if key not in state:
                    raise KeyError(f"Missing parameter {key} in state dict")
                value = np.asarray(state[key])
                if value.shape != buffer.shape:
                    raise ShapeMismatch(f"load_state_dict {key}", buffer.shape, value.shape)
                buffer[...] = value

    # ------------------------------------------------------------------
    # Passes

    def inject(self, inputs: Vector | Array | Iterable[float]) -> None:
        """Copy ``inputs`` into the input layer's activations."""

        assign(self.input_layer.activated_outputs, _as_vector(inputs))

    def forward(self, inputs: Vector | Array | Iterable[float] | None = None) -> Vector:
        """Run the forward pass and return the output layer's activations."""

        if inputs is not None:
            self.inject(inputs)
        for idx in range(1, len(self.layers)):
            layer = self.layers[idx]
            layer.feed_forward(self.layers[idx - 1])
            sigmoid_vector(layer.activated_outputs, layer.weighted_outputs)
        return self.output_layer.activated_outputs

    def backward(self, expected: Vector | Array | Iterable[float]) -> None:
        """Populate every non-input layer's ``error`` from the output backwards."""

        target = _as_vector(expected)
        last = len(self.layers) - 1
        output = self.layers[last]
        if len(target) != output.length:
            raise ShapeMismatch("backward", (output.length,), (len(target),))

        deriv = self._derivs[last]
        subtract(output.error, output.activated_outputs, target)
        dsigmoid_vector(deriv, output.weighted_outputs)
        hadamard(output.error, output.error, deriv)

        for idx in range(last - 1, 0, -1):
            layer = self.layers[idx]
            upstream = self.layers[idx + 1]
            transposed = self._transposed[idx + 1]
            transpose(transposed, upstream.weights)
            multiply(layer.error, transposed, upstream.error)
            deriv = self._derivs[idx]
            dsigmoid_vector(deriv, layer.weighted_outputs)
            hadamard(layer.error, layer.error, deriv)


__all__ = ["Network"]
