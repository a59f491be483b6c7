"""Deterministic mini-batch gradient descent for sigmoid networks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from ..checkpoint.codec import save_network
from ..core.errors import ShapeMismatch
from ..core.network import Network
from ..core.tensor import (
    Matrix,
    Vector,
    add,
    add_matrix,
    as_matrix,
    outer_product,
    scalar_multiply,
    scalar_multiply_matrix,
    subtract,
    subtract_matrix,
)
from ..core.types import Array, RunResult
from ..reporting.metrics import ConsoleSink
from .losses import REGISTRY as LOSS_REGISTRY
from .tester import evaluate

logger = logging.getLogger(__name__)


def is_batch_boundary(index: int, batch_size: int, last_index: int) -> bool:
    """Flush after example ``index``; ``index == 0`` always flushes on its own."""

    return index % batch_size == 0 or index == last_index


def count_updates(num_examples: int, batch_size: int) -> int:
    """Number of weight flushes one epoch over ``num_examples`` performs."""

    if num_examples <= 0:
        return 0
    last = num_examples - 1
    return last // batch_size + 1 + (1 if last % batch_size else 0)


@dataclass
class GradientBuffers:
    """Per-layer gradient sums for the current batch; slot 0 is unused."""

    weights: List[Matrix | None]
    biases: List[Vector | None]
    _outer: List[Matrix | None] = field(repr=False, default_factory=list)

    @classmethod
    def for_network(cls, network: Network) -> "GradientBuffers":
        weights: List[Matrix | None] = [None]
        biases: List[Vector | None] = [None]
        outer: List[Matrix | None] = [None]
        for layer in network.layers[1:]:
            weights.append(Matrix.zeros(*layer.weights.shape))
            biases.append(Vector.zeros(layer.length))
            outer.append(Matrix.zeros(*layer.weights.shape))
        return cls(weights=weights, biases=biases, _outer=outer)

    def accumulate(self, network: Network) -> None:
        """Add the current example's gradients from the layers' error vectors."""

        layers = network.layers
        for idx in range(1, len(layers)):
            scratch = self._outer[idx]
            outer_product(scratch, layers[idx].error, layers[idx - 1].activated_outputs)
            add_matrix(self.weights[idx], self.weights[idx], scratch)
            add(self.biases[idx], self.biases[idx], layers[idx].error)

    def reset(self) -> None:
        for matrix in self.weights[1:]:
            matrix.zero()
        for vector in self.biases[1:]:
            vector.zero()


@dataclass
class SGDOptimizer:
    """Plain mini-batch gradient descent."""

    lr: float

    def step(self, network: Network, grads: GradientBuffers, batch_size: int) -> None:
        """Subtract ``lr / batch_size`` times the accumulated gradients."""

        scale = self.lr / batch_size
        for idx in range(1, len(network.layers)):
            layer = network.layers[idx]
            weights_grad = grads.weights[idx]
            biases_grad = grads.biases[idx]
            scalar_multiply_matrix(weights_grad, weights_grad, scale)
            subtract_matrix(layer.weights, layer.weights, weights_grad)
            scalar_multiply(biases_grad, biases_grad, scale)
            subtract(layer.biases, layer.biases, biases_grad)


class Trainer:
    """Run the per-example forward/backward loop with batched updates."""

    def __init__(
        self,
        network: Network,
        optimizer: SGDOptimizer,
        callbacks: Sequence[object] | None = None,
        *,
        loss: str = "auto",
        checkpoint_dir: str | Path | None = ".",
        checkpoint_hint: str = "",
    ) -> None:
        self.network = network
        self.optimizer = optimizer
        self.callbacks = list(callbacks or [])
        self.loss = LOSS_REGISTRY.resolve(loss)
        self.checkpoint_dir = Path(checkpoint_dir) if checkpoint_dir is not None else None
        self.checkpoint_hint = checkpoint_hint
        self.updates = 0

    def fit(
        self,
        train_inputs: Matrix | Array,
        train_labels: Matrix | Array,
        epochs: int,
        batch_size: int,
        *,
        test_inputs: Matrix | Array | None = None,
        test_labels: Matrix | Array | None = None,
    ) -> RunResult:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if epochs < 0:
            raise ValueError(f"epochs must be >= 0, got {epochs}")
        inputs, labels = self._check_dataset(train_inputs, train_labels)
        has_test = test_inputs is not None and test_labels is not None
        if has_test:
            test_x, test_y = self._check_dataset(test_inputs, test_labels)

        self.updates = 0
        grads = GradientBuffers.for_network(self.network)
        accuracy: float | None = None
        checkpoint_path: Path | None = None
        for epoch in range(1, epochs + 1):
            updates, train_loss = self.train_epoch(inputs, labels, batch_size, grads)
            metrics: Dict[str, float] = {"loss": train_loss, "updates": float(updates)}
            if has_test:
                result = evaluate(self.network, test_x, test_y, loss=self.loss.name)
                accuracy = result.accuracy
                metrics["accuracy"] = result.accuracy
                metrics["test_loss"] = result.loss
            self._emit_epoch(epoch, metrics)
            checkpoint_path = self._checkpoint() or checkpoint_path

        checkpoint_path = self._checkpoint() or checkpoint_path
        return RunResult(
            epochs=epochs,
            updates=self.updates,
            accuracy=accuracy,
            checkpoint_path=str(checkpoint_path) if checkpoint_path else "",
        )

    def train_epoch(
        self,
        inputs: Matrix,
        labels: Matrix,
        batch_size: int,
        grads: GradientBuffers | None = None,
    ) -> tuple[int, float]:
        """Run one pass over ``inputs`` and return ``(flushes, mean loss)``."""

        if grads is None:
            grads = GradientBuffers.for_network(self.network)
        grads.reset()
        network = self.network
        last_index = inputs.rows - 1
        flushes = 0
        total_loss = 0.0
        for index in range(inputs.rows):
            target = labels.row(index)
            output = network.forward(inputs.row(index))
            total_loss += self.loss(output.data, target.data)
            network.backward(target)
            grads.accumulate(network)
            if is_batch_boundary(index, batch_size, last_index):
                self.optimizer.step(network, grads, batch_size)
                grads.reset()
                flushes += 1
        self.updates += flushes
        logger.debug("Epoch over %d examples applied %d updates", inputs.rows, flushes)
        mean_loss = total_loss / inputs.rows if inputs.rows else 0.0
        return flushes, mean_loss

    # ------------------------------------------------------------------
    # Internal helpers

    def _check_dataset(
        self, inputs: Matrix | Array, labels: Matrix | Array
    ) -> tuple[Matrix, Matrix]:
        inputs = as_matrix(inputs)
        labels = as_matrix(labels)
        sizes = self.network.sizes
        if inputs.cols != sizes[0]:
            raise ShapeMismatch("training inputs", (inputs.rows, sizes[0]), inputs.shape)
        if labels.shape != (inputs.rows, sizes[-1]):
            raise ShapeMismatch("training labels", (inputs.rows, sizes[-1]), labels.shape)
        return inputs, labels

    def _checkpoint(self) -> Path | None:
        if self.checkpoint_dir is None:
            return None
        return save_network(self.network, self.checkpoint_hint, self.checkpoint_dir)

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


def train(
    network: Network,
    train_inputs: Matrix | Array,
    train_labels: Matrix | Array,
    epochs: int,
    batch_size: int,
    learning_rate: float,
    test_inputs: Matrix | Array | None = None,
    test_labels: Matrix | Array | None = None,
    checkpoint_hint: str = "",
    *,
    checkpoint_dir: str | Path = ".",
    callbacks: Sequence[object] | None = None,
) -> RunResult:
    """Train ``network`` in place, printing progress and checkpointing every epoch."""

    trainer = Trainer(
        network,
        SGDOptimizer(lr=learning_rate),
        callbacks=[ConsoleSink(total_epochs=epochs), *(callbacks or [])],
        checkpoint_dir=checkpoint_dir,
        checkpoint_hint=checkpoint_hint,
    )
    return trainer.fit(
        train_inputs,
        train_labels,
        epochs,
        batch_size,
        test_inputs=test_inputs,
        test_labels=test_labels,
    )


__all__ = [
    "GradientBuffers",
    "SGDOptimizer",
    "Trainer",
    "count_updates",
    "is_batch_boundary",
    "train",
]
