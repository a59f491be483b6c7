"""Forward-only evaluation of a network on a labelled set."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.network import Network
from ..core.tensor import Matrix, as_matrix
from ..core.types import Array
from .losses import REGISTRY as LOSS_REGISTRY
from .metrics import one_hot_matches


@dataclass(frozen=True)
class Evaluation:
    matches: int
    total: int
    loss: float

    @property
    def accuracy(self) -> float:
        return self.matches / self.total if self.total else 0.0


def predict(network: Network, inputs: Matrix | Array) -> Array:
    """Run the forward pass for every row of ``inputs``; returns ``N x outputs``."""

    inputs = as_matrix(inputs)
    if inputs.cols != network.sizes[0]:
        raise ShapeMismatch("predict inputs", (inputs.rows, network.sizes[0]), inputs.shape)
    outputs = np.zeros((inputs.rows, network.sizes[-1]), dtype=np.float32)
    for row in range(inputs.rows):
        outputs[row] = network.forward(inputs.row(row)).data
    return outputs


def evaluate(
    network: Network,
    inputs: Matrix | Array,
    labels: Matrix | Array,
    *,
    loss: str = "auto",
) -> Evaluation:
    labels = as_matrix(labels)
    outputs = predict(network, inputs)
    if labels.shape != outputs.shape:
        raise ShapeMismatch("evaluate labels", outputs.shape, labels.shape)
    loss_fn = LOSS_REGISTRY.resolve(loss)
    total = outputs.shape[0]
    mean_loss = (
        float(np.mean([loss_fn(outputs[row], labels.data[row]) for row in range(total)]))
        if total
        else 0.0
    )
    return Evaluation(
        matches=one_hot_matches(outputs, labels.data),
        total=total,
        loss=mean_loss,
    )


def score(network: Network, inputs: Matrix | Array, labels: Matrix | Array) -> float:
    """Return ``matches / total`` for ``inputs`` against one-hot ``labels``."""

    return evaluate(network, inputs, labels).accuracy


__all__ = ["Evaluation", "evaluate", "predict", "score"]
