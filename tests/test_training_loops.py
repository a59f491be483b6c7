from __future__ import annotations

from typing import List, Mapping

import numpy as np

from sigmanet.core.network import Network
from sigmanet.data import get_dataset
from sigmanet.training.losses import REGISTRY as LOSS_REGISTRY
from sigmanet.training.metrics import argmax, compute_metrics
from sigmanet.training.tester import evaluate, predict, score
from sigmanet.training.trainer import SGDOptimizer, Trainer


class _Capture:
    def __init__(self) -> None:
        self.history: List[tuple[int, Mapping[str, float]]] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.history.append((epoch, {k: float(v) for k, v in metrics.items()}))


def test_blob_classification_improves() -> None:
    dataset = get_dataset("synthetic", n_points=150, d_in=4, num_classes=3, seed=0)
    network = Network.from_sizes([4, 8, 3], seed=0)
    capture = _Capture()
    trainer = Trainer(network, SGDOptimizer(lr=3.0), callbacks=[capture], checkpoint_dir=None)

    result = trainer.fit(
        dataset.train_inputs,
        dataset.train_labels,
        epochs=40,
        batch_size=10,
        test_inputs=dataset.test_inputs,
        test_labels=dataset.test_labels,
    )

    assert len(capture.history) == 40
    first = capture.history[0][1]
    last = capture.history[-1][1]
    assert last["loss"] < first["loss"]
    assert result.accuracy is not None and result.accuracy >= 0.8


def test_argmax_ties_pick_lowest_index() -> None:
    assert argmax(np.array([0.2, 0.7, 0.7, 0.1])) == 1
    network = Network.zeros([3, 4])
    inputs = np.ones((2, 3), dtype=np.float32)
    first_class = np.array([[1, 0, 0, 0], [1, 0, 0, 0]], dtype=np.float32)
    second_class = np.array([[0, 1, 0, 0], [0, 1, 0, 0]], dtype=np.float32)
    assert score(network, inputs, first_class) == 1.0
    assert score(network, inputs, second_class) == 0.0


def test_evaluate_counts_matches_and_loss() -> None:
    network = Network.zeros([2, 2])
    inputs = np.zeros((4, 2), dtype=np.float32)
    labels = np.array([[1, 0], [0, 1], [1, 0], [0, 1]], dtype=np.float32)
    result = evaluate(network, inputs, labels, loss="mae")
    assert (result.matches, result.total) == (2, 4)
    assert result.accuracy == 0.5
    assert np.isclose(result.loss, 0.5)
    assert np.isclose(evaluate(network, inputs, labels, loss="mse").loss, 0.25)

    empty = evaluate(network, np.zeros((0, 2)), np.zeros((0, 2)))
    assert empty.accuracy == 0.0


def test_predict_and_metrics_agree() -> None:
    network = Network.from_sizes([4, 6, 3], seed=1)
    dataset = get_dataset("synthetic", n_points=30, d_in=4, num_classes=3, seed=1)
    outputs = predict(network, dataset.test_inputs)
    metrics = compute_metrics(["accuracy", "mae"], outputs, dataset.test_labels)
    assert np.isclose(metrics["accuracy"], score(network, dataset.test_inputs, dataset.test_labels))
    assert metrics["mae"] >= 0.0


def test_loss_registry_resolution() -> None:
    assert LOSS_REGISTRY.resolve("auto").name == "mae"
    assert list(LOSS_REGISTRY.names()) == ["mae", "mse"]
