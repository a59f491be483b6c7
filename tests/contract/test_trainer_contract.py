import numpy as np
import pytest

from sigmanet.checkpoint.codec import load_network
from sigmanet.core.errors import ShapeMismatch
from sigmanet.core.network import Network
from sigmanet.training.trainer import (
    GradientBuffers,
    SGDOptimizer,
    Trainer,
    count_updates,
    is_batch_boundary,
    train,
)


class _RecordingOptimizer(SGDOptimizer):
    def __init__(self, lr: float) -> None:
        super().__init__(lr=lr)
        self.batch_bias_sums: list[np.ndarray] = []

    def step(self, network, grads, batch_size):
        self.batch_bias_sums.append(grads.biases[-1].data.copy())
        super().step(network, grads, batch_size)


def _dataset(n: int, d_in: int = 3, classes: int = 2, seed: int = 0):
    rng = np.random.default_rng(seed)
    inputs = rng.uniform(0.0, 1.0, size=(n, d_in)).astype(np.float32)
    labels = np.eye(classes, dtype=np.float32)[rng.integers(0, classes, size=n)]
    return inputs, labels


@pytest.mark.parametrize(
    "n, batch, flushes",
    [(10, 3, 4), (10, 5, 3), (9, 4, 3), (12, 4, 4), (1, 4, 1), (5, 1, 5)],
)
def test_flush_count_includes_index_zero(n, batch, flushes):
    assert count_updates(n, batch) == flushes
    indices = [j for j in range(n) if is_batch_boundary(j, batch, n - 1)]
    assert indices[0] == 0
    assert indices[-1] == n - 1
    assert len(indices) == flushes

    inputs, labels = _dataset(n)
    optimizer = _RecordingOptimizer(lr=0.5)
    trainer = Trainer(Network.from_sizes([3, 4, 2], seed=1), optimizer, checkpoint_dir=None)
    result = trainer.fit(inputs, labels, epochs=2, batch_size=batch)
    assert len(optimizer.batch_bias_sums) == 2 * flushes
    assert result.updates == 2 * flushes


def test_first_batch_holds_a_single_example():
    inputs, labels = _dataset(10)
    network = Network.from_sizes([3, 4, 2], seed=2)
    probe = Network.zeros([3, 4, 2])
    probe.load_state_dict(network.state_dict())
    probe.forward(inputs[0])
    probe.backward(labels[0])
    first_error = probe.output_layer.error.data.copy()

    optimizer = _RecordingOptimizer(lr=1.0)
    Trainer(network, optimizer, checkpoint_dir=None).fit(inputs, labels, epochs=1, batch_size=5)
    np.testing.assert_allclose(optimizer.batch_bias_sums[0], first_error, rtol=1e-6)


def test_single_example_update_matches_manual_gradient_step():
    network = Network.from_sizes([2, 2], seed=4)
    before_w = network.layers[1].weights.data.copy()
    before_b = network.layers[1].biases.data.copy()
    x = np.array([[1.0, 0.5]], dtype=np.float32)
    y = np.array([[0.0, 1.0]], dtype=np.float32)

    probe = Network.zeros([2, 2])
    probe.load_state_dict(network.state_dict())
    probe.forward(x[0])
    probe.backward(y[0])
    delta = probe.output_layer.error.data

    lr, batch = 3.0, 10
    Trainer(network, SGDOptimizer(lr=lr), checkpoint_dir=None).fit(x, y, epochs=1, batch_size=batch)
    scale = np.float32(lr / batch)
    np.testing.assert_allclose(
        network.layers[1].weights.data, before_w - scale * np.outer(delta, x[0]), rtol=1e-6, atol=1e-7
    )
    np.testing.assert_allclose(network.layers[1].biases.data, before_b - scale * delta, rtol=1e-6, atol=1e-7)


def test_gradient_buffers_reset_to_zero():
    network = Network.from_sizes([3, 4, 2], seed=0)
    grads = GradientBuffers.for_network(network)
    network.forward([1.0, 1.0, 1.0])
    network.backward([1.0, 0.0])
    grads.accumulate(network)
    assert np.any(grads.weights[2].data != 0.0)
    grads.reset()
    assert not np.any(grads.weights[1].data) and not np.any(grads.biases[2].data)
    assert grads.weights[0] is None


def test_training_is_deterministic_for_fixed_seed():
    inputs, labels = _dataset(30)
    runs = []
    for _ in range(2):
        network = Network.from_sizes([3, 5, 2], seed=9)
        Trainer(network, SGDOptimizer(lr=2.0), checkpoint_dir=None).fit(
            inputs, labels, epochs=3, batch_size=4
        )
        runs.append(network.state_dict())
    for key in runs[0]:
        np.testing.assert_array_equal(runs[0][key], runs[1][key])


def test_checkpoint_written_every_epoch(tmp_path):
    inputs, labels = _dataset(12)
    saved: list[int] = []

    class _Capture:
        def on_epoch(self, epoch, metrics):
            saved.append(len(list(tmp_path.glob("*.net"))))

    network = Network.from_sizes([3, 4, 2], seed=0)
    trainer = Trainer(
        network,
        SGDOptimizer(lr=1.0),
        callbacks=[_Capture()],
        checkpoint_dir=tmp_path,
        checkpoint_hint="contract",
    )
    result = trainer.fit(inputs, labels, epochs=3, batch_size=4, test_inputs=inputs, test_labels=labels)

    assert saved == [0, 1, 1]
    path = tmp_path / "3-4-2-contract.net"
    assert result.checkpoint_path == str(path)
    assert 0.0 <= result.accuracy <= 1.0
    restored = load_network(path)
    for key, value in network.state_dict().items():
        np.testing.assert_array_equal(restored.state_dict()[key], value)


def test_shape_errors_propagate_before_training():
    inputs, labels = _dataset(6, d_in=4)
    trainer = Trainer(Network.from_sizes([3, 4, 2], seed=0), SGDOptimizer(lr=1.0), checkpoint_dir=None)
    with pytest.raises(ShapeMismatch):
        trainer.fit(inputs, labels, epochs=1, batch_size=2)
    with pytest.raises(ValueError):
        trainer.fit(inputs[:, :3], labels, epochs=1, batch_size=0)


def test_train_entry_point_prints_progress(tmp_path, capsys):
    inputs, labels = _dataset(20)
    network = Network.from_sizes([3, 4, 2], seed=0)
    result = train(
        network, inputs, labels, 2, 5, 3.0, inputs, labels, "entry", checkpoint_dir=tmp_path
    )
    out = capsys.readouterr().out
    assert "Epoch 1/2" in out and "Epoch 2/2" in out
    assert "accuracy=" in out
    assert (tmp_path / "3-4-2-entry.net").exists()
    assert result.epochs == 2
    assert result.updates == 2 * count_updates(20, 5)


def test_repeated_fit_reports_only_its_own_updates():
    inputs, labels = _dataset(10)
    trainer = Trainer(Network.from_sizes([3, 4, 2], seed=6), SGDOptimizer(lr=0.5), checkpoint_dir=None)
    first = trainer.fit(inputs, labels, epochs=2, batch_size=3)
    second = trainer.fit(inputs, labels, epochs=1, batch_size=3)
    assert first.updates == 2 * count_updates(10, 3)
    assert second.updates == count_updates(10, 3)
