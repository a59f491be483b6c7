import numpy as np
import pytest

from sigmanet.core.activations import dsigmoid, sigmoid
from sigmanet.core.errors import AllocationFailure, ShapeMismatch
from sigmanet.core.layer import Layer
from sigmanet.core.network import Network


def _identity_network() -> Network:
    network = Network.zeros([2, 2])
    network.layers[1].weights.data[...] = np.eye(2, dtype=np.float32)
    return network


def test_layer_shapes_follow_topology():
    network = Network.from_sizes([5, 4, 3], seed=0)
    assert network.sizes == [5, 4, 3]
    assert network.input_layer.weights.shape == (5, 0)
    for idx in range(1, len(network)):
        layer = network.layers[idx]
        assert layer.weights.shape == (layer.length, network.layers[idx - 1].length)
        assert len(layer.biases) == len(layer.error) == layer.length


def test_random_init_in_half_open_unit_interval_and_seeded():
    first = Network.from_sizes([20, 30, 10], seed=42)
    second = Network.from_sizes([20, 30, 10], rng=np.random.default_rng(42))
    for a, b in zip(first.layers, second.layers):
        np.testing.assert_array_equal(a.weights.data, b.weights.data)
        np.testing.assert_array_equal(a.biases.data, b.biases.data)
        assert a.weights.data.size == 0 or (
            a.weights.data.min() >= -1.0 and a.weights.data.max() < 1.0
        )
    assert not np.array_equal(
        first.layers[1].weights.data, Network.from_sizes([20, 30, 10], seed=43).layers[1].weights.data
    )


def test_network_requires_two_layers():
    with pytest.raises(ValueError):
        Network.from_sizes([4])
    with pytest.raises(ValueError):
        Network.zeros([4, 0])


def test_network_rejects_inconsistent_layers():
    layers = [Layer.create(3, 0), Layer.create(2, 4)]
    with pytest.raises(ShapeMismatch):
        Network(layers)


def test_zero_network_outputs_half_everywhere():
    network = Network.zeros([6, 5, 4])
    rng = np.random.default_rng(3)
    for _ in range(3):
        output = network.forward(rng.standard_normal(6))
        np.testing.assert_array_equal(output.data, np.full(4, 0.5, dtype=np.float32))
        np.testing.assert_array_equal(network.layers[1].activated_outputs.data, np.full(5, 0.5))


def test_forward_injects_input_and_rejects_wrong_width():
    network = Network.from_sizes([3, 2], seed=0)
    network.forward([1.0, 2.0, 3.0])
    np.testing.assert_array_equal(network.input_layer.activated_outputs.data, [1.0, 2.0, 3.0])
    with pytest.raises(ShapeMismatch):
        network.forward([1.0, 2.0])


def test_backward_two_layer_hand_computed():
    network = _identity_network()
    output = network.forward([1.0, 0.0])
    np.testing.assert_allclose(output.data, [0.7310586, 0.5], rtol=1e-6)

    network.backward([0.0, 1.0])
    expected = (sigmoid(np.array([1.0, 0.0])) - np.array([0.0, 1.0])) * dsigmoid(
        np.array([1.0, 0.0])
    )
    np.testing.assert_allclose(network.output_layer.error.data, expected, rtol=1e-6)
    np.testing.assert_allclose(network.output_layer.error.data, [0.14373484, -0.125], rtol=1e-5)
    np.testing.assert_array_equal(network.input_layer.error.data, [0.0, 0.0])


def test_backward_propagates_through_hidden_layer():
    network = Network.from_sizes([3, 4, 2], seed=5)
    x = np.array([0.2, -0.4, 0.9], dtype=np.float32)
    y = np.array([1.0, 0.0], dtype=np.float32)
    network.forward(x)
    network.backward(y)

    w1 = network.layers[1].weights.data
    b1 = network.layers[1].biases.data
    w2 = network.layers[2].weights.data
    b2 = network.layers[2].biases.data
    z1 = w1 @ x + b1
    a1 = sigmoid(z1)
    z2 = w2 @ a1 + b2
    delta2 = (sigmoid(z2) - y) * dsigmoid(z2)
    delta1 = (w2.T @ delta2) * dsigmoid(z1)
    np.testing.assert_allclose(network.layers[2].error.data, delta2, rtol=1e-5, atol=1e-7)
    np.testing.assert_allclose(network.layers[1].error.data, delta1, rtol=1e-5, atol=1e-7)


def test_backward_rejects_wrong_target_width():
    network = Network.from_sizes([3, 2], seed=0)
    network.forward([0.0, 0.0, 0.0])
    with pytest.raises(ShapeMismatch):
        network.backward([1.0, 0.0, 0.0])


def test_state_dict_round_trip():
    source = Network.from_sizes([3, 4, 2], seed=1)
    target = Network.zeros([3, 4, 2])
    target.load_state_dict(source.state_dict())
    for a, b in zip(source.layers, target.layers):
        np.testing.assert_array_equal(a.weights.data, b.weights.data)
        np.testing.assert_array_equal(a.biases.data, b.biases.data)
    with pytest.raises(KeyError):
        target.load_state_dict({})


class _ExhaustedGenerator:
    def random(self, *args, **kwargs):
        raise MemoryError


def test_failed_initialisation_raises_allocation_failure():
    with pytest.raises(AllocationFailure):
        Layer.create(3, 2, _ExhaustedGenerator())
    with pytest.raises(AllocationFailure):
        Network.from_sizes([2, 3], rng=_ExhaustedGenerator())


def test_initialisation_fills_existing_buffers_in_place():
    layer = Layer.create(4, 3, np.random.default_rng(5))
    expected = np.random.default_rng(5).random((4, 3), dtype=np.float32) * 2 - 1
    np.testing.assert_array_equal(layer.weights.data, expected.astype(np.float32))
    assert layer.weights.data.flags.c_contiguous
