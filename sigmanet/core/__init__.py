"""Core numerical primitives for sigmanet."""

from . import activations, errors, layer, network, tensor, types

__all__ = ["activations", "errors", "layer", "network", "tensor", "types"]
