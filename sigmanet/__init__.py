"""sigmanet public API."""

from .checkpoint import load_network, save_network
from .core import activations, errors, tensor, types  # noqa: F401
from .core.errors import AllocationFailure, CorruptCheckpoint, ShapeMismatch
from .core.layer import Layer
from .core.network import Network
from .core.tensor import Matrix, Vector
from .training.pipelines import evaluate_checkpoint, load_preset, presets, run_pipeline
from .training.tester import evaluate, score
from .training.trainer import SGDOptimizer, Trainer, train

__all__ = [
    "AllocationFailure",
    "CorruptCheckpoint",
    "Layer",
    "Matrix",
    "Network",
    "SGDOptimizer",
    "ShapeMismatch",
    "Trainer",
    "Vector",
    "activations",
    "errors",
    "evaluate",
    "evaluate_checkpoint",
    "load_network",
    "load_preset",
    "presets",
    "run_pipeline",
    "save_network",
    "score",
    "tensor",
    "train",
    "types",
]
