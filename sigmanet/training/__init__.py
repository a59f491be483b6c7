"""Training loop, evaluation and pipeline assembly."""

from .pipelines import evaluate_checkpoint, load_preset, presets, run_pipeline
from .tester import evaluate, score
from .trainer import SGDOptimizer, Trainer, train

__all__ = [
    "SGDOptimizer",
    "Trainer",
    "evaluate",
    "evaluate_checkpoint",
    "load_preset",
    "presets",
    "run_pipeline",
    "score",
    "train",
]
