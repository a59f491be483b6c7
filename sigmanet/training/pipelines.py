"""Pipeline assembly: config -> dataset -> network -> trainer -> artifacts."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np
import yaml

from ..checkpoint.codec import load_network
from ..core.network import Network
from ..core.types import RunResult
from ..data import get_dataset
from ..data.registry import DatasetSpec
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import ConsoleSink, CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .tester import evaluate
from .trainer import SGDOptimizer, Trainer

_PRESETS: Dict[str, Mapping[str, object]] = {
    "synthetic-min": {
        "data": {
            "name": "synthetic",
            "options": {"n_points": 120, "d_in": 4, "num_classes": 3, "seed": 0},
        },
        "model": {"hidden": [8]},
        "train": {
            "epochs": 3,
            "batch_size": 10,
            "lr": 3.0,
            "seed": 7,
            "loss": "mae",
            "run_dir": "runs/synthetic-min",
            "checkpoint_hint": "synthetic",
            "enable_plots": False,
        },
    },
    "digits-sigmoid": {
        "data": {"name": "digits", "options": {"test_split": 0.2, "seed": 0}},
        "model": {"hidden": [30]},
        "train": {
            "epochs": 10,
            "batch_size": 10,
            "lr": 3.0,
            "seed": 1,
            "loss": "mae",
            "run_dir": "runs/digits-sigmoid",
            "checkpoint_hint": "digits",
            "enable_plots": False,
        },
    },
    "mnist-sigmoid": {
        "data": {"name": "mnist", "options": {"seed": 0}},
        "model": {"d_in": 784, "d_out": 10, "hidden": [64, 64]},
        "train": {
            "epochs": 3,
            "batch_size": 10,
            "lr": 3.0,
            "seed": 1,
            "loss": "mae",
            "run_dir": "runs/mnist-sigmoid",
            "checkpoint_hint": "mnist",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    """Decode a YAML or JSON config file into a mapping."""

    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        presets: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                presets[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = presets
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def merge_config(base: dict, override: Mapping[str, object]) -> dict:
    """Recursively merge ``override`` into ``base``."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = merge_config(dict(base[key]), value)
        else:
            base[key] = value
    return base


def build_dataset(config: Mapping[str, object]) -> DatasetSpec:
    data_cfg = dict(config.get("data", {}))  # type: ignore[arg-type]
    name = data_cfg.get("name")
    if not name:
        raise KeyError("Config is missing data.name")
    return get_dataset(str(name), **dict(data_cfg.get("options", {})))


def build_dims(model_cfg: Mapping[str, object], dataset: DatasetSpec) -> List[int]:
    d_in = int(model_cfg.get("d_in", dataset.data_spec.d_in))
    d_out = int(model_cfg.get("d_out", dataset.data_spec.d_out))
    if d_in != dataset.data_spec.d_in:
        raise ValueError(f"Configured d_in={d_in} but dataset has {dataset.data_spec.d_in}")
    if d_out != dataset.data_spec.d_out:
        raise ValueError(f"Configured d_out={d_out} but dataset has {dataset.data_spec.d_out}")
    dims = [d_in]
    dims.extend(int(h) for h in model_cfg.get("hidden", []))  # type: ignore[union-attr]
    dims.append(d_out)
    return dims


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train a network as described by ``config`` and write its artifacts."""

    model_cfg = dict(config.get("model", {}))  # type: ignore[arg-type]
    train_cfg = dict(config.get("train", {}))  # type: ignore[arg-type]
    seed = int(train_cfg.get("seed", 0))
    epochs = int(train_cfg.get("epochs", 1))
    batch_size = int(train_cfg.get("batch_size", 10))
    lr = float(train_cfg.get("lr", 3.0))
    loss_name = str(train_cfg.get("loss", "auto"))
    hint = str(train_cfg.get("checkpoint_hint", ""))

    dataset = build_dataset(config)
    dims = build_dims(model_cfg, dataset)
    network = Network.from_sizes(dims, rng=np.random.default_rng(seed))

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=dims,
        loss=loss_name,
        epochs=epochs,
        batch_size=batch_size,
        lr=lr,
        param_count=network.parameter_count(),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    trainer = Trainer(
        network,
        SGDOptimizer(lr=lr),
        callbacks=[ConsoleSink(total_epochs=epochs), jsonl, csv_sink, plots],
        loss=loss_name,
        checkpoint_dir=run_dir,
        checkpoint_hint=hint,
    )
    result = trainer.fit(
        dataset.train_inputs,
        dataset.train_labels,
        epochs,
        batch_size,
        test_inputs=dataset.test_inputs,
        test_labels=dataset.test_labels,
    )
    plots.close()

    resolved = _safe_config(config, dims)
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=resolved,
        dataset_provenance=dataset.provenance,
        checkpoint=result.checkpoint_path,
    )
    (run_dir / "config.json").write_text(json.dumps(resolved, indent=2))

    return RunResult(
        epochs=result.epochs,
        updates=result.updates,
        accuracy=result.accuracy,
        checkpoint_path=result.checkpoint_path,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
    )


def evaluate_checkpoint(path: str | Path, config: Mapping[str, object]) -> Mapping[str, float]:
    """Load ``path`` and score it on the test split of ``config``'s dataset."""

    network = load_network(path)
    dataset = build_dataset(config)
    train_cfg = dict(config.get("train", {}))  # type: ignore[arg-type]
    result = evaluate(
        network,
        dataset.test_inputs,
        dataset.test_labels,
        loss=str(train_cfg.get("loss", "auto")),
    )
    return {
        "accuracy": result.accuracy,
        "loss": result.loss,
        "matches": float(result.matches),
        "total": float(result.total),
    }


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _safe_config(config: Mapping[str, object], dims: Sequence[int]) -> Mapping[str, object]:
    copied = json.loads(json.dumps(config))
    copied.setdefault("model", {})["dims"] = list(dims)
    return copied


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: Sequence[int],
    loss: str,
    epochs: int,
    batch_size: int,
    lr: float,
    param_count: int,
) -> None:
    print("=== sigmanet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Dimensions    : {list(dims)}")
    print(f"Loss (report) : {loss}")
    print(f"Epochs        : {epochs}")
    print(f"Batch size    : {batch_size}")
    print(f"Learning rate : {lr}")
    print(f"Parameters    : {param_count}")
    print("====================")


__all__ = [
    "build_dataset",
    "evaluate_checkpoint",
    "load_preset",
    "merge_config",
    "presets",
    "read_config_file",
    "run_pipeline",
]
