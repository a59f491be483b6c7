from __future__ import annotations

import json
from pathlib import Path

import pytest

from sigmanet.checkpoint.codec import load_network
from sigmanet.training import pipelines


def _config(tmp_path: Path, name: str = "run") -> dict:
    config = json.loads(json.dumps(pipelines.load_preset("synthetic-min")))
    config["train"]["run_dir"] = str(tmp_path / name)
    return config


def test_presets_include_file_presets():
    names = set(pipelines.presets())
    assert {"synthetic-min", "digits-sigmoid", "mnist-sigmoid", "digits-deep"} <= names
    assert pipelines.load_preset("digits-deep")["model"]["hidden"] == [32, 16]
    with pytest.raises(KeyError):
        pipelines.load_preset("nope")


def test_pipeline_smoke_synthetic(tmp_path):
    config = _config(tmp_path)
    result = pipelines.run_pipeline(config)

    run_dir = Path(config["train"]["run_dir"])
    assert Path(result.checkpoint_path) == run_dir / "4-8-3-synthetic.net"
    assert load_network(result.checkpoint_path).sizes == [4, 8, 3]

    records = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines()]
    assert [r["epoch"] for r in records] == [1, 2, 3]
    assert all({"loss", "accuracy", "updates"} <= set(r) for r in records)
    assert (run_dir / "metrics.csv").exists()

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["model"]["dims"] == [4, 8, 3]
    assert manifest["dataset"]["type"] == "synthetic"


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path, "a"))
    second = pipelines.run_pipeline(_config(tmp_path, "b"))
    assert Path(first.checkpoint_path).read_bytes() == Path(second.checkpoint_path).read_bytes()
    assert first.accuracy == second.accuracy


def test_pipeline_rejects_mismatched_dims(tmp_path):
    config = _config(tmp_path)
    config["model"]["d_in"] = 5
    with pytest.raises(ValueError):
        pipelines.run_pipeline(config)


def test_evaluate_checkpoint_matches_training_accuracy(tmp_path):
    config = _config(tmp_path)
    result = pipelines.run_pipeline(config)
    scores = pipelines.evaluate_checkpoint(result.checkpoint_path, config)
    assert scores["accuracy"] == pytest.approx(result.accuracy)
    assert scores["total"] > 0


def test_plots_written_when_enabled(tmp_path):
    config = _config(tmp_path)
    config["train"]["enable_plots"] = True
    pipelines.run_pipeline(config)
    assert (Path(config["train"]["run_dir"]) / "loss.png").exists()
    assert (Path(config["train"]["run_dir"]) / "accuracy.png").exists()
