"""Metrics sinks for training runs."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Mapping

from .artifacts import git_sha


class JsonlSink:
    """Append-only JSONL writer for per-epoch metrics."""

    def __init__(
        self,
        path: str | Path,
        *,
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.seed = seed
        self.sha = sha or git_sha()

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record = {"epoch": int(epoch), "seed": self.seed, "sha": self.sha}
        record.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_epoch


class CsvSink:
    """Write per-epoch metrics to CSV with a stable schema."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row = {"epoch": int(epoch)}
        row.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row.keys()))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)

    __call__ = on_epoch


class ConsoleSink:
    """Print one progress line per epoch."""

    def __init__(self, total_epochs: int | None = None) -> None:
        self.total_epochs = total_epochs

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        label = f"{epoch}/{self.total_epochs}" if self.total_epochs else str(epoch)
        parts = [f"Epoch {label}", f"loss={metrics.get('loss', 0.0):.4f}"]
        if "accuracy" in metrics:
            parts.append(f"accuracy={metrics['accuracy']:.4f}")
        print("  ".join(parts))

    __call__ = on_epoch


__all__ = ["ConsoleSink", "CsvSink", "JsonlSink"]
