"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple


class PlotAdapter:
    """Collect per-epoch metrics and optionally emit matplotlib figures."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: Dict[str, List[Tuple[int, float]]] = {}
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics):
        if not self.enable_plots:
            return
        for name in ("loss", "accuracy"):
            if name in metrics:
                self._history.setdefault(name, []).append((epoch, float(metrics[name])))

    def close(self) -> List[Path]:
        if not self.enable_plots or not self._history:
            return []
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        written: List[Path] = []
        for name, history in sorted(self._history.items()):
            epochs, values = zip(*history)
            fig, ax = plt.subplots()
            ax.plot(epochs, values, marker="o")
            ax.set_xlabel("Epoch")
            ax.set_ylabel(name.capitalize())
            ax.set_title(f"Training {name}")
            plot_path = self.run_dir / f"{name}.png"
            fig.savefig(plot_path)
            plt.close(fig)
            written.append(plot_path)
        return written

    __call__ = on_epoch
