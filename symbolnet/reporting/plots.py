"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple


class PlotAdapter:
    """Collect epoch losses and optionally emit matplotlib figures.

    ``close`` writes ``loss.png``; :meth:`plot_per_class_error` writes
    ``per_class_error.png`` with one bar per class on a ``[0, 1]`` axis.
    """

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics):
        if not self.enable_plots:
            return
        self._history.append((epoch, float(metrics.get("loss", 0.0))))

    def close(self) -> None:
        if not self.enable_plots or not self._history:
            return
        plt = _pyplot()
        epochs, losses = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(epochs, losses)
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Loss")
        ax.set_title("Training Curve")
        fig.savefig(self.run_dir / "loss.png")
        plt.close(fig)

    def plot_per_class_error(self, per_class_error: Sequence[float]) -> Path | None:
        if not self.enable_plots or not per_class_error:
            return None
        plt = _pyplot()
        classes = list(range(1, len(per_class_error) + 1))
        fig, ax = plt.subplots()
        ax.bar(classes, list(per_class_error))
        ax.set_ylim(0.0, max(1.0, float(max(per_class_error))))
        ax.set_xticks(classes)
        ax.set_xlabel("Symbol")
        ax.set_ylabel("Error")
        ax.set_title("Error per symbol")
        path = self.run_dir / "per_class_error.png"
        fig.savefig(path)
        plt.close(fig)
        return path

    __call__ = on_epoch


def _pyplot():
    import matplotlib

    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt  # imported lazily for headless safety

    return plt


__all__ = ["PlotAdapter"]
