"""Pipeline assembly for symbolnet training runs."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import yaml

from ..core.errors import InvalidConfiguration
from ..core.types import RunResult
from ..data import registry
from ..network import NeuralNetwork
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .config import Hyperparameters

_PRESETS: Dict[str, Mapping[str, object]] = {
    "symbols-batch": {
        "data": {
            "name": "synthetic_symbols",
            "options": {
                "num_symbols": 3,
                "num_symbol_samples": 5,
                "samples_per_symbol": 10,
                "noise": 0.05,
                "seed": 0,
            },
        },
        "model": {
            "hidden": [6],
            "activation": "sigmoid",
            "output_activation": "sigmoid",
            "criterion": "misclassification",
        },
        "train": {
            "eta": 0.5,
            "max_iteration": 2000,
            "policy": "Batch",
            "seed": 7,
            "eval_every": 100,
            "run_dir": "runs/symbols-batch",
            "enable_plots": False,
        },
    },
    "symbols-online": {
        "data": {
            "name": "synthetic_symbols",
            "options": {"num_symbols": 4, "num_symbol_samples": 8, "samples_per_symbol": 12},
        },
        "model": {"hidden": [8], "activation": "tanh", "output_activation": "sigmoid"},
        "train": {
            "eta": 0.1,
            "max_iteration": 500,
            "policy": "Online",
            "seed": 1,
            "eval_every": 50,
            "run_dir": "runs/symbols-online",
            "enable_plots": False,
        },
    },
    "symbols-minibatch": {
        "data": {
            "name": "synthetic_symbols",
            "options": {"num_symbols": 5, "num_symbol_samples": 6, "samples_per_symbol": 16},
        },
        "model": {"hidden": [10, 8], "activation": "sigmoid", "output_activation": "sigmoid"},
        "train": {
            "eta": 0.2,
            "max_iteration": 1000,
            "policy": "MiniBatch",
            "mini_batch_size": 8,
            "tolerance": 0.01,
            "seed": 3,
            "eval_every": 100,
            "run_dir": "runs/symbols-minibatch",
            "enable_plots": False,
        },
    },
    "quick": {
        "data": {
            "name": "synthetic_symbols",
            "options": {"num_symbols": 3, "num_symbol_samples": 5, "samples_per_symbol": 4},
        },
        "model": {"hidden": [3], "activation": "sigmoid", "output_activation": "sigmoid"},
        "train": {
            "eta": 0.5,
            "max_iteration": 100,
            "policy": "Batch",
            "seed": 0,
            "eval_every": 10,
            "run_dir": "runs/quick",
            "enable_plots": False,
        },
    },
    "policy-sweep": {
        "sweep": {"policies": ["Batch", "Online", "MiniBatch"], "seeds": [0, 1]},
        "data": {
            "name": "synthetic_symbols",
            "options": {"num_symbols": 3, "num_symbol_samples": 5, "samples_per_symbol": 6},
        },
        "model": {"hidden": [4]},
        "train": {
            "eta": 0.3,
            "max_iteration": 200,
            "mini_batch_size": 4,
            "run_dir": "runs/policy-sweep",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    """Load a JSON or YAML config file into a mapping."""

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
    cache = _FILE_PRESETS_CACHE or {}
    return {name: deepcopy(cfg) for name, cfg in cache.items()}


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
    """Recursively merge ``override`` into ``base`` and return ``base``."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = merge_config(dict(base[key]), value)
        else:
            base[key] = value
    return base


def run_pipeline(config: Mapping[str, object]) -> RunResult | List[RunResult]:
    if "sweep" in config:
        return _run_sweep(config)
    return _train_single(config)


def build_network(
    instance,
    model_cfg: Mapping[str, object],
    hyperparameters: Hyperparameters,
) -> NeuralNetwork:
    """Create a network for ``instance`` and shape its hidden layers."""

    network = NeuralNetwork(
        instance,
        function=model_cfg.get("activation", "sigmoid"),
        output_function=model_cfg.get("output_activation", "sigmoid"),
        hyperparameters=hyperparameters,
        criterion=str(model_cfg.get("criterion", "misclassification")),
    )
    hidden = [int(width) for width in model_cfg.get("hidden", [instance.num_symbols])]
    if not hidden:
        raise InvalidConfiguration("model.hidden must list at least one hidden width")
    while network.number_of_layers - 2 < len(hidden):
        network.add_layer()
    while network.number_of_layers - 2 > len(hidden):
        network.remove_layer()
    for index, width in enumerate(hidden, start=1):
        network.update_layer(index, width)
    return network


class _MetricsCapture:
    def __init__(self) -> None:
        self.history: list[tuple[int, Mapping[str, float]]] = []
        self.last: Mapping[str, float] = {}

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        payload = {k: float(v) for k, v in metrics.items()}
        self.history.append((int(epoch), payload))
        self.last = payload


def _run_sweep(config: Mapping[str, object]) -> List[RunResult]:
    sweep_cfg = config["sweep"]
    base_dir = Path(str(config.get("train", {}).get("run_dir", "runs/sweep")))
    results: List[RunResult] = []
    for policy in sweep_cfg.get("policies", ["Batch"]):
        for seed in sweep_cfg.get("seeds", [0]):
            cfg = deepcopy(dict(config))
            cfg.pop("sweep", None)
            train_cfg = dict(cfg.get("train", {}))
            train_cfg.update(
                {"policy": policy, "seed": seed, "run_dir": str(base_dir / f"{policy}-seed{seed}")}
            )
            cfg["train"] = train_cfg
            results.append(_train_single(cfg))
    return results


def _train_single(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config.get("model", {}))
    train_cfg = dict(config.get("train", {}))

    dataset = registry.get_dataset(str(data_cfg["name"]), **data_cfg.get("options", {}))
    hyperparameters = Hyperparameters.from_mapping(train_cfg)
    network = build_network(dataset.instance, model_cfg, hyperparameters)

    run_dir = _resolve_run_dir(train_cfg, dataset.name, hyperparameters.policy.value)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        symbols=len(dataset.instance),
        architecture=network.architecture,
        activation=network.function.name,
        output_activation=network.output_function.name,
        criterion=network.criterion.name,
        hyperparameters=hyperparameters,
    )

    class_fields = [f"class_{idx}" for idx in range(dataset.num_symbols)]
    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=hyperparameters.seed)
    csv_sink = CsvSink(
        run_dir / "metrics.csv", split="train", fields=["loss", "accuracy", *class_fields]
    )
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    capture = _MetricsCapture()

    result = network.train(callbacks=[jsonl, csv_sink, plots, capture])

    plots.close()
    plots.plot_per_class_error(network.per_class_error)

    safe_config = _safe_config(config, network.architecture)
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        architecture=network.architecture,
        per_class_error=network.per_class_error,
        result={"epochs": result.epochs, "state": result.state, "loss": result.loss},
    )

    return RunResult(
        epochs=result.epochs,
        state=result.state,
        loss=result.loss,
        architecture=network.architecture,
        per_class_error=network.per_class_error,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str, policy: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset / policy


def _safe_config(config: Mapping[str, object], architecture: Sequence[int]) -> Mapping[str, object]:
    copied = json.loads(json.dumps(config))
    copied.setdefault("model", {})["hidden"] = list(architecture[1:-1])
    return copied


def _print_startup_summary(
    *,
    dataset_name: str,
    symbols: int,
    architecture: Sequence[int],
    activation: str,
    output_activation: str,
    criterion: str,
    hyperparameters: Hyperparameters,
) -> None:
    param_count = sum(
        architecture[i] * architecture[i + 1] + architecture[i + 1]
        for i in range(len(architecture) - 1)
    )
    print("=== symbolnet run ===")
    print(f"Dataset       : {dataset_name} ({symbols} symbols)")
    print(f"Architecture  : {list(architecture)}")
    print(f"Activations   : {activation} / {output_activation}")
    print(f"Criterion     : {criterion}")
    print(f"Policy        : {hyperparameters.policy.value}")
    print(f"Eta           : {hyperparameters.eta}")
    print(f"Iterations    : {hyperparameters.max_iteration}")
    print(f"Parameters    : {param_count}")
    print("=====================")


__all__ = [
    "build_network",
    "load_preset",
    "merge_config",
    "presets",
    "read_config_file",
    "run_pipeline",
]
