"""Command line entry point for symbolnet training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from symbolnet.training import pipelines
from symbolnet.training.config import BackpropagationType


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "state": result.state,
        "loss": result.loss,
        "architecture": list(result.architecture),
        "per_class_error": list(result.per_class_error),
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    return json.dumps(payload, sort_keys=True)


def _hidden(text: str) -> list[int]:
    try:
        widths = [int(part) for part in text.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid hidden widths: {text!r}") from exc
    if not widths:
        raise argparse.ArgumentTypeError("At least one hidden width is required")
    return widths


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="symbols-batch",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument("--eta", type=float, help="Learning rate in [0.001, 1]")
    parser.add_argument(
        "--iterations", type=int, help="Maximum epochs in [100, 1000000]"
    )
    parser.add_argument(
        "--policy",
        choices=BackpropagationType.tokens(),
        help="Backpropagation update policy",
    )
    parser.add_argument(
        "--hidden",
        type=_hidden,
        help="Comma separated hidden layer widths, e.g. 8,6",
    )
    parser.add_argument("--seed", type=int, help="Seed used for weight initialisation")
    parser.add_argument("--run-dir", help="Directory receiving metrics and manifest")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Enable plotting adapters"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = dict(pipelines.read_config_file(args.config))
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = pipelines.merge_config(config, override)

    train_cfg = config.setdefault("train", {})
    if args.eta is not None:
        train_cfg["eta"] = args.eta
    if args.iterations is not None:
        train_cfg["max_iteration"] = args.iterations
    if args.policy is not None:
        train_cfg["policy"] = args.policy
    if args.seed is not None:
        train_cfg["seed"] = args.seed
    if args.run_dir is not None:
        train_cfg["run_dir"] = args.run_dir
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.hidden is not None:
        config.setdefault("model", {})["hidden"] = args.hidden

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)

    if isinstance(result, list):
        for item in result:
            print(_format_result(item))
    else:
        print(_format_result(result))


if __name__ == "__main__":
    main()
