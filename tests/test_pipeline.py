import csv
import json

import pytest

from symbolnet.core.errors import InvalidConfiguration
from symbolnet.training import pipelines


def _quick(tmp_path, **train):
    config = pipelines.load_preset("quick")
    config["train"]["run_dir"] = str(tmp_path / "run")
    config["train"].update(train)
    return config


def test_quick_preset_writes_artifacts(tmp_path, capsys):
    result = pipelines.run_pipeline(_quick(tmp_path))

    run_dir = tmp_path / "run"
    assert result.architecture == (10, 3, 3)
    assert result.epochs == 100
    assert len(result.per_class_error) == 3
    assert "=== symbolnet run ===" in capsys.readouterr().out

    lines = (run_dir / "metrics.jsonl").read_text().splitlines()
    assert len(lines) == 100
    first = json.loads(lines[0])
    assert first["epoch"] == 1
    assert first["split"] == "train"
    assert "loss" in first

    with (run_dir / "metrics.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 100
    assert rows[9]["accuracy"] != ""
    assert rows[0]["accuracy"] == ""

    manifest = json.loads((run_dir / "manifest.json").read_text())
    assert manifest["architecture"] == [10, 3, 3]
    assert manifest["dataset"]["type"] == "synthetic_symbols"
    assert manifest["result"]["state"] == result.state
    assert json.loads((run_dir / "config.json").read_text())["model"]["hidden"] == [3]


def test_hidden_widths_shape_the_network(tmp_path):
    config = _quick(tmp_path)
    config["model"]["hidden"] = [6, 4, 5]
    result = pipelines.run_pipeline(config)
    assert result.architecture == (10, 6, 4, 5, 3)


def test_empty_hidden_list_is_rejected(tmp_path):
    config = _quick(tmp_path)
    config["model"]["hidden"] = []
    with pytest.raises(InvalidConfiguration):
        pipelines.run_pipeline(config)


def test_plots_are_written_when_enabled(tmp_path):
    pipelines.run_pipeline(_quick(tmp_path, enable_plots=True))
    assert (tmp_path / "run" / "loss.png").exists()
    assert (tmp_path / "run" / "per_class_error.png").exists()


def test_sweep_runs_each_policy_and_seed(tmp_path):
    config = _quick(tmp_path)
    config["sweep"] = {"policies": ["Batch", "Online"], "seeds": [0, 1]}
    results = pipelines.run_pipeline(config)
    assert len(results) == 4
    for policy in ("Batch", "Online"):
        for seed in (0, 1):
            assert (tmp_path / "run" / f"{policy}-seed{seed}" / "manifest.json").exists()


def test_runs_are_reproducible(tmp_path):
    first = pipelines.run_pipeline(_quick(tmp_path / "a"))
    second = pipelines.run_pipeline(_quick(tmp_path / "b"))
    assert first.loss == second.loss
    assert first.per_class_error == second.per_class_error


def test_file_presets_are_listed():
    names = pipelines.presets()
    assert {"quick", "symbols-batch", "symbols-tanh"} <= set(names)
    tanh = pipelines.load_preset("symbols-tanh")
    assert tanh["model"]["activation"] == "tanh"
    with pytest.raises(KeyError):
        pipelines.load_preset("missing")


def test_merge_config_is_recursive():
    base = {"train": {"eta": 0.1, "policy": "Batch"}, "model": {"hidden": [3]}}
    merged = pipelines.merge_config(base, {"train": {"eta": 0.5}})
    assert merged["train"] == {"eta": 0.5, "policy": "Batch"}
    assert merged["model"] == {"hidden": [3]}


def test_read_config_file_formats(tmp_path):
    yaml_path = tmp_path / "override.yaml"
    yaml_path.write_text("train:\n  eta: 0.25\n")
    assert pipelines.read_config_file(yaml_path) == {"train": {"eta": 0.25}}
    json_path = tmp_path / "override.json"
    json_path.write_text('{"model": {"hidden": [4]}}')
    assert pipelines.read_config_file(json_path)["model"]["hidden"] == [4]
    with pytest.raises(ValueError):
        pipelines.read_config_file(tmp_path / "override.txt")
