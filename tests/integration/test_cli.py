import json

import pytest

from cli import main as cli_main


def _result_lines(output):
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def test_cli_runs_quick_preset(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    cli_main.main(["--preset", "quick"])
    results = _result_lines(capsys.readouterr().out)
    assert len(results) == 1
    assert results[0]["architecture"] == [10, 3, 3]
    assert (tmp_path / "runs" / "quick" / "manifest.json").exists()


def test_cli_overrides(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    dump = tmp_path / "resolved.json"
    cli_main.main(
        [
            "--preset",
            "quick",
            "--hidden",
            "5,4",
            "--policy",
            "Online",
            "--eta",
            "0.2",
            "--run-dir",
            "out",
            "--dump-config",
            str(dump),
        ]
    )
    results = _result_lines(capsys.readouterr().out)
    assert results[0]["architecture"] == [10, 5, 4, 3]
    resolved = json.loads(dump.read_text())
    assert resolved["train"]["policy"] == "Online"
    assert resolved["train"]["eta"] == 0.2
    assert (tmp_path / "out" / "metrics.jsonl").exists()


def test_cli_config_file_override(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text("model:\n  hidden: [2]\ntrain:\n  run_dir: yaml-run\n")
    cli_main.main(["--preset", "quick", "--config", str(override)])
    results = _result_lines(capsys.readouterr().out)
    assert results[0]["architecture"] == [10, 2, 3]
    assert (tmp_path / "yaml-run" / "config.json").exists()


def test_cli_rejects_out_of_range_eta(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ValueError):
        cli_main.main(["--preset", "quick", "--eta", "2.0"])


def test_cli_lists_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["--list-presets"])
    assert excinfo.value.code == 0
    assert "quick" in capsys.readouterr().out.split()
