"""Tests for run directory helpers."""

import json
from datetime import datetime
from pathlib import Path

from grid_car.runs import (
    RunPaths,
    create_run_dir,
    latest_run_dir,
    resolve_experiment_dir,
    run_config_path,
    write_run_config,
)


def test_resolve_experiment_dir():
    assert resolve_experiment_dir(Path("random_200")) == Path("runs") / "random_200"
    assert resolve_experiment_dir(Path("out/random")) == Path("out/random")
    assert resolve_experiment_dir(Path("runs")) == Path("runs")


def test_resolve_experiment_dir_absolute(tmp_path):
    assert resolve_experiment_dir(tmp_path / "x") == tmp_path / "x"


def _stored_run(experiment_dir, name):
    run_dir = experiment_dir / name
    write_run_config(RunPaths(experiment_dir, run_dir), kind="rollout", argv=[], args={"episodes": 1})
    return run_dir


def test_create_run_dir_is_unique_and_tracked(tmp_path):
    now = datetime(2026, 1, 2, 3, 4, 5)
    a = create_run_dir(tmp_path, now=now, prefix="rollout")
    b = create_run_dir(tmp_path, now=now, prefix="rollout")
    assert a.run_dir.name == "rollout_20260102_030405"
    assert b.run_dir.name == "rollout_20260102_030405_1"
    assert (tmp_path / "latest.txt").read_text(encoding="utf-8") == b.run_dir.name
    for paths in (a, b):
        write_run_config(paths, kind="rollout", argv=[], args={})
    assert latest_run_dir(tmp_path) == b.run_dir


def test_create_run_dir_without_timestamp(tmp_path):
    paths = create_run_dir(tmp_path / "plain", timestamp_runs=False)
    assert paths.run_dir == paths.experiment_dir
    assert paths.run_dir.is_dir()


def test_latest_run_dir_orders_by_stamp_without_marker(tmp_path):
    _stored_run(tmp_path, "rollout_20260101_000000")
    _stored_run(tmp_path, "20260301_000000")
    _stored_run(tmp_path, "rollout_20260301_000000_2")
    _stored_run(tmp_path, "notes")
    (tmp_path / "20261231_000000").mkdir()  # no run.json
    assert latest_run_dir(tmp_path) == tmp_path / "rollout_20260301_000000_2"
    assert latest_run_dir(tmp_path / "missing") is None


def test_latest_run_dir_ignores_stale_marker(tmp_path):
    newest = _stored_run(tmp_path, "rollout_20260101_000000")
    (tmp_path / "latest.txt").write_text("rollout_20990101_000000", encoding="utf-8")
    assert latest_run_dir(tmp_path) == newest


def test_write_run_config(tmp_path):
    paths = create_run_dir(tmp_path, prefix="rollout")
    path = write_run_config(paths, kind="rollout", argv=["rollout"], args={"out": Path("x"), "episodes": 3})
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["kind"] == "rollout"
    assert payload["args"] == {"out": "x", "episodes": 3}
    assert path == run_config_path(paths.run_dir)
    assert path == paths.run_dir / "configs" / "run.json"
