from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


RUN_CONFIG_RELPATH = "configs/run.json"
_RUN_STAMP_RE = re.compile(r"(?P<ts>\d{8}_\d{6})(?:_(?P<n>\d+))?$")


@dataclass(frozen=True)
class RunPaths:
    experiment_dir: Path
    run_dir: Path


def resolve_experiment_dir(out: Path, *, runs_root: Path = Path("runs")) -> Path:
    """Resolve an output experiment directory.

    A bare name like "random_200" lands under `runs/<name>/`; anything that
    looks like a path (separators, leading '.', absolute) is used as-is.
    """
    out = Path(out)
    if out.is_absolute():
        return out

    runs_root = Path(runs_root)
    is_bare_name = len(out.parts) == 1 and not out.as_posix().startswith(".") and out.name != runs_root.name
    if is_bare_name:
        return runs_root / out
    return out


def _run_stamp(run_dir: Path) -> tuple[str, int] | None:
    m = _RUN_STAMP_RE.search(run_dir.name)
    if m is None:
        return None
    return m.group("ts"), int(m.group("n") or 0)


def latest_run_dir(experiment_dir: Path) -> Path | None:
    """Newest run under `experiment_dir` that stored a `configs/run.json`.

    `latest.txt` wins when it names such a run; otherwise runs are ordered by
    the timestamp in their directory name.
    """
    experiment_dir = Path(experiment_dir)
    marker = experiment_dir / "latest.txt"
    if marker.is_file():
        named = experiment_dir / marker.read_text(encoding="utf-8").strip()
        if named != experiment_dir and run_config_path(named).is_file():
            return named

    stamped = []
    for cfg in experiment_dir.glob(f"*/{RUN_CONFIG_RELPATH}"):
        run_dir = cfg.parent.parent
        stamp = _run_stamp(run_dir)
        if stamp is not None:
            stamped.append((stamp, run_dir))
    if not stamped:
        return None
    return max(stamped)[1]


def run_config_path(run_dir: Path) -> Path:
    return Path(run_dir) / RUN_CONFIG_RELPATH


def create_run_dir(
    experiment_dir: Path,
    *,
    timestamp_runs: bool = True,
    now: datetime | None = None,
    prefix: str | None = None,
) -> RunPaths:
    experiment_dir = Path(experiment_dir)
    experiment_dir.mkdir(parents=True, exist_ok=True)

    if not timestamp_runs:
        return RunPaths(experiment_dir=experiment_dir, run_dir=experiment_dir)

    ts = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    stem = f"{prefix}_{ts}" if prefix else ts
    run_dir = experiment_dir / stem
    n = 0
    while run_dir.exists():
        n += 1
        run_dir = experiment_dir / f"{stem}_{n}"

    run_dir.mkdir(parents=True, exist_ok=False)
    (experiment_dir / "latest.txt").write_text(run_dir.name, encoding="utf-8")
    return RunPaths(experiment_dir=experiment_dir, run_dir=run_dir)


def write_run_config(run_paths: RunPaths, *, kind: str, argv: list[str], args: dict[str, object]) -> Path:
    """Store resolved arguments as `<run>/configs/run.json` (args under "args")."""
    payload: dict[str, object] = {}
    for k, v in args.items():
        payload[str(k)] = str(v) if isinstance(v, Path) else v

    path = run_config_path(run_paths.run_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(
            {
                "kind": str(kind),
                "argv": list(argv),
                "experiment_dir": str(run_paths.experiment_dir),
                "run_dir": str(run_paths.run_dir),
                "args": payload,
            },
            indent=2,
            sort_keys=True,
        ),
        encoding="utf-8",
    )
    return path
