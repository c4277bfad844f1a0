from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from grid_car.runs import RUN_CONFIG_RELPATH, latest_run_dir, run_config_path


_REPO_ROOT = Path(__file__).resolve().parent.parent
# Profiles live next to the package so `--profile smoke` works from a checkout.
_DEFAULT_PROFILES_DIR = _REPO_ROOT / "configs"


def _json_compatible(value: object) -> object:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (tuple, list)):
        return [_json_compatible(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_compatible(v) for k, v in value.items()}
    return value


def load_json(path: Path) -> dict[str, Any]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Config must be a JSON object at top-level: {path}")
    return raw


def _candidates(name: Path, *, profiles_dir: Path, include_raw: bool) -> list[Path]:
    out: list[Path] = []
    if name.is_absolute() or include_raw:
        out.append(name)
        if name.suffix == "":
            out.append(name.with_suffix(".json"))
    if not name.is_absolute():
        out.append(profiles_dir / name)
        if name.suffix == "":
            out.append((profiles_dir / name).with_suffix(".json"))
    return out


def resolve_config_path(
    *,
    config: Path | None,
    profile: str | None,
    profiles_dir: Path = _DEFAULT_PROFILES_DIR,
) -> Path | None:
    """Find the JSON file named by --config (a path) or --profile (a name under configs/)."""
    if config is not None and profile is not None:
        raise ValueError("Use only one of --config or --profile.")

    if profile is not None:
        cands = _candidates(Path(str(profile).strip()), profiles_dir=profiles_dir, include_raw=False)
        what = "Config profile"
        raw = str(profile)
    elif config is not None and Path(config).is_dir():
        return _run_dir_config(Path(config))
    elif config is not None:
        cands = _candidates(Path(config), profiles_dir=profiles_dir, include_raw=True)
        what = "Config file"
        raw = str(config)
    else:
        return None

    for cand in cands:
        if cand.is_file():
            return cand
    raise FileNotFoundError(f"{what} not found: {raw!r} (looked for {', '.join(map(str, cands))})")


def _run_dir_config(path: Path) -> Path:
    # A run dir, or an experiment dir whose newest run is reused.
    run_dir = path if run_config_path(path).is_file() else latest_run_dir(path)
    if run_dir is None:
        raise FileNotFoundError(f"No run with {RUN_CONFIG_RELPATH} under: {str(path)!r}")
    return run_config_path(run_dir)


def select_section(cfg: dict[str, Any], *, section: str) -> dict[str, Any]:
    # runs/<...>/configs/run.json keeps the arguments under "args".
    args = cfg.get("args")
    if isinstance(args, dict):
        cfg = args
    sect = cfg.get(section)
    if isinstance(sect, dict):
        return sect
    return cfg


def parser_defaults(parser: argparse.ArgumentParser, *, exclude: set[str] | None = None) -> dict[str, object]:
    exclude = set() if exclude is None else set(exclude)
    out: dict[str, object] = {}
    for act in parser._actions:
        dest = getattr(act, "dest", None)
        if not dest or dest == "help" or dest in exclude:
            continue
        if getattr(act, "default", argparse.SUPPRESS) is argparse.SUPPRESS:
            continue
        out[str(dest)] = _json_compatible(act.default)
    return out


def _coerce_action_value(action: argparse.Action, value: object) -> object:
    if value is None:
        return None
    nargs = getattr(action, "nargs", None)
    if nargs in ("*", "+") or isinstance(value, list):
        items = value.split() if isinstance(value, str) else list(value)  # type: ignore[arg-type]
        if action.type is None:
            return items
        return [action.type(v) for v in items]
    if action.type is None:
        return value
    return action.type(value)


def apply_config_defaults(
    parser: argparse.ArgumentParser,
    cfg: dict[str, Any],
    *,
    strict: bool = True,
    allow_unknown_prefixes: tuple[str, ...] = ("_",),
) -> None:
    actions = {
        str(act.dest): act
        for act in parser._actions
        if getattr(act, "dest", None) and act.dest != "help"
    }

    unknown: list[str] = []
    coerced: dict[str, object] = {}
    for k, v in cfg.items():
        key = str(k)
        if any(key.startswith(p) for p in allow_unknown_prefixes):
            continue
        act = actions.get(key)
        if act is None:
            unknown.append(key)
            continue
        coerced[key] = _coerce_action_value(act, v)

    if strict and unknown:
        raise ValueError(f"Unknown config keys for this command: {', '.join(sorted(set(unknown)))}")

    if coerced:
        parser.set_defaults(**coerced)


def parse_with_config(
    parser: argparse.ArgumentParser,
    argv: list[str],
    *,
    section: str,
    profiles_dir: Path = _DEFAULT_PROFILES_DIR,
) -> argparse.Namespace:
    """Parse argv, layering a --config/--profile JSON section under explicit flags."""
    pre = parser.parse_args(argv)
    cfg_path = resolve_config_path(
        config=getattr(pre, "config", None),
        profile=getattr(pre, "profile", None),
        profiles_dir=profiles_dir,
    )
    if cfg_path is None:
        return pre

    cfg = select_section(load_json(cfg_path), section=section)
    apply_config_defaults(parser, cfg, strict=True)
    return parser.parse_args(argv)
