from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from grid_car.runtime import configure_runtime
from grid_car.runs import create_run_dir, resolve_experiment_dir, write_run_config

configure_runtime()

import numpy as np
import pandas as pd
from tqdm import tqdm

from grid_car.config_io import parse_with_config
from grid_car.env import Action
from grid_car.gym_env import CarGridGymEnv, RewardWeights
from grid_car.maps import MAPS, get_map_spec
from grid_car.metrics import EpisodeRecord, record_episode, summarize


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Headless random-action rollouts on the car grid track.")
    ap.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON config file, or a run/experiment dir to reuse its configs/run.json. CLI flags override config.",
    )
    ap.add_argument("--profile", type=str, default=None, help="Config profile name under configs/ (rollout section).")

    ap.add_argument("--map", type=str, default="track", choices=sorted(MAPS), help="Track map name.")
    ap.add_argument("--episodes", type=int, default=200)
    ap.add_argument("--max-steps", type=int, default=200, help="Episode horizon (truncation).")
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument(
        "--forward-prob",
        type=float,
        default=0.7,
        help="Probability of MOVE_FORWARD; the rest is split evenly over the three turns.",
    )
    ap.add_argument("--reward-finish", type=float, default=1.0)
    ap.add_argument("--reward-lost", type=float, default=-1.0)
    ap.add_argument("--reward-step", type=float, default=-0.01)

    ap.add_argument("--out", type=Path, default=Path("rollout"))
    ap.add_argument("--runs-root", type=Path, default=Path("runs"))
    ap.add_argument("--timestamp-runs", action=argparse.BooleanOptionalAction, default=True)
    ap.add_argument("--plot", action=argparse.BooleanOptionalAction, default=False, help="Save an episode-length histogram.")
    ap.add_argument("--progress", action=argparse.BooleanOptionalAction, default=True, help="Show a tqdm progress bar.")
    return ap


def action_probs(forward_prob: float) -> np.ndarray:
    p = float(forward_prob)
    if not (0.0 <= p <= 1.0):
        raise ValueError("forward_prob must be within [0, 1]")
    turn = (1.0 - p) / 3.0
    probs = np.full((len(Action),), turn, dtype=np.float64)
    probs[int(Action.MOVE_FORWARD)] = p
    return probs


def run_episodes(
    env: CarGridGymEnv,
    *,
    episodes: int,
    rng: np.random.Generator,
    probs: np.ndarray,
    progress: bool = False,
) -> list[EpisodeRecord]:
    records: list[EpisodeRecord] = []
    pbar = tqdm(
        range(int(episodes)),
        desc=f"Rollout {env.core.map_spec.name}",
        unit="ep",
        dynamic_ncols=True,
        leave=True,
        disable=not progress,
    )
    for _ep in pbar:
        env.reset()
        done = False
        while not done:
            a = int(rng.choice(len(Action), p=probs))
            _obs, _reward, terminated, truncated, _info = env.step(a)
            done = bool(terminated or truncated)

        rec = record_episode(env.core.get_observation(), best_time=env.core.best_time)
        records.append(rec)
        pbar.set_postfix(outcome=rec.outcome, best_time=rec.best_time, refresh=False)
    pbar.close()
    return records


def _save_histogram(df: pd.DataFrame, path: Path) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(1, 1, figsize=(6.0, 4.0))
    for outcome, g in df.groupby("outcome", sort=True):
        ax.hist(g["time"].to_numpy(), bins=20, alpha=0.6, label=str(outcome))
    ax.set_xlabel("episode time (steps)")
    ax.set_ylabel("episodes")
    ax.legend(loc="upper right", fontsize=9)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    ap = build_parser()
    args = parse_with_config(ap, argv, section="rollout")

    if int(args.episodes) <= 0:
        raise SystemExit("--episodes must be > 0")

    env = CarGridGymEnv(
        get_map_spec(str(args.map)),
        max_steps=int(args.max_steps),
        reward=RewardWeights(
            finish=float(args.reward_finish),
            lost=float(args.reward_lost),
            step=float(args.reward_step),
        ),
    )
    rng = np.random.default_rng(int(args.seed))
    probs = action_probs(float(args.forward_prob))

    experiment_dir = resolve_experiment_dir(args.out, runs_root=args.runs_root)
    run_paths = create_run_dir(experiment_dir, timestamp_runs=bool(args.timestamp_runs), prefix="rollout")
    write_run_config(run_paths, kind="rollout", argv=list(sys.argv), args=vars(args))
    out_dir = run_paths.run_dir

    try:
        records = run_episodes(env, episodes=int(args.episodes), rng=rng, probs=probs, progress=bool(args.progress))
    finally:
        env.close()

    df = pd.DataFrame([r.as_row() for r in records])
    df.to_csv(out_dir / "episodes.csv", index=False)

    kpi = summarize(records)
    (out_dir / "summary.json").write_text(json.dumps(asdict(kpi), indent=2, sort_keys=True), encoding="utf-8")
    if bool(args.plot):
        _save_histogram(df, out_dir / "episode_time_hist.png")

    print(
        f"[rollout] episodes={kpi.episodes} success_rate={kpi.success_rate:.3f} "
        f"lost_rate={kpi.lost_rate:.3f} best_time={kpi.best_time}"
    )
    print(f"Wrote: {out_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
