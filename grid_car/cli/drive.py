from __future__ import annotations

import argparse
import sys
from pathlib import Path

from grid_car.config_io import parse_with_config
from grid_car.env import Action, CarGridEnv, InvalidStepError, Observation, RenderDispatcher
from grid_car.live_view_pygame import TrackLiveViewer
from grid_car.maps import MAPS, get_map_spec


# forward, right, 6x forward, left, 8x forward: start (2,10) -> finish (8,1)
SELF_CHECK_ROUTE: tuple[Action, ...] = (
    Action.MOVE_FORWARD,
    Action.TURN_RIGHT,
    *([Action.MOVE_FORWARD] * 6),
    Action.TURN_LEFT,
    *([Action.MOVE_FORWARD] * 8),
)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Drive the car around the grid track with the keyboard (pygame).")
    ap.add_argument("--config", type=Path, default=None, help="JSON config file. CLI flags override config.")
    ap.add_argument("--profile", type=str, default=None, help="Config profile name under configs/ (drive section).")

    ap.add_argument("--map", type=str, default="track", choices=sorted(MAPS), help="Track map name.")
    ap.add_argument("--window-size", type=int, default=650)
    ap.add_argument("--fps", type=int, default=30)
    ap.add_argument("--trail-len", type=int, default=200)
    ap.add_argument(
        "--auto-reset",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Start a new episode as soon as the current one ends.",
    )
    ap.add_argument("--self-check", action="store_true", help="Drive a scripted route headless and exit.")
    return ap


def format_observation(obs: Observation) -> str:
    state = "finished" if obs.finished else ("lost" if obs.lost else "active")
    return (
        f"ep {obs.iteration}  t={obs.time}  turns={obs.turns_count}  "
        f"pos=({obs.position.x},{obs.position.y})  heading={obs.direction.name}  "
        f"ahead={obs.forward.name}  {state}"
    )


def _self_check(args: argparse.Namespace) -> int:
    env = CarGridEnv(get_map_spec(str(args.map)))
    for action in SELF_CHECK_ROUTE:
        env.step(action)
    obs = env.get_observation()
    print(f"[self-check] {format_observation(obs)}")
    if not obs.finished:
        print("[self-check] scripted route did not finish", file=sys.stderr)
        return 1

    try:
        env.step(Action.MOVE_FORWARD)
    except InvalidStepError:
        pass
    else:
        print("[self-check] step after finish did not raise", file=sys.stderr)
        return 1

    print("[self-check] ok")
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    ap = build_parser()
    args = parse_with_config(ap, argv, section="drive")

    if bool(args.self_check):
        return _self_check(args)

    viewer = TrackLiveViewer(
        window_size=int(args.window_size),
        fps=int(args.fps),
        trail_len=int(args.trail_len),
    )
    env = CarGridEnv(get_map_spec(str(args.map)), view=viewer, dispatcher=RenderDispatcher())
    if not viewer.prepare_map(env.track):
        env.close()
        return 2

    status = "arrows: drive  R: reset  Esc: quit"
    env.render()

    try:
        while viewer.running:
            events = viewer.poll_events()
            pg = viewer.pygame
            if not viewer.running or pg is None:
                break

            for ev in events:
                if ev.type != pg.KEYDOWN:
                    continue
                if ev.key == pg.K_ESCAPE:
                    viewer.running = False
                    break
                if ev.key == pg.K_r:
                    env.reset()
                    viewer.clear_trail()
                    env.render()
                    status = "reset"
                    continue

                action = {
                    pg.K_UP: Action.MOVE_FORWARD,
                    pg.K_LEFT: Action.TURN_LEFT,
                    pg.K_RIGHT: Action.TURN_RIGHT,
                    pg.K_DOWN: Action.TURN,
                }.get(ev.key)
                if action is None:
                    continue

                try:
                    env.step(action)
                except InvalidStepError:
                    status = "episode over: press R"
                    continue
                env.render()

                obs = env.get_observation()
                print(f"[drive] {action.name:<12} {format_observation(obs)}", flush=True)
                if obs.finished:
                    status = f"finished in {obs.time} steps (best {env.best_time})"
                elif obs.lost:
                    status = "left the road"
                else:
                    status = ""

                if obs.canceled and bool(args.auto_reset):
                    env.reset()
                    viewer.clear_trail()
                    env.render()

            obs = env.get_observation()
            viewer.draw(status_lines=[format_observation(obs), f"best time: {env.best_time}", status])
    finally:
        env.close()
        viewer.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
