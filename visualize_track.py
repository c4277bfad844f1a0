from __future__ import annotations

import argparse
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import ListedColormap


def main() -> int:
    ap = argparse.ArgumentParser(description="Plot a grid_car track map with start and finish cells.")
    ap.add_argument("--map", type=str, default="track", help="Map name (e.g., track).")
    ap.add_argument("--out", type=Path, default=None, help="Optional output image path (.png).")
    ap.add_argument("--dpi", type=int, default=200, help="Saved image DPI (when --out is set).")
    ap.add_argument(
        "--show",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Show an interactive matplotlib window (disable with --no-show).",
    )
    args = ap.parse_args()

    repo_root = Path(__file__).resolve().parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    from grid_car.maps import SurfaceLabel, TrackMap, get_map_spec  # local import after sys.path patch

    spec = get_map_spec(str(args.map).strip())
    track = TrackMap(spec)
    grid = np.asarray(track.grid)
    h, w = grid.shape

    # WASTELAND, ROAD, STOP
    cmap = ListedColormap(["#3a4a30", "#969696", "#c8463c"])
    fig, ax = plt.subplots(1, 1, figsize=(6.5, 6.0))
    ax.imshow(grid, origin="upper", cmap=cmap, vmin=0, vmax=len(SurfaceLabel) - 1, interpolation="nearest")
    ax.scatter([spec.start_xy[0]], [spec.start_xy[1]], marker="^", s=140, color="dodgerblue", label="Start")
    ax.scatter([spec.finish_xy[0]], [spec.finish_xy[1]], marker="*", s=180, color="gold", label="Finish")
    ax.set_title(f"{spec.name} (H={h}, W={w})")
    ax.set_xlabel("x (column)")
    ax.set_ylabel("y (row)")

    ax.set_xticks(np.arange(-0.5, w, 1.0), minor=True)
    ax.set_yticks(np.arange(-0.5, h, 1.0), minor=True)
    ax.grid(which="minor", color="k", linestyle="-", linewidth=0.4, alpha=0.3)
    ax.tick_params(which="minor", bottom=False, left=False)
    ax.legend(loc="lower right", fontsize=9)

    fig.tight_layout()
    if args.out is not None:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path, dpi=int(args.dpi))
        print(f"Wrote: {out_path}")

    if bool(args.show):
        plt.show()
    else:
        plt.close(fig)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
