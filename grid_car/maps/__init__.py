from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

import numpy as np


class SurfaceLabel(IntEnum):
    WASTELAND = 0
    ROAD = 1
    STOP = 2

    @property
    def drivable(self) -> bool:
        # STOP marks a stop line; for movement legality it is road.
        return self is not SurfaceLabel.WASTELAND


class Direction(Enum):
    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"


_LABEL_CHARS: dict[str, SurfaceLabel] = {
    ".": SurfaceLabel.WASTELAND,
    "R": SurfaceLabel.ROAD,
    "S": SurfaceLabel.STOP,
}


@dataclass(frozen=True)
class TrackMapSpec:
    name: str
    rows_y0_top: tuple[str, ...]
    start_xy: tuple[int, int]
    start_direction: Direction
    finish_xy: tuple[int, int]

    @property
    def size(self) -> tuple[int, int]:
        height = len(self.rows_y0_top)
        width = len(self.rows_y0_top[0]) if height else 0
        return width, height

    def label_grid(self) -> np.ndarray:
        """Returns a (H, W) uint8 array of SurfaceLabel values, y=0 at top."""
        width, height = self.size
        if height == 0 or width == 0:
            raise ValueError(f"Empty map: {self.name!r}")
        if any(len(r) != width for r in self.rows_y0_top):
            raise ValueError(f"Non-rectangular map: {self.name!r}")

        grid = np.full((height, width), int(SurfaceLabel.WASTELAND), dtype=np.uint8)
        for y, row in enumerate(self.rows_y0_top):
            for x, ch in enumerate(row):
                label = _LABEL_CHARS.get(ch)
                if label is None:
                    raise ValueError(
                        f"Invalid char {ch!r} in map {self.name!r} at (x={x}, y={y})"
                    )
                grid[y, x] = int(label)
        return grid


class TrackMap:
    """Immutable surface lookup built once from a TrackMapSpec."""

    def __init__(self, spec: TrackMapSpec) -> None:
        self.spec = spec
        grid = spec.label_grid()
        grid.setflags(write=False)
        self._grid = grid
        self.height, self.width = grid.shape

    @property
    def grid(self) -> np.ndarray:
        return self._grid

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.height and 0 <= col < self.width

    def surface_at(self, row: int, col: int) -> SurfaceLabel:
        if not self.in_bounds(row, col):
            return SurfaceLabel.WASTELAND
        return SurfaceLabel(int(self._grid[row, col]))

    def is_drivable(self, row: int, col: int) -> bool:
        return self.surface_at(row, col).drivable

    def cells(self, label: SurfaceLabel) -> list[tuple[int, int]]:
        """(x, y) of every cell carrying `label`, row-major."""
        ys, xs = np.nonzero(self._grid == int(label))
        return [(int(x), int(y)) for y, x in zip(ys, xs)]


TRACK = TrackMapSpec(
    name="track",
    rows_y0_top=(
        ".............",
        "........R....",
        ".....RRRRRRR.",
        ".....R..S..R.",
        ".RRRRRRRRSRR.",
        "..S..R..R..R.",
        "..R..S..R..R.",
        "..RRRRRRRRRR.",
        "..S..R..S....",
        "..RRRRRRR....",
        "..R..........",
        ".............",
    ),
    start_xy=(2, 10),
    start_direction=Direction.NORTH,
    finish_xy=(8, 1),
)


MAPS: dict[str, TrackMapSpec] = {TRACK.name: TRACK}


def get_map_spec(name: str) -> TrackMapSpec:
    try:
        return MAPS[name]
    except KeyError as e:
        raise KeyError(f"Unknown map {name!r}. Options: {sorted(MAPS)}") from e
