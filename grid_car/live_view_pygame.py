from __future__ import annotations

import math
import sys
import threading
from collections import deque
from collections.abc import Callable
from typing import Any

import numpy as np

from grid_car.env import Position
from grid_car.maps import Direction, SurfaceLabel, TrackMap


_SURFACE_COLORS: dict[SurfaceLabel, tuple[int, int, int]] = {
    SurfaceLabel.WASTELAND: (58, 74, 48),
    SurfaceLabel.ROAD: (150, 150, 150),
    SurfaceLabel.STOP: (200, 70, 60),
}

# Screen y grows downward like the grid rows, so NORTH is -pi/2.
_HEADING_RAD: dict[Direction, float] = {
    Direction.NORTH: -0.5 * math.pi,
    Direction.EAST: 0.0,
    Direction.SOUTH: 0.5 * math.pi,
    Direction.WEST: math.pi,
}


class TrackLiveViewer:
    def __init__(
        self,
        *,
        enabled: bool = True,
        fps: int = 30,
        window_size: int = 650,
        trail_len: int = 200,
        logger: Callable[[str], None] | None = None,
    ) -> None:
        self.enabled = bool(enabled)
        self.fps = max(0, int(fps))
        self.window_size = max(200, int(window_size))
        self.trail_len = max(1, int(trail_len))
        self._log = logger if logger is not None else self._default_log

        self._disabled_reason: str | None = None
        self._pygame: Any | None = None
        self._screen: Any | None = None
        self._clock: Any | None = None
        self._font: Any | None = None

        self._map_surface: Any | None = None
        self._map_shape: tuple[int, int] | None = None
        self._start_xy: tuple[int, int] = (0, 0)
        self._finish_xy: tuple[int, int] = (0, 0)
        self._cell_px: float = 1.0
        self._map_left: int = 0
        self._map_top: int = 0

        # set_car_at_position may arrive from a render worker thread.
        self._pose_lock = threading.Lock()
        self._pose: tuple[Position, Direction] | None = None
        self._trail: deque[Position] = deque(maxlen=self.trail_len)
        self.running = True

    @property
    def disabled(self) -> bool:
        return (not self.enabled) or (self._disabled_reason is not None)

    @property
    def pygame(self) -> Any | None:
        """The pygame module once the window is up; None while disabled."""
        return None if self.disabled else self._pygame

    @property
    def pose(self) -> tuple[Position, Direction] | None:
        with self._pose_lock:
            return self._pose

    @property
    def trail(self) -> list[Position]:
        with self._pose_lock:
            return list(self._trail)

    def set_car_at_position(self, position: Position, direction: Direction) -> None:
        with self._pose_lock:
            if self._pose is not None and self._pose[0] != position:
                self._trail.append(position)
            elif not self._trail:
                self._trail.append(position)
            self._pose = (position, direction)

    def clear_trail(self) -> None:
        with self._pose_lock:
            self._trail.clear()

    def prepare_map(self, track: TrackMap) -> bool:
        if not self._ensure_backend():
            return False
        assert self._pygame is not None

        grid = np.asarray(track.grid)
        h, w = int(grid.shape[0]), int(grid.shape[1])
        pad = max(8, int(round(self.window_size * 0.04)))
        header = 48
        usable_w = max(16, self.window_size - 2 * pad)
        usable_h = max(16, self.window_size - 2 * pad - header)
        self._cell_px = max(1.0, min(float(usable_w) / float(w), float(usable_h) / float(h)))
        map_w_px = max(1, int(round(float(w) * self._cell_px)))
        map_h_px = max(1, int(round(float(h) * self._cell_px)))
        self._map_left = (self.window_size - map_w_px) // 2
        self._map_top = header + (self.window_size - header - map_h_px) // 2

        surf = self._pygame.Surface((map_w_px, map_h_px))
        cell_i = max(1, int(math.ceil(self._cell_px)))
        for y in range(h):
            for x in range(w):
                color = _SURFACE_COLORS[SurfaceLabel(int(grid[y, x]))]
                px = int(round(float(x) * self._cell_px))
                py = int(round(float(y) * self._cell_px))
                self._pygame.draw.rect(surf, color, self._pygame.Rect(px, py, cell_i, cell_i))
        for x in range(w + 1):
            px = int(round(float(x) * self._cell_px))
            self._pygame.draw.line(surf, (40, 40, 40), (px, 0), (px, map_h_px), 1)
        for y in range(h + 1):
            py = int(round(float(y) * self._cell_px))
            self._pygame.draw.line(surf, (40, 40, 40), (0, py), (map_w_px, py), 1)

        self._map_surface = surf
        self._map_shape = (h, w)
        self._start_xy = track.spec.start_xy
        self._finish_xy = track.spec.finish_xy
        return True

    def poll_events(self) -> list[Any]:
        if not self._ensure_backend():
            self.running = False
            return []
        assert self._pygame is not None
        out: list[Any] = []
        try:
            for event in self._pygame.event.get():
                if event.type == self._pygame.QUIT:
                    self.running = False
                    break
                out.append(event)
        except Exception as exc:
            self._disable(f"event handling failed: {exc}")
            self.running = False
        return out

    def draw(self, *, status_lines: list[str] | None = None) -> None:
        if self.disabled or self._screen is None or self._pygame is None:
            return

        pg = self._pygame
        self._screen.fill((18, 20, 24))
        if self._map_surface is not None:
            self._screen.blit(self._map_surface, (self._map_left, self._map_top))

        radius = max(3, int(round(self._cell_px * 0.22)))
        pg.draw.circle(self._screen, (66, 165, 245), self._cell_to_px(self._start_xy), radius)
        pg.draw.circle(self._screen, (255, 214, 0), self._cell_to_px(self._finish_xy), radius + 2, 3)

        trail = self.trail
        if len(trail) >= 2:
            pts = [self._cell_to_px((p.x, p.y)) for p in trail]
            pg.draw.lines(self._screen, (255, 191, 0), False, pts, 2)

        pose = self.pose
        if pose is not None:
            self._draw_car(*pose)

        y = 8
        if self._font is not None:
            for line in status_lines or []:
                surf = self._font.render(str(line), True, (240, 240, 240))
                self._screen.blit(surf, (10, y))
                y += max(18, int(surf.get_height()) + 2)

        pg.display.flip()
        if self._clock is not None and self.fps > 0:
            self._clock.tick(self.fps)

    def close(self) -> None:
        self.running = False
        if self._pygame is None:
            return
        try:
            if self._screen is not None:
                self._pygame.display.quit()
        except Exception as exc:
            self._log(f"[view] display shutdown failed: {exc}")
        finally:
            self._screen = None
            self._clock = None
            self._font = None

    def _draw_car(self, position: Position, direction: Direction) -> None:
        assert self._pygame is not None
        cx, cy = self._cell_to_px((position.x, position.y))
        psi = _HEADING_RAD[direction]
        nose = 0.42 * self._cell_px
        tail = 0.30 * self._cell_px
        c, s = math.cos(psi), math.sin(psi)
        pts = [
            (cx + c * nose, cy + s * nose),
            (cx - c * tail - s * tail, cy - s * tail + c * tail),
            (cx - c * tail + s * tail, cy - s * tail - c * tail),
        ]
        pts_i = [(int(round(px)), int(round(py))) for px, py in pts]
        self._pygame.draw.polygon(self._screen, (102, 187, 106), pts_i)
        self._pygame.draw.polygon(self._screen, (20, 20, 20), pts_i, 1)

    def _cell_to_px(self, xy: tuple[float, float]) -> tuple[int, int]:
        px = float(self._map_left) + (float(xy[0]) + 0.5) * float(self._cell_px)
        py = float(self._map_top) + (float(xy[1]) + 0.5) * float(self._cell_px)
        return (int(round(px)), int(round(py)))

    def _ensure_backend(self) -> bool:
        if self.disabled:
            return False

        if self._pygame is None:
            try:
                import pygame  # type: ignore
            except Exception:
                self._disable("pygame is missing; install via `pip install pygame`")
                return False
            self._pygame = pygame

        if self._screen is not None:
            return True

        try:
            self._pygame.init()
            self._pygame.font.init()
            self._screen = self._pygame.display.set_mode((self.window_size, self.window_size))
            self._pygame.display.set_caption("grid_car")
            self._clock = self._pygame.time.Clock()
            self._font = self._pygame.font.SysFont("Consolas", 16)
            if self._font is None:
                self._font = self._pygame.font.Font(None, 18)
            return True
        except Exception as exc:
            self._disable(f"pygame init failed: {exc}")
            return False

    def _disable(self, reason: str) -> None:
        if self._disabled_reason is None:
            self._disabled_reason = str(reason)
            self._log(f"[view] {self._disabled_reason}")
        self.close()

    @staticmethod
    def _default_log(msg: str) -> None:
        print(str(msg), file=sys.stderr, flush=True)
