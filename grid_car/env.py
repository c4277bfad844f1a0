from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Protocol

from grid_car.maps import TRACK, Direction, SurfaceLabel, TrackMap, TrackMapSpec


class Action(IntEnum):
    MOVE_FORWARD = 0
    TURN_LEFT = 1
    TURN_RIGHT = 2
    TURN = 3


class EpisodeState(Enum):
    ACTIVE = "active"
    ENDED_FINISHED = "ended_finished"
    ENDED_LOST = "ended_lost"


@dataclass(frozen=True)
class Position:
    x: int
    y: int


_DISPLACEMENT: dict[Direction, tuple[int, int]] = {
    Direction.NORTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, 1),
    Direction.WEST: (-1, 0),
}

_TURN_LEFT: dict[Direction, Direction] = {
    Direction.NORTH: Direction.WEST,
    Direction.WEST: Direction.SOUTH,
    Direction.SOUTH: Direction.EAST,
    Direction.EAST: Direction.NORTH,
}

_TURN_RIGHT: dict[Direction, Direction] = {v: k for k, v in _TURN_LEFT.items()}

_REVERSE: dict[Direction, Direction] = {
    Direction.NORTH: Direction.SOUTH,
    Direction.SOUTH: Direction.NORTH,
    Direction.EAST: Direction.WEST,
    Direction.WEST: Direction.EAST,
}


def ahead_of(position: Position, direction: Direction) -> Position:
    dx, dy = _DISPLACEMENT[direction]
    return Position(position.x + dx, position.y + dy)


@dataclass
class Car:
    position: Position
    direction: Direction

    def apply(self, action: Action) -> None:
        if action is Action.MOVE_FORWARD:
            self.position = ahead_of(self.position, self.direction)
        elif action is Action.TURN_LEFT:
            self.direction = _TURN_LEFT[self.direction]
        elif action is Action.TURN_RIGHT:
            self.direction = _TURN_RIGHT[self.direction]
        elif action is Action.TURN:
            self.direction = _REVERSE[self.direction]
        else:
            raise ValueError(f"Unknown action: {action!r}")


@dataclass(frozen=True)
class Observation:
    forward: SurfaceLabel
    position: Position
    direction: Direction
    canceled: bool
    finished: bool
    lost: bool
    time: int
    iteration: int
    turns_count: int


class InvalidStepError(RuntimeError):
    """Raised when stepping an episode that has already ended."""

    def __init__(self, observation: Observation) -> None:
        super().__init__(f"Episode already ended: {observation}")
        self.observation = observation


class CarView(Protocol):
    def set_car_at_position(self, position: Position, direction: Direction) -> None: ...


def _default_log(msg: str) -> None:
    print(str(msg), file=sys.stderr, flush=True)


class RenderDispatcher:
    """Delivers view updates on a single background worker; callers never wait."""

    def __init__(self, *, logger: Callable[[str], None] | None = None) -> None:
        self._log = logger if logger is not None else _default_log
        # Guards the executor handle so submit() never races a concurrent close().
        self._guard = threading.Lock()
        self._executor: ThreadPoolExecutor | None = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="render"
        )

    @property
    def closed(self) -> bool:
        with self._guard:
            return self._executor is None

    def submit(self, view: CarView, position: Position, direction: Direction) -> Future[None] | None:
        with self._guard:
            if self._executor is None:
                return None
            fut = self._executor.submit(view.set_car_at_position, position, direction)
        fut.add_done_callback(self._report)
        return fut

    def _report(self, fut: Future[None]) -> None:
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            self._log(f"[render] view update failed: {exc}")

    def close(self, *, wait: bool = False) -> None:
        with self._guard:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=not wait)


class CarGridEnv:
    """Car on a labeled grid: a two-state episode machine (active / ended).

    The car moves one cell per MOVE_FORWARD and turns in place. Nothing is
    prevented up front; after every step the car's cell decides the outcome:
    the finish cell ends the episode as finished, any non-drivable cell ends
    it as lost. All state lives behind one lock so a view reading the pose
    never sees a half-applied step.
    """

    def __init__(
        self,
        map_spec: TrackMapSpec = TRACK,
        *,
        view: CarView | None = None,
        dispatcher: RenderDispatcher | None = None,
    ) -> None:
        self.map_spec = map_spec
        self.track = TrackMap(map_spec)
        self.start_position = Position(*map_spec.start_xy)
        self.start_direction = map_spec.start_direction
        self.finish_position = Position(*map_spec.finish_xy)

        self.view = view
        self._dispatcher = dispatcher
        self._lock = threading.RLock()

        self._car = Car(self.start_position, self.start_direction)
        self._iteration = 1
        self._time = 0
        self._turns_count = 0
        self._best_time = -1
        self._state = EpisodeState.ACTIVE

    @property
    def best_time(self) -> int:
        with self._lock:
            return self._best_time

    @property
    def state(self) -> EpisodeState:
        with self._lock:
            return self._state

    @property
    def canceled(self) -> bool:
        return self.state is not EpisodeState.ACTIVE

    def reset(self) -> None:
        with self._lock:
            self._car = Car(self.start_position, self.start_direction)
            self._time = 0
            self._turns_count = 0
            self._iteration += 1
            self._state = EpisodeState.ACTIVE

    def step(self, action: Action | int, ignore_termination: bool = False) -> None:
        action = Action(action)
        with self._lock:
            if self._state is not EpisodeState.ACTIVE and not ignore_termination:
                raise InvalidStepError(self._observe())

            self._car.apply(action)
            self._time += 1
            if action is not Action.MOVE_FORWARD:
                self._turns_count += 1
            self._update_state()

    def get_observation(self) -> Observation:
        with self._lock:
            return self._observe()

    def render(self) -> None:
        if self.view is None:
            return
        with self._lock:
            position, direction = self._car.position, self._car.direction
        if self._dispatcher is None:
            self.view.set_car_at_position(position, direction)
        else:
            self._dispatcher.submit(self.view, position, direction)

    def close(self) -> None:
        if self._dispatcher is not None:
            self._dispatcher.close()

    def _update_state(self) -> None:
        pos = self._car.position
        if pos == self.finish_position:
            self._state = EpisodeState.ENDED_FINISHED
            if self._best_time == -1 or self._time < self._best_time:
                self._best_time = self._time
        elif not self.track.is_drivable(pos.y, pos.x):
            self._state = EpisodeState.ENDED_LOST
        else:
            self._state = EpisodeState.ACTIVE

    def _observe(self) -> Observation:
        car = self._car
        ahead = ahead_of(car.position, car.direction)
        return Observation(
            forward=self.track.surface_at(ahead.y, ahead.x),
            position=car.position,
            direction=car.direction,
            canceled=self._state is not EpisodeState.ACTIVE,
            finished=self._state is EpisodeState.ENDED_FINISHED,
            lost=self._state is EpisodeState.ENDED_LOST,
            time=self._time,
            iteration=self._iteration,
            turns_count=self._turns_count,
        )
