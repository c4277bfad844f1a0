from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import gym
import numpy as np

from grid_car.env import Action, CarGridEnv, CarView, Observation, RenderDispatcher
from grid_car.maps import TRACK, Direction, SurfaceLabel, TrackMapSpec


_DIRECTION_INDEX: dict[Direction, int] = {d: i for i, d in enumerate(Direction)}


@dataclass(frozen=True)
class RewardWeights:
    finish: float = 1.0
    lost: float = -1.0
    step: float = -0.01
    turn: float = 0.0


class CarGridGymEnv(gym.Env):
    """gym.Env adapter over CarGridEnv.

    Observation vector: [forward label, x, y, heading index], int64. The
    position is clipped into the grid for the vector only; `info["agent_xy"]`
    carries the raw cell even after the car has left the map.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        map_spec: TrackMapSpec = TRACK,
        *,
        max_steps: int = 200,
        reward: RewardWeights = RewardWeights(),
        view: CarView | None = None,
        dispatcher: RenderDispatcher | None = None,
    ) -> None:
        super().__init__()
        self.core = CarGridEnv(map_spec, view=view, dispatcher=dispatcher)
        self.max_steps = int(max_steps)
        if self.max_steps <= 0:
            raise ValueError("max_steps must be > 0")
        self.reward = reward

        width, height = self.core.track.width, self.core.track.height
        self.action_space = gym.spaces.Discrete(len(Action))
        self.observation_space = gym.spaces.MultiDiscrete(
            np.array([len(SurfaceLabel), width, height, len(Direction)], dtype=np.int64)
        )

    def reset(self, *, seed: int | None = None, options: dict[str, Any] | None = None):
        super().reset(seed=seed)
        self.core.reset()
        obs = self.core.get_observation()
        return self._encode(obs), self._info(obs)

    def step(self, action: int):
        act = Action(int(action))
        self.core.step(act)
        obs = self.core.get_observation()

        terminated = obs.canceled
        truncated = (not terminated) and obs.time >= self.max_steps
        return self._encode(obs), float(self._reward(act, obs)), bool(terminated), bool(truncated), self._info(obs)

    def render(self) -> None:
        self.core.render()

    def close(self) -> None:
        self.core.close()
        super().close()

    def _reward(self, action: Action, obs: Observation) -> float:
        r = float(self.reward.step)
        if action is not Action.MOVE_FORWARD:
            r += float(self.reward.turn)
        if obs.finished:
            r += float(self.reward.finish)
        elif obs.lost:
            r += float(self.reward.lost)
        return r

    def _encode(self, obs: Observation) -> np.ndarray:
        width, height = self.core.track.width, self.core.track.height
        return np.array(
            [
                int(obs.forward),
                int(np.clip(obs.position.x, 0, width - 1)),
                int(np.clip(obs.position.y, 0, height - 1)),
                _DIRECTION_INDEX[obs.direction],
            ],
            dtype=np.int64,
        )

    def _info(self, obs: Observation) -> dict[str, Any]:
        return {
            "agent_xy": (int(obs.position.x), int(obs.position.y)),
            "direction": obs.direction.name,
            "forward": obs.forward.name,
            "finished": bool(obs.finished),
            "lost": bool(obs.lost),
            "time": int(obs.time),
            "turns_count": int(obs.turns_count),
            "iteration": int(obs.iteration),
            "best_time": int(self.core.best_time),
        }
