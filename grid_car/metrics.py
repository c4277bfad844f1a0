from __future__ import annotations

from dataclasses import asdict, dataclass

from grid_car.env import Observation


@dataclass(frozen=True)
class EpisodeRecord:
    iteration: int
    outcome: str  # finished/lost/truncated
    time: int
    turns_count: int
    final_x: int
    final_y: int
    final_direction: str
    best_time: int

    def as_row(self) -> dict[str, object]:
        return asdict(self)


def episode_outcome(obs: Observation) -> str:
    if obs.finished:
        return "finished"
    if obs.lost:
        return "lost"
    return "truncated"


def record_episode(obs: Observation, *, best_time: int) -> EpisodeRecord:
    return EpisodeRecord(
        iteration=int(obs.iteration),
        outcome=episode_outcome(obs),
        time=int(obs.time),
        turns_count=int(obs.turns_count),
        final_x=int(obs.position.x),
        final_y=int(obs.position.y),
        final_direction=obs.direction.name,
        best_time=int(best_time),
    )


@dataclass(frozen=True)
class KPI:
    episodes: int
    success_rate: float
    lost_rate: float
    avg_time: float
    avg_finish_time: float
    avg_turns: float
    best_time: int


def summarize(records: list[EpisodeRecord]) -> KPI:
    """Aggregate episode records; `best_time` is -1 when nothing finished."""
    n = len(records)
    if n == 0:
        return KPI(
            episodes=0,
            success_rate=0.0,
            lost_rate=0.0,
            avg_time=0.0,
            avg_finish_time=0.0,
            avg_turns=0.0,
            best_time=-1,
        )

    finished = [r for r in records if r.outcome == "finished"]
    lost = sum(1 for r in records if r.outcome == "lost")
    finish_times = [r.time for r in finished]
    return KPI(
        episodes=n,
        success_rate=float(len(finished)) / float(n),
        lost_rate=float(lost) / float(n),
        avg_time=float(sum(r.time for r in records)) / float(n),
        avg_finish_time=(float(sum(finish_times)) / float(len(finish_times))) if finish_times else 0.0,
        avg_turns=float(sum(r.turns_count for r in records)) / float(n),
        best_time=int(min(finish_times)) if finish_times else -1,
    )
