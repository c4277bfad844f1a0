"""Tests for the pygame track view."""

import threading

import pytest

from grid_car.env import Action, CarGridEnv, Position, RenderDispatcher
from grid_car.live_view_pygame import TrackLiveViewer
from grid_car.maps import TRACK, Direction, TrackMap


def test_disabled_viewer_records_pose_without_pygame():
    viewer = TrackLiveViewer(enabled=False)
    assert viewer.disabled
    assert viewer.pose is None
    viewer.set_car_at_position(Position(2, 10), Direction.NORTH)
    assert viewer.pose == (Position(2, 10), Direction.NORTH)
    assert not viewer.prepare_map(TrackMap(TRACK))
    assert viewer.pygame is None
    viewer.draw(status_lines=["ignored"])
    viewer.close()


def test_trail_tracks_moves_only():
    viewer = TrackLiveViewer(enabled=False, trail_len=3)
    viewer.set_car_at_position(Position(2, 10), Direction.NORTH)
    viewer.set_car_at_position(Position(2, 10), Direction.EAST)
    viewer.set_car_at_position(Position(3, 10), Direction.EAST)
    assert viewer.trail == [Position(2, 10), Position(3, 10)]

    viewer.set_car_at_position(Position(4, 10), Direction.EAST)
    viewer.set_car_at_position(Position(5, 10), Direction.EAST)
    assert viewer.trail == [Position(3, 10), Position(4, 10), Position(5, 10)]

    viewer.clear_trail()
    assert viewer.trail == []
    viewer.set_car_at_position(Position(5, 10), Direction.SOUTH)
    assert viewer.trail == [Position(5, 10)]


def test_viewer_as_env_sink_through_dispatcher(finish_route):
    viewer = TrackLiveViewer(enabled=False)
    dispatcher = RenderDispatcher()
    env = CarGridEnv(view=viewer, dispatcher=dispatcher)
    for a in finish_route:
        env.step(a)
        env.render()
    dispatcher.close(wait=True)
    assert viewer.pose == (Position(8, 1), Direction.NORTH)
    assert viewer.trail[-1] == Position(8, 1)


def test_set_car_at_position_is_thread_safe():
    viewer = TrackLiveViewer(enabled=False, trail_len=10_000)

    def writer(x):
        for y in range(500):
            viewer.set_car_at_position(Position(x, y), Direction.NORTH)

    threads = [threading.Thread(target=writer, args=(x,)) for x in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert viewer.pose is not None
    assert len(viewer.trail) <= 2000


def test_logger_receives_disable_reason():
    messages = []
    viewer = TrackLiveViewer(logger=messages.append)
    viewer._disable("no display")
    assert viewer.disabled
    assert messages == ["[view] no display"]
    viewer._disable("second reason")
    assert len(messages) == 1


def test_headless_draw(monkeypatch):
    pytest.importorskip("pygame")
    monkeypatch.setenv("SDL_VIDEODRIVER", "dummy")
    monkeypatch.setenv("SDL_AUDIODRIVER", "dummy")

    viewer = TrackLiveViewer(fps=0, window_size=300)
    env = CarGridEnv(view=viewer)
    try:
        assert viewer.prepare_map(env.track)
        env.step(Action.MOVE_FORWARD)
        env.render()
        viewer.poll_events()
        viewer.draw(status_lines=["t=1"])
        assert not viewer.disabled
        assert viewer.pygame is not None
        assert hasattr(viewer.pygame, "KEYDOWN")
        assert viewer.pose == (Position(2, 9), Direction.NORTH)
    finally:
        viewer.close()
