"""Tests for the track map and surface lookup."""

import numpy as np
import pytest

from grid_car.maps import TRACK, Direction, SurfaceLabel, TrackMap, TrackMapSpec, get_map_spec

ROAD_CELLS = {
    (2, 10),
    (2, 9), (3, 9), (4, 9), (5, 9), (6, 9), (7, 9), (8, 9),
    (5, 8),
    (2, 7), (3, 7), (4, 7), (5, 7), (6, 7), (7, 7), (8, 7), (9, 7), (10, 7), (11, 7),
    (2, 6), (8, 6), (11, 6),
    (5, 5), (8, 5), (11, 5),
    (1, 4), (2, 4), (3, 4), (4, 4), (5, 4), (6, 4), (7, 4), (8, 4), (10, 4), (11, 4),
    (5, 3), (11, 3),
    (5, 2), (6, 2), (7, 2), (8, 2), (9, 2), (10, 2), (11, 2),
    (8, 1),
}
STOP_CELLS = {(2, 8), (8, 8), (5, 6), (2, 5), (9, 4), (8, 3)}


@pytest.fixture(scope="module")
def track():
    return TrackMap(TRACK)


class TestTrackLayout:
    def test_dimensions(self, track):
        assert (track.height, track.width) == (12, 13)
        assert TRACK.size == (13, 12)

    def test_road_cells(self, track):
        assert set(track.cells(SurfaceLabel.ROAD)) == ROAD_CELLS

    def test_stop_cells(self, track):
        assert set(track.cells(SurfaceLabel.STOP)) == STOP_CELLS

    def test_everything_else_is_wasteland(self, track):
        n_wasteland = len(track.cells(SurfaceLabel.WASTELAND))
        assert n_wasteland == 12 * 13 - len(ROAD_CELLS) - len(STOP_CELLS)

    def test_start_and_finish(self):
        assert TRACK.start_xy == (2, 10)
        assert TRACK.start_direction is Direction.NORTH
        assert TRACK.finish_xy == (8, 1)


class TestSurfaceAt:
    def test_lookup_is_row_then_column(self, track):
        # finish cell: x=8, y=1
        assert track.surface_at(1, 8) is SurfaceLabel.ROAD
        assert track.surface_at(8, 1) is SurfaceLabel.WASTELAND

    @pytest.mark.parametrize("row,col", [(-1, 0), (0, -1), (12, 0), (0, 13), (100, 100), (-5, 20)])
    def test_out_of_bounds_is_wasteland(self, track, row, col):
        assert track.surface_at(row, col) is SurfaceLabel.WASTELAND
        assert not track.is_drivable(row, col)

    def test_stop_is_drivable(self, track):
        assert track.surface_at(8, 2) is SurfaceLabel.STOP
        assert track.is_drivable(8, 2)

    def test_grid_is_read_only(self, track):
        with pytest.raises(ValueError):
            track.grid[0, 0] = int(SurfaceLabel.ROAD)
        assert track.surface_at(0, 0) is SurfaceLabel.WASTELAND


class TestMapSpecValidation:
    def _spec(self, rows):
        return TrackMapSpec(
            name="bad",
            rows_y0_top=tuple(rows),
            start_xy=(0, 0),
            start_direction=Direction.NORTH,
            finish_xy=(0, 0),
        )

    def test_invalid_char(self):
        with pytest.raises(ValueError, match="Invalid char"):
            self._spec(["R.", ".X"]).label_grid()

    def test_non_rectangular(self):
        with pytest.raises(ValueError, match="Non-rectangular"):
            self._spec(["R..", "."]).label_grid()

    def test_empty(self):
        with pytest.raises(ValueError, match="Empty"):
            self._spec([]).label_grid()

    def test_label_values(self):
        grid = self._spec(["RS."]).label_grid()
        np.testing.assert_array_equal(grid, np.array([[1, 2, 0]], dtype=np.uint8))


def test_get_map_spec():
    assert get_map_spec("track") is TRACK
    with pytest.raises(KeyError, match="Unknown map"):
        get_map_spec("nope")
