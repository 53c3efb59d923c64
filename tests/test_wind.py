"""Tests for wind field synthesis."""

import math

import numpy as np
import pytest

from py_microclimate.core.state import create_simulation_state
from py_microclimate.core.surface import LandType
from py_microclimate.core.wind import WindFieldEngine, WindOptions, apply_wind_field, wind_unit_vector


class TestWindField:
    """Test terrain winds, gusts and drag."""

    @pytest.fixture
    def engine(self):
        return WindFieldEngine(WindOptions())

    @pytest.fixture
    def tilted_state(self):
        """Plane rising gently eastward."""
        state = create_simulation_state(12)
        _, xs = np.mgrid[0:12, 0:12]
        state.elevation = 100.0 + xs * 1.8
        return state

    def test_unit_vector(self):
        """Test wind direction to grid vector conversion."""
        np.testing.assert_allclose(wind_unit_vector(0), (0.0, -1.0), atol=1e-12)
        np.testing.assert_allclose(wind_unit_vector(90), (1.0, 0.0), atol=1e-12)

    def test_calm_flat_day_without_gusts(self, engine):
        """Test still air over flat ground by day."""
        state = create_simulation_state(10)
        field = engine.compute(state, hour=12, base_speed=5, base_direction=270, gustiness=0)

        assert np.all(field.wind_x == 0)
        assert np.all(field.wind_y == 0)
        assert np.all(field.downslope_winds == 0)

    def test_speed_is_vector_magnitude(self, engine, ridge_state, rng):
        """Test that speed is the vector magnitude."""
        field = engine.compute(ridge_state, hour=14, base_speed=20, base_direction=0, gustiness=40, rng=rng)
        np.testing.assert_allclose(field.wind_speed, np.hypot(field.wind_x, field.wind_y))

    def test_seeded_gusts_are_reproducible(self, engine, ridge_state):
        """Test that equal generators give equal gusts."""
        first = engine.compute(ridge_state, 14, 12, 180, 50, np.random.default_rng(7))
        second = engine.compute(ridge_state, 14, 12, 180, 50, np.random.default_rng(7))
        np.testing.assert_array_equal(first.wind_x, second.wind_x)
        np.testing.assert_array_equal(first.wind_y, second.wind_y)

    def test_gusts_leave_border_untouched(self, engine, rng):
        """Test that gusts stay off the border cells."""
        state = create_simulation_state(10)
        field = engine.compute(state, hour=12, base_speed=10, base_direction=90, gustiness=100, rng=rng)
        assert np.all(field.wind_x[0, :] == 0)
        assert np.all(field.wind_y[:, -1] == 0)
        assert np.any(field.wind_x[1:-1, 1:-1] != 0)

    def test_katabatic_drainage_at_night(self, engine, tilted_state):
        """Test downslope drainage at night."""
        field = engine.compute(tilted_state, hour=2, base_speed=0, base_direction=0, gustiness=0)

        inner = (slice(2, -2), slice(2, -2))
        assert np.all(field.downslope_winds[inner] < 0)
        assert np.all(field.wind_x[inner] < 0)
        assert np.all(field.downslope_winds[0, :] == 0)

    def test_no_katabatic_by_day(self, engine, tilted_state):
        """Test that drainage stops by day."""
        field = engine.compute(tilted_state, hour=13, base_speed=0, base_direction=0, gustiness=0)
        assert np.all(field.downslope_winds == 0)

    def test_strong_wind_suppresses_drainage(self, engine, tilted_state):
        """Test that strong ambient wind suppresses drainage."""
        field = engine.compute(tilted_state, hour=2, base_speed=30, base_direction=0, gustiness=0)
        assert np.all(field.downslope_winds == 0)

    def test_vegetation_drag(self, engine):
        """Test drag per land cover and forest depth."""
        land = np.array([[LandType.GRASSLAND, LandType.FOREST, LandType.WATER]], dtype=np.int8)
        depth = np.array([[0.0, 20.0, 0.0]])
        drag = engine.vegetation_drag(land, depth)
        np.testing.assert_allclose(drag, [[0.85, 0.55 * 0.6, 0.95]])

    def test_apply_wind_field(self, engine, ridge_state, rng):
        """Test writing the field into the state."""
        field = engine.compute(ridge_state, 14, 15, 0, 30, rng)
        apply_wind_field(ridge_state, field)
        assert ridge_state.wind_speed is field.wind_speed


def ridge(height, fall_per_row, size=30):
    """East-west ridge centred between rows 14 and 15."""
    state = create_simulation_state(size)
    ys, _ = np.mgrid[0:size, 0:size]
    state.elevation = 100.0 + np.maximum(0.0, height - np.abs(ys - 14.5) * fall_per_row)
    return state


class TestTerrainFlows:
    """Test foehn warming and valley channeling."""

    @pytest.fixture
    def engine(self):
        return WindFieldEngine(WindOptions())

    @pytest.fixture
    def valley(self):
        """East-west trough with its floor on row 15 and walls rising 30 m per row."""
        ys, _ = np.mgrid[0:30, 0:30]
        return 100.0 + np.abs(ys - 15) * 30.0

    def foehn_rows(self, engine, state, direction, speed=25):
        field = engine.compute(state, hour=14, base_speed=speed, base_direction=direction, gustiness=0)
        return np.nonzero(field.foehn_effect.max(axis=1) > 0)[0], field

    def test_foehn_warms_lee_side(self, engine):
        """Test that foehn appears only downwind of the crest and follows the wind."""
        state = ridge(300, 30)

        northward, field = self.foehn_rows(engine, state, direction=0)
        assert northward.size > 0
        assert northward.max() < 14.5
        assert np.all(field.foehn_effect >= 0)

        southward, _ = self.foehn_rows(engine, state, direction=180)
        assert southward.size > 0
        assert southward.min() > 14.5

    def test_no_foehn_in_light_wind(self, engine):
        """Test that winds at or below the threshold leave the lee unwarmed."""
        rows, _ = self.foehn_rows(engine, ridge(300, 30), direction=0, speed=10)
        assert rows.size == 0

    def test_foehn_warming_is_capped(self, engine):
        """Test that a deep descent in a gale is limited to the maximum warming."""
        _, field = self.foehn_rows(engine, ridge(2000, 300), direction=0, speed=90)
        assert field.foehn_effect.max() == pytest.approx(engine.options.foehn_max_warming)

    def test_valley_floor_is_enclosed(self, engine, valley):
        """Test that the trough floor is detected away from the border."""
        valleys = engine._enclosed_valleys(valley)
        assert np.all(valleys[15, 2:-2])
        assert not np.any(valleys[:2, :])
        assert not np.any(valleys[:, -2:])

    def test_wind_along_axis_is_accelerated(self, engine, valley):
        """Test the venturi speed-up for wind blowing along a narrow valley."""
        vx, vy, width = engine._valley_axis(valley, 15, 15)
        assert width < engine.options.valley_reference_width

        wx, wy = wind_unit_vector(math.degrees(math.atan2(vx, -vy)))
        channel = engine._channel_vector(valley, 15, 15, 20, wx, wy)

        assert np.hypot(*channel) > 20 * engine.options.channel_speed_factor
        assert channel[0] * wx + channel[1] * wy > 0

    def test_cross_axis_wind_is_not_channeled(self, engine, valley):
        """Test that wind perpendicular to the valley axis gains no channel flow."""
        vx, vy, _ = engine._valley_axis(valley, 15, 15)
        wx, wy = wind_unit_vector(math.degrees(math.atan2(-vy, -vx)))
        channel = engine._channel_vector(valley, 15, 15, 20, wx, wy)
        np.testing.assert_allclose(channel, (0.0, 0.0), atol=1e-9)

    def test_channeling_drives_valley_wind(self, engine, valley):
        """Test that a daytime wind along the trough only moves air in the valley."""
        state = create_simulation_state(30)
        state.elevation = valley
        field = engine.compute(state, hour=14, base_speed=20, base_direction=90, gustiness=0)

        assert field.wind_x[15, 15] > 0
        assert np.all(field.foehn_effect == 0)
        assert np.all(field.downslope_winds == 0)
