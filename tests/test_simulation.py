"""Tests for the simulation orchestrator."""

import numpy as np
import pytest
from pydantic import ValidationError

from py_microclimate.config.controls import SimulationControls
from py_microclimate.core.landscape import build_default_landscape
from py_microclimate.core.metrics import SimulationMetrics
from py_microclimate.core.simulation import MicroclimateSimulation
from py_microclimate.core.soil import initialize_soil_moisture
from py_microclimate.core.spatial import SpatialAnalysis
from py_microclimate.core.state import ATMOSPHERIC_GRIDS, create_simulation_state
from py_microclimate.core.surface import LandType


def make_simulation(seed=42, size=24, **controls):
    rng = np.random.default_rng(seed)
    state = build_default_landscape(size, rng)
    return MicroclimateSimulation(state, controls=SimulationControls(**controls), rng=rng)


class TestMicroclimateSimulation:
    """Test tick ordering, invariants and edits."""

    def test_zero_tick_is_idempotent(self):
        """Test that repeated zero-length ticks change nothing."""
        sim = make_simulation(month=7)
        sim.tick(0.0)
        before = sim.state.snapshot(ATMOSPHERIC_GRIDS)
        sim.tick(0.0)
        for name, grid in before.items():
            np.testing.assert_array_equal(getattr(sim.state, name), grid, err_msg=name)

    def test_advance_moves_clock(self):
        """Test that advancing moves the clock and returns metrics."""
        sim = make_simulation()
        start = sim.state.simulation_time
        metrics = sim.advance(45)
        assert sim.state.simulation_time == start + 45
        assert isinstance(metrics, SimulationMetrics)
        assert sim.metrics is metrics

    def test_single_water_cell_moistens_air(self):
        """Test one full tick over a lone water cell with the sun well up and no wind."""
        state = create_simulation_state(9)
        state.land_cover[4, 4] = LandType.WATER
        SpatialAnalysis(state).run()
        initialize_soil_moisture(state)
        state.simulation_time = 9 * 60 + 2
        controls = SimulationControls(wind_speed=0, wind_gustiness=0)
        sim = MicroclimateSimulation(state, controls=controls, rng=np.random.default_rng(3))
        before = float(state.humidity[4, 4])

        sim.advance(30)

        assert sim.sun_altitude == pytest.approx(0.8, abs=0.01)
        assert sim.state.humidity[4, 4] > before
        around = (slice(3, 6), slice(3, 6))
        assert np.all(sim.state.cloud_water[around] >= 0)
        assert np.all(sim.state.cloud_coverage[around] >= 0)

    def test_negative_advance_is_clamped(self):
        """Test that negative advances leave the clock alone."""
        sim = make_simulation()
        start = sim.state.simulation_time
        sim.advance(-30)
        assert sim.state.simulation_time == start

    @pytest.mark.parametrize("month,start_hour", [(1, 2), (7, 10), (10, 17)])
    def test_fields_stay_in_range(self, month, start_hour):
        """Test that every field stays in range over several ticks."""
        sim = make_simulation(month=month, wind_speed=18, wind_gustiness=60)
        sim.state.simulation_time = start_hour * 60
        for _ in range(8):
            sim.advance(30)

        state = sim.state
        assert np.all((state.humidity >= 0) & (state.humidity <= 1))
        assert np.all((state.fog_density >= 0) & (state.fog_density <= 1))
        assert np.all((state.cloud_coverage >= 0) & (state.cloud_coverage <= 1))
        assert np.all((state.soil_moisture >= 0) & (state.soil_moisture <= 1))
        assert np.all(state.snow_depth >= 0)
        assert np.all(state.precipitation >= 0)
        assert np.all((state.temperature >= -70) & (state.temperature <= 65))
        assert np.all(np.isfinite(state.temperature))
        assert state.inversion_strength >= 0

    def test_seeded_runs_replay(self):
        """Test that equal seeds replay identical runs."""
        first = make_simulation(seed=5)
        second = make_simulation(seed=5)
        for _ in range(4):
            first.advance(20)
            second.advance(20)
        np.testing.assert_array_equal(first.state.temperature, second.state.temperature)
        np.testing.assert_array_equal(first.state.cloud_water, second.state.cloud_water)
        np.testing.assert_array_equal(first.state.fog_density, second.state.fog_density)

    def test_disabled_features(self):
        """Test that disabled subsystems leave their fields reset."""
        sim = make_simulation(enable_clouds=False, enable_downslope=False, enable_inversions=False)
        sim.state.cloud_coverage.fill(0.5)
        sim.state.simulation_time = 2 * 60
        sim.advance(30)

        assert np.all(sim.state.cloud_coverage == 0)
        assert np.all(sim.state.wind_speed == 0)
        assert sim.state.inversion_strength == 0
        assert sim.state.inversion_height == 0

    def test_calm_clear_night_builds_inversion(self):
        """Test an inversion forming on a calm clear night."""
        sim = make_simulation(wind_speed=0, enable_clouds=False)
        sim.state.simulation_time = 2 * 60
        sim.tick(0.0)
        assert sim.state.inversion_strength > 0
        assert sim.state.inversion_height > 0

    def test_sun_altitude_uses_minutes(self):
        """Test that sun altitude includes the minutes."""
        state = create_simulation_state(5)
        state.simulation_time = 6 * 60 + 30
        sim = MicroclimateSimulation(state, rng=np.random.default_rng(0))
        assert sim.hour == 6
        assert sim.sun_altitude > 0

    def test_land_brush_refreshes_spatial_fields(self):
        """Test that a land edit refreshes the spatial fields."""
        state = create_simulation_state(10)
        sim = MicroclimateSimulation(state, rng=np.random.default_rng(0))
        sim.recalculate_spatial_fields()
        assert np.all(np.isinf(state.water_distance))

        result = sim.apply_brush({"center": (5, 5), "radius": 2, "category": "land", "value": "water"})
        assert result.surface_changed
        assert state.land_cover[5, 5] == LandType.WATER
        assert state.water_distance[5, 5] == 0
        assert np.all(np.isfinite(sim.state.water_distance))
        assert state.soil_moisture[5, 5] > state.soil_moisture[0, 0]

    def test_terrain_brush_refreshes_hillshade(self):
        """Test that a terrain edit refreshes the hillshade."""
        state = create_simulation_state(10)
        sim = MicroclimateSimulation(state, rng=np.random.default_rng(0))
        sim.recalculate_spatial_fields()
        flat_shade = state.hillshade.copy()

        sim.apply_brush({"center": (5, 5), "radius": 3, "strength": 50})
        assert not np.array_equal(state.hillshade, flat_shade)

    def test_brush_does_not_advance_clock(self):
        """Test that brush edits leave the clock alone."""
        sim = make_simulation()
        start = sim.state.simulation_time
        sim.apply_brush({"center": (3, 3), "radius": 2, "category": "action", "value": "manualPrecipitation"})
        assert sim.state.simulation_time == start

    def test_update_controls_validates(self):
        """Test that control updates are validated."""
        sim = make_simulation()
        sim.update_controls(month=12, wind_speed=25)
        assert sim.controls.month == 12
        with pytest.raises(ValidationError):
            sim.update_controls(month=13)
