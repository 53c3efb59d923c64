"""Tests for the air and soil energy balance."""

import math

import numpy as np
import pytest

from py_microclimate.core.seasonal import DEFAULT_CLIMATE_OVERRIDES
from py_microclimate.core.state import create_simulation_state
from py_microclimate.core.surface import LandType
from py_microclimate.core.thermodynamics import (
    Thermodynamics,
    ThermodynamicsOptions,
    solar_insolation,
    standard_temperature,
)


class TestThermodynamics:
    """Test the temperature update."""

    @pytest.fixture
    def thermo(self):
        return Thermodynamics(ThermodynamicsOptions())

    def _update(self, thermo, state, hour, sun, time_factor=1.0, **flags):
        flags.setdefault("enable_inversions", False)
        flags.setdefault("enable_downslope", False)
        thermo.update(state, month=6, hour=hour, sun_altitude=sun, time_factor=time_factor, **flags)

    def test_clear_night_cooling(self, thermo, flat_state):
        """Test radiative cooling on a clear night."""
        self._update(thermo, flat_state, hour=0, sun=0.0)

        humidity = 0.5 + (0.6 - 0.5) * 0.25
        air_rate = -1.1 * 0.2 - (humidity - 0.5) * 0.4 + (15.0 - 20.0) * 0.055
        np.testing.assert_allclose(flat_state.soil_temperature, 20.0 - 1.1)
        np.testing.assert_allclose(flat_state.temperature, 20.0 + air_rate)
        np.testing.assert_allclose(flat_state.humidity, humidity)

    def test_sun_warms_soil(self, thermo, flat_state):
        """Test that the sun warms the soil."""
        self._update(thermo, flat_state, hour=12, sun=1.0)
        np.testing.assert_allclose(flat_state.soil_temperature, 20.0 + 1.5 * (1 - 0.2))

    def test_zero_time_step_keeps_temperatures(self, thermo, flat_state):
        """Test that a zero time step keeps temperatures."""
        flat_state.temperature[3, 3] = 30.0
        before = flat_state.snapshot(("temperature", "soil_temperature", "humidity"))
        self._update(thermo, flat_state, hour=0, sun=0.0, time_factor=0.0)
        for name, grid in before.items():
            np.testing.assert_array_equal(getattr(flat_state, name), grid)

    def test_hourly_change_is_limited(self, thermo, flat_state):
        """Test the cap on hourly temperature change."""
        flat_state.latent_heat_effect.fill(100.0)
        self._update(thermo, flat_state, hour=0, sun=0.0, enable_diffusion=False)
        assert flat_state.temperature.max() <= 20.0 + 7.0 + 1e-9

    def test_deterministic(self, thermo, ridge_state):
        """Test that updates are deterministic."""
        other = create_simulation_state(ridge_state.size, elevation=ridge_state.elevation.copy())
        other.hillshade = ridge_state.hillshade.copy()
        for state in (ridge_state, other):
            state.simulation_time = 13 * 60
            self._update(thermo, state, hour=13, sun=0.9)
        np.testing.assert_array_equal(ridge_state.temperature, other.temperature)

    def test_water_tempers_soil_swing(self, thermo, flat_state):
        """Test the damped swing over water."""
        flat_state.land_cover[:, :5] = LandType.WATER
        self._update(thermo, flat_state, hour=0, sun=0.0, enable_diffusion=False)
        assert flat_state.soil_temperature[0, 0] > flat_state.soil_temperature[0, 9]

    def test_snow_insulates_soil(self, thermo, flat_state):
        """Test that snow insulates the soil."""
        flat_state.snow_depth[:, :5] = 50.0
        flat_state.temperature.fill(-5.0)
        flat_state.soil_temperature.fill(-5.0)
        self._update(thermo, flat_state, hour=0, sun=0.0, enable_diffusion=False)
        assert flat_state.soil_temperature[0, 0] > flat_state.soil_temperature[0, 9]

    def test_forest_shades_by_day(self, thermo, flat_state):
        """Test cooler forest floors by day."""
        flat_state.land_cover[:, :5] = LandType.FOREST
        flat_state.forest_depth[:, :5] = 12.0
        self._update(thermo, flat_state, hour=12, sun=1.0, enable_diffusion=False)
        assert flat_state.temperature[0, 0] < flat_state.temperature[0, 9]

    def test_inversion_rate(self, thermo):
        """Test cooling of cells below the inversion base."""
        state = create_simulation_state(6)
        state.elevation[0, :] = 260.0
        state.inversion_height = 200.0
        state.inversion_strength = 1.0
        rate = thermo.inversion_rate(state)

        assert rate[3, 3] == pytest.approx(100 / 150 * -3.2)
        assert rate[0, 3] == 0.0

    def test_no_inversion_rate_without_strength(self, thermo, flat_state):
        """Test that a zero-strength inversion has no effect."""
        assert np.all(thermo.inversion_rate(flat_state) == 0)

    def test_foehn_warms(self, thermo, flat_state):
        """Test foehn warming of the air."""
        flat_state.foehn_effect[:] = 4.0
        rate = thermo.downslope_rate(flat_state, 6, 0, DEFAULT_CLIMATE_OVERRIDES)
        np.testing.assert_allclose(rate, 4.0)

    def test_diffusion_smooths(self, thermo):
        """Test that diffusion smooths a hot spot."""
        field = np.zeros((5, 5))
        field[2, 2] = 10.0
        smoothed = thermo.diffuse(field, 1.0)
        assert smoothed[2, 2] < 10.0
        assert smoothed[2, 3] > 0.0


class TestInsolation:
    """Test shortwave input."""

    def test_night_is_dark(self):
        """Test zero insolation at night."""
        elevation = np.full((4, 4), 100.0)
        assert np.all(solar_insolation(elevation, 0.0, np.zeros((4, 4)), np.zeros((4, 4))) == 0)

    def test_flat_clear_noon(self):
        """Test insolation on flat ground at clear noon."""
        elevation = np.full((4, 4), 100.0)
        np.testing.assert_allclose(solar_insolation(elevation, 1.0, np.zeros((4, 4)), np.zeros((4, 4))), 1.5)

    def test_slope_facing_the_sun_gets_more_sun(self):
        """Test that a sun-facing slope gets more insolation."""
        _, xs = np.mgrid[0:8, 0:8]
        elevation = 300.0 - xs * 3.0
        flat = np.full((8, 8), 100.0)
        clear = np.zeros((8, 8))
        sun = math.sin(math.radians(30))
        assert (solar_insolation(elevation, sun, clear, clear) > solar_insolation(flat, sun, clear, clear)).all()
        away = 300.0 + xs * 3.0
        assert (solar_insolation(away, sun, clear, clear) < solar_insolation(flat, sun, clear, clear)).all()

    def test_clouds_reduce_insolation(self):
        """Test that cloud cuts insolation."""
        elevation = np.full((4, 4), 100.0)
        cover = np.full((4, 4), 1.0)
        depth = np.full((4, 4), 15.0)
        np.testing.assert_allclose(solar_insolation(elevation, 1.0, cover, depth), 1.5 * 0.2)

    def test_standard_temperature(self):
        """Test the lapse-rate standard temperature."""
        np.testing.assert_allclose(standard_temperature(np.array([100.0, 300.0])), [15.0, 15.0 - 1.3])

