"""
Two-layer (air and soil) surface energy balance.

This module implements:
- Slope- and aspect-aware solar insolation with cloud transmission
- Night radiative cooling, air-soil conduction and evaporative cooling
- Forest canopy, inversion, warm-belt, katabatic and foehn contributions
- Wind mixing toward the diurnal baseline and humidity feedbacks
- Relaxation toward the standard lapse-rate temperature
- Jacobi diffusion of the air temperature
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from .clouds import cloud_solar_transmission
from .constants import (
    ABSOLUTE_MAX_TEMP,
    ABSOLUTE_MIN_TEMP,
    BASE_ELEVATION,
    EPSILON,
    LAPSE_RATE,
    SOLAR_INTENSITY_FACTOR,
    STANDARD_SURFACE_TEMP,
    compute_dew_point,
)
from .seasonal import (
    DEFAULT_CLIMATE_OVERRIDES,
    ClimateOverrides,
    blend_humidity_towards_target,
    calculate_base_temperature,
)
from .snow import SnowEngine
from .state import SimulationState
from .surface import LandType, surface_property_grids

logger = structlog.get_logger()


@dataclass
class ThermodynamicsOptions:
    """Energy balance parameters (rates in °C per hour)."""

    cell_size: float = 6.0  # m

    # Radiation
    max_solar_intensity: float = 2.4
    min_cloud_transmission: float = 0.2
    snow_albedo: float = 0.8
    night_cooling: float = 1.1
    cloud_night_shielding: float = 0.75
    air_night_fraction: float = 0.2

    # Exchange and evaporation
    conduction_factor: float = 0.8
    water_mixing: float = 2.0
    moisture_depletion: float = 0.005

    # Canopy
    canopy_depth_scale: float = 12.0  # cells
    canopy_day_cooling: float = 1.0
    canopy_night_warming: float = 0.3

    # Inversion
    inversion_floor_offset: float = 50.0  # m
    inversion_cooling: float = -3.2
    warm_belt_depth: float = 100.0  # m above the inversion top
    warm_belt_warming: float = 2.4
    warm_belt_decay: float = 50.0  # m

    # Downslope and mixing
    downslope_min: float = -4.0
    downslope_max: float = 9.0
    mixing_min_wind: float = 5.0  # km/h
    mixing_max: float = 0.35
    mixing_divisor: float = 55.0

    # Humidity feedbacks
    humidity_sensitivity: float = 0.4
    latent_coefficient: float = 1.6
    humidity_relaxation: float = 0.25

    turbulence_rate: float = 0.055
    max_hourly_change: float = 7.0

    # Diffusion
    diffusion_iterations: int = 2
    diffusion_rate: float = 0.08


def solar_insolation(
    elevation: np.ndarray,
    sun_altitude: float,
    cloud_coverage: np.ndarray,
    cloud_optical_depth: np.ndarray,
    cell_size: float = 6.0,
    options: Optional[ThermodynamicsOptions] = None,
) -> np.ndarray:
    """
    Shortwave energy reaching each cell.

    Args:
        elevation: Terrain elevation grid
        sun_altitude: Sine of the solar elevation
        cloud_coverage: Cloud coverage grid
        cloud_optical_depth: Cloud optical depth grid
        cell_size: Horizontal spacing in metres

    Returns:
        Insolation grid, zero when the sun is down
    """
    opts = options or ThermodynamicsOptions()
    if sun_altitude <= 0:
        return np.zeros(elevation.shape)

    if min(elevation.shape) > 1:
        dzdy, dzdx = np.gradient(elevation, cell_size)
    else:
        dzdy = dzdx = np.zeros(elevation.shape)

    slope = np.arctan(np.hypot(dzdx, dzdy))
    aspect = np.arctan2(-dzdy, dzdx)

    sin_alt = min(1.0, max(0.0, sun_altitude))
    cos_alt = math.sqrt(max(0.0, 1 - sin_alt * sin_alt))
    intensity = np.maximum(
        0.0, sin_alt * np.cos(slope) + cos_alt * np.sin(slope) * np.cos(aspect - math.pi)
    )

    transmission = cloud_solar_transmission(cloud_coverage, cloud_optical_depth, sun_altitude)
    reduction = np.where(cloud_coverage > 0, np.maximum(opts.min_cloud_transmission, transmission), 1.0)

    return np.minimum(opts.max_solar_intensity, intensity * SOLAR_INTENSITY_FACTOR * reduction)


def standard_temperature(elevation: np.ndarray) -> np.ndarray:
    """Standard-atmosphere temperature at each elevation."""
    return STANDARD_SURFACE_TEMP - (elevation - BASE_ELEVATION) / 100 * LAPSE_RATE


class Thermodynamics:
    """Integrates the air and soil temperature layers."""

    def __init__(
        self,
        options: Optional[ThermodynamicsOptions] = None,
        snow: Optional[SnowEngine] = None,
    ):
        self.options = options or ThermodynamicsOptions()
        self.snow = snow or SnowEngine()

    def inversion_rate(self, state: SimulationState) -> np.ndarray:
        """Cooling below the inversion top and warm-belt warming on slopes above it."""
        opts = self.options
        rate = np.zeros(state.shape)
        height, strength = state.inversion_height, state.inversion_strength
        if strength <= 0:
            return rate

        elevation = state.elevation
        below = elevation < height
        denominator = max(EPSILON, height - BASE_ELEVATION + opts.inversion_floor_offset)
        rate += np.where(below, strength * (height - elevation) / denominator * opts.inversion_cooling, 0.0)

        belt = ~below & (elevation < height + opts.warm_belt_depth)
        belt_rate = strength * np.exp(-(elevation - height) / opts.warm_belt_decay) * opts.warm_belt_warming
        if min(state.shape) >= 3:
            surrounding = np.full(state.shape, np.nan)
            surrounding[1:-1, 1:-1] = (
                elevation[:-2, 1:-1] + elevation[2:, 1:-1] + elevation[1:-1, :-2] + elevation[1:-1, 2:]
            ) / 4
            with np.errstate(invalid="ignore"):
                on_slope = (np.abs(elevation - surrounding) < 20) & (elevation > surrounding - 5)
            rate += np.where(belt & on_slope, belt_rate, 0.0)
        return rate

    def downslope_rate(
        self, state: SimulationState, month: float, hour: float, climate: ClimateOverrides
    ) -> np.ndarray:
        """Katabatic and foehn contributions plus wind mixing toward the baseline."""
        opts = self.options
        combined = np.minimum(state.downslope_winds, 0.0) + np.maximum(state.foehn_effect, 0.0)
        rate = np.clip(combined, opts.downslope_min, opts.downslope_max)

        windy = state.wind_speed > opts.mixing_min_wind
        if windy.any():
            base = calculate_base_temperature(month, hour, climate)
            mixing = np.minimum(opts.mixing_max, state.wind_speed / opts.mixing_divisor)
            rate += np.where(windy, (base - state.temperature) * mixing, 0.0)
        return rate

    def diffuse(self, temperature: np.ndarray, time_factor: float) -> np.ndarray:
        """Jacobi passes of four-neighbour smoothing with edge-clamped neighbours."""
        opts = self.options
        rate = opts.diffusion_rate * min(time_factor, 1.0)
        for _ in range(opts.diffusion_iterations):
            padded = np.pad(temperature, 1, mode="edge")
            neighbours = (padded[:-2, 1:-1] + padded[2:, 1:-1] + padded[1:-1, :-2] + padded[1:-1, 2:]) / 4
            temperature = temperature + (neighbours - temperature) * rate
        return temperature

    def update(
        self,
        state: SimulationState,
        month: float,
        hour: float,
        sun_altitude: float,
        time_factor: float,
        enable_diffusion: bool = True,
        enable_inversions: bool = True,
        enable_downslope: bool = True,
        climate: ClimateOverrides = DEFAULT_CLIMATE_OVERRIDES,
    ) -> None:
        """
        Advance air and soil temperature by one time step.

        Args:
            state: Simulation state, updated in place
            month: Calendar month
            hour: Hour of day
            sun_altitude: Sine of the solar elevation
            time_factor: Time step in hours
            enable_diffusion: Smooth the new air temperature
            enable_inversions: Apply inversion cooling and warm-belt warming
            enable_downslope: Apply katabatic, foehn and wind-mixing terms
            climate: Baseline offsets and humidity target
        """
        opts = self.options
        air = state.temperature
        soil = state.soil_temperature
        new_air = air.copy()
        new_soil = soil.copy()

        if time_factor > 0:
            props = surface_property_grids(state.land_cover, state.soil_type)
            heat_capacity = props.heat_capacity

            blend = min(max(time_factor * opts.humidity_relaxation, 0.0), 1.0)
            target = min(max(climate.humidity_target, 0.01), 1.0)
            humidity = blend_humidity_towards_target(state.humidity, target, blend)
            dew_point = compute_dew_point(air, humidity)
            state.humidity = humidity
            state.dew_point = dew_point

            snow = self.snow.effects(state.snow_depth)
            air_rate = np.zeros(state.shape)
            soil_rate = np.zeros(state.shape)

            if sun_altitude > 0:
                insolation = solar_insolation(
                    state.elevation,
                    sun_altitude,
                    state.cloud_coverage,
                    state.cloud_optical_depth,
                    opts.cell_size,
                    opts,
                )
                albedo = props.albedo + (opts.snow_albedo - props.albedo) * snow.albedo_factor
                soil_rate += insolation * (1 - albedo) / heat_capacity
            else:
                cooling = opts.night_cooling * (1 - state.cloud_coverage * opts.cloud_night_shielding)
                soil_rate -= cooling * (1 - snow.insulation) / heat_capacity
                air_rate -= cooling * opts.air_night_fraction

            exchange = (soil - air) * props.conductivity * opts.conduction_factor * (1 - snow.insulation)
            exchange = np.where(state.land_cover == LandType.WATER, exchange * opts.water_mixing, exchange)
            air_rate += exchange
            soil_rate -= exchange / heat_capacity

            if sun_altitude > 0:
                evaporating = (state.soil_moisture > 0) & (air > 0)
                evaporative = np.where(evaporating, state.soil_moisture * props.evaporation * sun_altitude, 0.0)
                air_rate -= evaporative
                soil_rate -= evaporative * 0.5 / heat_capacity
                depleted = state.soil_moisture - props.evaporation * opts.moisture_depletion * time_factor
                state.soil_moisture = np.where(evaporating, np.maximum(0.0, depleted), state.soil_moisture)

            forest = state.land_cover == LandType.FOREST
            canopy = np.minimum(1.0, state.forest_depth / opts.canopy_depth_scale)
            canopy_rate = -opts.canopy_day_cooling if sun_altitude > 0 else opts.canopy_night_warming
            air_rate += np.where(forest, canopy_rate * canopy, 0.0)

            if enable_inversions:
                air_rate += self.inversion_rate(state)
            if enable_downslope:
                air_rate += self.downslope_rate(state, month, hour, climate)

            air_rate += state.latent_heat_effect

            h = np.clip(humidity, 0.0, 1.0)
            air_rate -= (h - 0.5) * opts.humidity_sensitivity
            condensing = (h > 0.85) & (air > dew_point)
            air_rate -= np.where(condensing, (h - 0.85) * opts.latent_coefficient, 0.0)
            if sun_altitude > 0:
                dry = ~condensing & (h < 0.3)
                air_rate += np.where(dry, (0.3 - h) * opts.latent_coefficient * 0.35, 0.0)

            air_rate += (standard_temperature(state.elevation) - air) * opts.turbulence_rate

            limit = opts.max_hourly_change
            new_air += np.clip(air_rate, -limit, limit) * time_factor
            new_soil += np.clip(soil_rate, -limit, limit) * time_factor

        new_air = self.snow.update(state, new_air, sun_altitude, time_factor)

        if enable_diffusion and time_factor > 0:
            new_air = self.diffuse(new_air, time_factor)

        state.temperature = np.clip(new_air, ABSOLUTE_MIN_TEMP, ABSOLUTE_MAX_TEMP)
        state.soil_temperature = np.clip(new_soil, ABSOLUTE_MIN_TEMP, ABSOLUTE_MAX_TEMP)

        if time_factor > 0:
            logger.debug(
                "Thermodynamics updated",
                mean_air=float(state.temperature.mean()),
                mean_soil=float(state.soil_temperature.mean()),
            )
