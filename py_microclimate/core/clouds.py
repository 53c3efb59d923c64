"""
Cloud and precipitation dynamics.

This module implements:
- Orographic lift on windward slopes
- Convective development from surface thermal excess (CAPE proxy)
- Cloud type selection and base/top heights
- Microphysics: ice conversion, droplet growth and graupel
- Randomly gated precipitation and its phase
- Cloud-water budget, humidity sources and sinks, dew point
- Deposition of snow and infiltration of liquid precipitation
"""

from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional

import numpy as np
import structlog
from scipy import ndimage

from ..utils.random import get_rng
from .constants import compute_dew_point
from .seasonal import DEFAULT_CLIMATE_OVERRIDES, ClimateOverrides, calculate_base_temperature
from .state import CloudType, PrecipitationType, SimulationState
from .surface import LandType, SoilType, surface_property_grids
from .wind import wind_unit_vector

logger = structlog.get_logger()


@dataclass
class CloudOptions:
    """Cloud and precipitation parameters."""

    cell_size: float = 6.0  # m

    # Orographic lift
    min_orographic_wind: float = 5.0  # km/h
    lcl_per_degree: float = 125.0  # m of lifting condensation level per °C deficit
    orographic_threshold: float = 0.5  # formation rate

    # Convection
    convective_start_hour: int = 10
    convective_end_hour: int = 17
    cape_threshold: float = 500.0
    cape_full_development: float = 3000.0
    cumulonimbus_cape: float = 2000.0
    convective_threshold: float = 0.3  # formation rate
    fog_stratus_threshold: float = 0.5

    # Budget
    max_cloud_water: float = 1.5
    solar_dissipation: float = 0.8
    precipitation_loss: float = 0.1

    # Precipitation
    precipitation_rates: Dict[int, float] = field(
        default_factory=lambda: {
            CloudType.CUMULONIMBUS: 1.5,
            CloudType.CUMULUS: 0.7,
            CloudType.NIMBOSTRATUS: 0.9,
            CloudType.STRATUS: 0.5,
        }
    )
    max_precipitation: float = 2.0  # mm/h
    min_precipitation: float = 0.01  # mm/h
    rain_above: float = 2.0  # °C
    snow_below: float = -5.0  # °C
    graupel_threshold: float = 0.05

    # Deposition
    snow_per_mm: float = 10.0  # cm of snow per mm/h per hour
    snow_latent_heat: float = 0.8

    # Humidity
    precipitation_humidity_sink: float = 10.0


class Microphysics(NamedTuple):
    ice: np.ndarray
    cloud_water: np.ndarray
    droplet_size: np.ndarray
    efficiency: np.ndarray
    graupel: np.ndarray


def cloud_solar_transmission(
    coverage: np.ndarray, optical_depth: np.ndarray, sun_altitude: float
) -> np.ndarray:
    """Fraction of sunlight passing the cloud layer."""
    optical_path = optical_depth / max(0.1, np.sin(sun_altitude))
    return np.where(coverage > 0, 1 - coverage + coverage * np.exp(-optical_path), 1.0)


def calculate_microphysics(
    temperature: np.ndarray, cloud_water: np.ndarray, ice_content: np.ndarray, updraft: np.ndarray
) -> Microphysics:
    """
    Ice conversion, droplet growth and graupel formation.

    Below freezing a fraction 1 - exp(T/10) of the cloud water freezes;
    the fraction is 0 at 0 °C and approaches 1 in deep cold.
    """
    freezing = (temperature < 0) & (cloud_water > 0)
    fraction = np.where(freezing, 1 - np.exp(np.minimum(temperature, 0) / 10), 0.0)
    ice = np.where(freezing, cloud_water * fraction, ice_content)
    water = cloud_water * (1 - 0.5 * fraction)

    warm = (temperature > 0) & (water > 0.3)
    droplet_size = np.where(warm, 5 + updraft * 2, 5.0)
    efficiency = np.where(warm & (droplet_size > 20), np.minimum(1.0, droplet_size / 50), 0.0)

    graupel_band = (temperature > -10) & (temperature < 0) & (updraft > 5)
    graupel = np.where(graupel_band, ice * 0.3, 0.0)

    return Microphysics(ice, water, droplet_size, efficiency, graupel)


class CloudEngine:
    """Evolves clouds, precipitation and humidity over one tick."""

    def __init__(self, options: Optional[CloudOptions] = None):
        self.options = options or CloudOptions()

    def orographic_formation(
        self, state: SimulationState, wind_speed: float, wind_direction: float
    ) -> np.ndarray:
        """Lift intensity on windward slopes (interior cells only)."""
        opts = self.options
        intensity = np.zeros(state.shape)
        if wind_speed < opts.min_orographic_wind or min(state.shape) < 3:
            return intensity

        wx, wy = wind_unit_vector(wind_direction)
        elevation = state.elevation
        dzdx = (elevation[1:-1, 2:] - elevation[1:-1, :-2]) / (2 * opts.cell_size)
        dzdy = (elevation[2:, 1:-1] - elevation[:-2, 1:-1]) / (2 * opts.cell_size)
        facing = dzdx * wx + dzdy * wy
        lift = np.where(facing > 0, facing * wind_speed / 10, 0.0)

        temperature = state.temperature[1:-1, 1:-1]
        lcl = opts.lcl_per_degree * (temperature - state.dew_point[1:-1, 1:-1])
        forced = lift * 100
        temperature_factor = np.clip(1 - np.abs(temperature - 15) / 20, 0.2, 1.0)
        value = np.clip(
            (forced - lcl) / 1000 * state.humidity[1:-1, 1:-1] * temperature_factor, 0.0, 2.0
        )
        intensity[1:-1, 1:-1] = np.where((facing > 0) & (forced > lcl), value, 0.0)
        return intensity

    def convective_development(
        self, state: SimulationState, month: float, hour: float, climate: ClimateOverrides
    ):
        """
        Thermal strength, CAPE, development and cloud type from surface heating.

        Returns:
            Tuple of (thermal, cape, development, convective cloud type)
        """
        opts = self.options
        thermal = np.zeros(state.shape)

        if opts.convective_start_hour <= hour <= opts.convective_end_hour:
            excess = state.temperature - calculate_base_temperature(month, hour, climate)
            land, soil = state.land_cover, state.soil_type
            multiplier = np.zeros(state.shape)
            multiplier[(land == LandType.WATER) | (land == LandType.FOREST)] = 0.5
            multiplier[land == LandType.GRASSLAND] = 1.0
            multiplier[(soil == SoilType.SAND) & (land != LandType.URBAN)] = 1.1
            multiplier[land == LandType.URBAN] = 1.3
            thermal = excess * multiplier

        cape = np.maximum(0.0, thermal * state.humidity * 100)
        developed = cape > opts.cape_threshold
        development = np.where(developed, np.minimum(1.0, cape / opts.cape_full_development), 0.0)
        cloud_type = np.where(
            developed,
            np.where(cape > opts.cumulonimbus_cape, CloudType.CUMULONIMBUS, CloudType.CUMULUS),
            CloudType.NONE,
        )
        return thermal, cape, development, cloud_type

    def update(
        self,
        state: SimulationState,
        month: float,
        hour: float,
        wind_speed: float,
        wind_direction: float,
        time_factor: float,
        sun_altitude: float,
        rng: Optional[np.random.Generator] = None,
        climate: ClimateOverrides = DEFAULT_CLIMATE_OVERRIDES,
    ) -> None:
        """
        Advance clouds and precipitation by one time step.

        Args:
            state: Simulation state, updated in place
            month: Calendar month
            hour: Hour of day
            wind_speed: Ambient wind speed in km/h
            wind_direction: Ambient wind direction in degrees
            time_factor: Time step in hours; no-op when <= 0
            sun_altitude: Sine of the solar elevation
            rng: Generator for the precipitation gate
            climate: Climate overrides for the convective baseline
        """
        if time_factor <= 0:
            return

        opts = self.options
        rng = rng if rng is not None else get_rng()
        elevation = state.elevation
        temperature = state.temperature
        props = surface_property_grids(state.land_cover, state.soil_type)

        orographic_rate = self.orographic_formation(state, wind_speed, wind_direction) * 2
        thermal, cape, development, convective_type = self.convective_development(
            state, month, hour, climate
        )
        convective_rate = development * 2

        # Type selection in priority order
        orographic = orographic_rate > opts.orographic_threshold
        convective = ~orographic & (convective_rate > opts.convective_threshold)
        stratus = ~orographic & ~convective & (state.fog_density > opts.fog_stratus_threshold)

        cloud_type = np.select(
            [orographic, convective, stratus],
            [CloudType.OROGRAPHIC, convective_type, CloudType.STRATUS],
            CloudType.NONE,
        ).astype(np.int8)
        formation = np.select(
            [orographic, convective, stratus],
            [orographic_rate, convective_rate, state.fog_density * 0.5],
            0.0,
        )
        cloud_base = np.select(
            [orographic, convective, stratus],
            [elevation + 100, elevation + 500, elevation],
            state.cloud_base,
        )
        cloud_top = np.select(
            [orographic, convective, stratus],
            [elevation + 500 + orographic_rate * 1000, elevation + 500 + cape, elevation + 200],
            state.cloud_top,
        )

        # Microphysics runs on the pre-tick cloud water ahead of precipitation
        micro = calculate_microphysics(temperature, state.cloud_water, state.ice_content, thermal * 2)
        cloud_water = micro.cloud_water

        # Precipitation
        base_rate = np.zeros(state.shape)
        for kind, factor in opts.precipitation_rates.items():
            base_rate[cloud_type == kind] = factor
        precipitation = cloud_water * base_rate

        efficiency = np.maximum(np.where(cloud_water > 0.5, 0.6, 0.3), micro.efficiency)
        probability = np.minimum(1.0, cloud_water * 0.7)
        gate = rng.random(state.shape) < probability
        jitter = rng.uniform(0.7, 1.3, state.shape)
        precipitation = np.where(gate, cloud_water * efficiency * jitter, precipitation)
        precipitation = np.minimum(precipitation, opts.max_precipitation)
        falling = precipitation > opts.min_precipitation
        precipitation = np.where(falling, precipitation, 0.0)

        precipitation_type = np.select(
            [temperature > opts.rain_above, temperature <= opts.snow_below],
            [PrecipitationType.RAIN, PrecipitationType.SNOW],
            PrecipitationType.SLEET,
        )
        frozen_phase = (precipitation_type == PrecipitationType.SNOW) | (
            precipitation_type == PrecipitationType.SLEET
        )
        precipitation_type = np.where(
            frozen_phase & (micro.graupel > opts.graupel_threshold),
            PrecipitationType.GRAUPEL,
            precipitation_type,
        )
        precipitation_type = np.where(falling, precipitation_type, PrecipitationType.NONE).astype(np.int8)

        # Cloud-water budget
        dissipation = cloud_water * sun_altitude * opts.solar_dissipation if sun_altitude > 0 else 0.0
        change = (formation - dissipation - precipitation * opts.precipitation_loss) * time_factor
        cloud_water = np.clip(cloud_water + change, 0.0, opts.max_cloud_water)

        # Humidity sources and sinks
        warmth = np.maximum(0.0, temperature / 30)
        land = state.land_cover
        evaporation = np.where(
            land == LandType.WATER,
            2 * warmth * (1 + wind_speed / 20),
            np.where(
                land == LandType.FOREST,
                warmth,
                np.maximum(0.0, state.soil_moisture) * props.evaporation * warmth,
            ),
        )
        accumulating = (precipitation_type == PrecipitationType.SNOW) | (
            precipitation_type == PrecipitationType.GRAUPEL
        )
        sink = np.where(falling & ~accumulating, precipitation * opts.precipitation_humidity_sink, 0.0)
        humidity = np.clip(state.humidity + (evaporation - sink) * time_factor / 100, 0.01, 1.0)

        # Deposition
        snowfall = falling & accumulating
        snow_depth = state.snow_depth + np.where(snowfall, precipitation * opts.snow_per_mm * time_factor, 0.0)
        latent_heat = state.latent_heat_effect + np.where(snowfall, precipitation * opts.snow_latent_heat, 0.0)
        infiltration = np.minimum(precipitation * time_factor, 1 - state.soil_moisture)
        soil_moisture = np.where(
            falling & ~accumulating,
            state.soil_moisture + infiltration * props.water_retention,
            state.soil_moisture,
        )

        coverage = np.minimum(1.0, cloud_water)
        if min(state.shape) >= 3:
            smoothed = ndimage.uniform_filter(coverage, size=3, mode="nearest")
            coverage[1:-1, 1:-1] = smoothed[1:-1, 1:-1]

        state.cloud_type = cloud_type
        state.cloud_base = cloud_base
        state.cloud_top = cloud_top
        state.cloud_water = cloud_water
        state.cloud_coverage = np.clip(coverage, 0.0, 1.0)
        state.cloud_optical_depth = cloud_water * 10
        state.ice_content = micro.ice
        state.thermal_strength = thermal
        state.convective_energy = cape
        state.precipitation = precipitation
        state.precipitation_type = precipitation_type
        state.humidity = humidity
        state.dew_point = compute_dew_point(temperature, humidity)
        state.snow_depth = snow_depth
        state.latent_heat_effect = latent_heat
        state.soil_moisture = np.clip(soil_moisture, 0.0, 1.0)

        logger.debug(
            "Clouds updated",
            cloudy_cells=int(np.count_nonzero(cloud_type)),
            precipitating_cells=int(np.count_nonzero(falling)),
            mean_coverage=float(state.cloud_coverage.mean()),
        )
