"""
Snowpack evolution.

Snowfall is deposited by the cloud engine; this module melts, settles,
sublimates and refreezes the pack and reports its radiative effects.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np
import structlog

from .state import SimulationState
from .surface import LandType

logger = structlog.get_logger()


@dataclass
class SnowOptions:
    """Snowpack parameters."""

    degree_day_melt: float = 0.35  # cm per °C per hour
    ground_melt: float = 0.18  # cm per °C of soil per hour
    solar_melt: float = 1.1  # cm per hour at full sun
    forest_shade: float = 0.55
    melt_to_moisture: float = 0.1  # soil moisture per cm melted
    latent_cooling_per_cm: float = 0.08  # °C
    min_air_temp_after_melt: float = -4.0  # °C
    sublimation_rate: float = 0.18  # cm per hour
    settling_base_rate: float = 0.005
    settling_deep_threshold: float = 25.0  # cm
    settling_max_rate: float = 0.02
    refreeze_rate: float = 0.02
    albedo_depth_scale: float = 12.0  # cm
    insulation_depth_scale: float = 18.0  # cm


class SnowEffects(NamedTuple):
    """Per-cell snow cover influence on the surface energy balance."""

    albedo_factor: np.ndarray  # 0 bare .. 1 fully snow-bright
    insulation: np.ndarray  # 0 bare .. 1 fully insulated


class SnowEngine:
    """Melt, settling, sublimation and refreeze of the snowpack."""

    def __init__(self, options: Optional[SnowOptions] = None):
        self.options = options or SnowOptions()

    def effects(self, snow_depth: np.ndarray) -> SnowEffects:
        """Albedo and insulation factors saturating exponentially with depth."""
        opts = self.options
        depth = np.maximum(0.0, snow_depth)
        return SnowEffects(
            albedo_factor=1 - np.exp(-depth / opts.albedo_depth_scale),
            insulation=1 - np.exp(-depth / opts.insulation_depth_scale),
        )

    def update(
        self,
        state: SimulationState,
        air_temperature: np.ndarray,
        sun_altitude: float,
        time_factor: float,
    ) -> np.ndarray:
        """
        Advance the snowpack by one time step.

        Args:
            state: Simulation state; snow depth and soil moisture are replaced
            air_temperature: Next-tick air temperature grid
            sun_altitude: Sine of the solar elevation
            time_factor: Time step in hours

        Returns:
            Air temperature after latent cooling from melt
        """
        if time_factor <= 0:
            return air_temperature

        opts = self.options
        depth = np.maximum(0.0, state.snow_depth.copy())
        moisture = state.soil_moisture.copy()
        air = air_temperature.copy()
        soil = state.soil_temperature
        humidity = np.clip(state.humidity, 0.0, 1.0)
        sun = max(0.0, sun_altitude)

        # Melt
        covered = depth > 0
        shade = np.where(state.land_cover == LandType.FOREST, opts.forest_shade, 1.0)
        melt_rate = (
            np.maximum(0.0, air) * opts.degree_day_melt
            + np.maximum(0.0, soil) * opts.ground_melt
            + sun * opts.solar_melt * shade
        )
        melt = np.where(covered, np.minimum(depth, melt_rate * time_factor), 0.0)
        depth -= melt

        cooling = np.minimum(np.maximum(air, 0.0), melt * opts.latent_cooling_per_cm)
        air = np.where(melt > 0, np.maximum(opts.min_air_temp_after_melt, air - cooling), air)
        capacity = np.maximum(0.0, 1 - moisture)
        moisture += np.where(melt > 0, np.minimum(melt * opts.melt_to_moisture, capacity), 0.0)

        # Settling
        settling = np.minimum(
            opts.settling_max_rate,
            opts.settling_base_rate + np.maximum(0.0, depth - opts.settling_deep_threshold) / 800,
        )
        depth = np.where(covered & (depth > 0), np.maximum(0.0, depth - depth * settling * time_factor), depth)

        # Sublimation under dry, sunny, freezing air
        if sun > 0:
            sublimating = (depth > 0) & (air_temperature <= 0)
            loss = (1 - humidity) * sun * opts.sublimation_rate * time_factor
            depth = np.where(sublimating, np.maximum(0.0, depth - loss), depth)

        # Refreeze of soil water
        refreezing = (air_temperature < -1) & (soil < 0) & (moisture > 0)
        potential = np.minimum(
            moisture,
            (np.abs(air_temperature) + np.abs(soil)) * 0.5 * opts.refreeze_rate * time_factor,
        )
        frozen = np.where(refreezing, potential, 0.0)
        moisture -= frozen
        depth += frozen / opts.melt_to_moisture

        state.snow_depth = np.maximum(0.0, depth)
        state.soil_moisture = np.clip(moisture, 0.0, 1.0)

        logger.debug(
            "Snowpack updated",
            melted=float(melt.sum()),
            refrozen=float(frozen.sum()),
            mean_depth=float(state.snow_depth.mean()),
        )
        return air
