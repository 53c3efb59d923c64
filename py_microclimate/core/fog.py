"""
Radiation and advection fog.

Fog forms under the inversion, near saturation, over moist or snowy ground,
near water on calm nights and in still air. It burns off with sun, wind,
warming above the dew point, dryness and downslope flow, and spreads by
upwind transport, downslope drainage and diffusion.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from .state import SimulationState

logger = structlog.get_logger()


@dataclass
class FogOptions:
    """Fog formation, dissipation and transport parameters."""

    max_hourly_rate: float = 0.6

    # Formation
    inversion_depth_scale: float = 120.0  # m
    water_reach: float = 8.0  # cells
    calm_wind: float = 3.0  # km/h
    still_wind: float = 2.0  # km/h

    # Dissipation
    wind_dissipation: float = 0.02
    sun_dissipation: float = 0.5
    temperature_dissipation: float = 0.3
    dryness_dissipation: float = 0.15
    downslope_dissipation: float = 0.12
    self_damping_threshold: float = 0.6
    strong_wind: float = 6.0  # km/h

    # Transport
    advection_rate: float = 0.1
    advection_step: float = 0.2
    min_advection_wind: float = 0.5
    downslope_rate: float = 0.2
    diffusion_rate: float = 0.4


class FogEngine:
    """Evolves the fog density grid."""

    def __init__(self, options: Optional[FogOptions] = None):
        self.options = options or FogOptions()

    def change_rate(self, state: SimulationState, sun_altitude: float) -> np.ndarray:
        """Local formation minus dissipation per hour, clamped."""
        opts = self.options
        speed = state.wind_speed
        fog = state.fog_density
        humidity = np.clip(state.humidity, 0.0, 1.0)
        spread = state.dew_point - state.temperature
        saturation = np.clip((spread + 3) / 7, 0.0, 1.0)
        calm = np.clip((opts.calm_wind - speed) / opts.calm_wind, 0.0, 1.0)
        soil_moisture = np.clip(state.soil_moisture, 0.0, 1.0)
        hillshade = np.clip(state.hillshade, 0.0, 1.0)

        formation = np.zeros(state.shape)

        if state.inversion_strength > 0:
            trapped = state.elevation < state.inversion_height
            depth = np.clip((state.inversion_height - state.elevation) / opts.inversion_depth_scale, 0.0, 1.0)
            formation += np.where(trapped, state.inversion_strength * depth * (0.25 + calm * 0.45), 0.0)

        dew_bonus = np.clip((spread + 3) / 6, 0.0, 1.0)
        formation += np.where(spread >= -3, dew_bonus * (0.35 + humidity * 0.65) * (0.5 + calm * 0.5), 0.0)

        formation += soil_moisture * 0.05 * (0.6 + saturation * 0.4)

        snow = state.snow_depth > 0
        formation += np.where(snow, np.clip(state.snow_depth / 80, 0.0, 0.12) * (0.4 + calm * 0.6), 0.0)

        near_water = state.water_distance < opts.water_reach
        water_factor = np.clip((opts.water_reach - np.where(near_water, state.water_distance, opts.water_reach)) / opts.water_reach, 0.0, 1.0)
        nocturnal = 1.2 if sun_altitude <= 0 else 0.6
        formation += np.where(
            near_water,
            water_factor * (0.15 + humidity * 0.25) * nocturnal * (0.4 + calm * 0.6),
            0.0,
        )

        formation += np.where(
            speed < opts.still_wind, (opts.still_wind - speed) * 0.08 * (0.3 + saturation * 0.7), 0.0
        )

        dissipation = np.zeros(state.shape)
        if sun_altitude > 0:
            dissipation += sun_altitude * opts.sun_dissipation * (0.7 + (1 - hillshade) * 0.6)
        dissipation += speed * opts.wind_dissipation * (1 + speed / 15)
        dissipation += np.where(
            spread < 0, -spread * opts.temperature_dissipation * (0.7 + (1 - humidity) * 0.6), 0.0
        )
        dissipation += (1 - humidity) * opts.dryness_dissipation
        dissipation += np.where(state.downslope_winds > 0, state.downslope_winds * opts.downslope_dissipation, 0.0)
        dissipation += np.where(
            fog > opts.self_damping_threshold, (fog - opts.self_damping_threshold) * 0.5, 0.0
        )
        dissipation += np.where(speed >= opts.strong_wind, (speed - opts.strong_wind) * 0.08, 0.0)

        return np.clip(formation - dissipation, -opts.max_hourly_rate, opts.max_hourly_rate)

    def _advection(self, state: SimulationState) -> np.ndarray:
        """Pull toward the upwind cell's fog, damped past the grid edge."""
        opts = self.options
        fog = state.fog_density
        n_rows, n_cols = fog.shape
        ys, xs = np.mgrid[0:n_rows, 0:n_cols]

        raw_x = xs - state.wind_x * opts.advection_step
        raw_y = ys - state.wind_y * opts.advection_step
        src_x = np.clip(np.floor(raw_x + 0.5), 0, n_cols - 1).astype(np.intp)
        src_y = np.clip(np.floor(raw_y + 0.5), 0, n_rows - 1).astype(np.intp)

        overflow = np.abs(raw_x - np.clip(raw_x, 0, n_cols - 1)) + np.abs(raw_y - np.clip(raw_y, 0, n_rows - 1))
        source = fog[src_y, src_x] * np.exp(-0.5 * overflow)

        change = (source - fog) * opts.advection_rate * np.minimum(1.0, state.wind_speed / 10)
        return np.where(state.wind_speed > opts.min_advection_wind, change, 0.0)

    def _downslope_creep(self, state: SimulationState) -> np.ndarray:
        """Drift toward the fog of higher neighbours, weighted by height difference."""
        fog = state.fog_density
        elevation = state.elevation
        padded_fog = np.pad(fog, 1, mode="edge")
        padded_elev = np.pad(elevation, 1, mode="constant", constant_values=-np.inf)
        n_rows, n_cols = fog.shape

        weighted = np.zeros(fog.shape)
        weights = np.zeros(fog.shape)
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                neighbour_elev = padded_elev[1 + dy : 1 + dy + n_rows, 1 + dx : 1 + dx + n_cols]
                diff = np.maximum(0.0, neighbour_elev - elevation)
                weighted += padded_fog[1 + dy : 1 + dy + n_rows, 1 + dx : 1 + dx + n_cols] * diff
                weights += diff

        has_higher = weights > 0
        mean_higher = np.where(has_higher, weighted / np.where(has_higher, weights, 1.0), fog)
        return np.where(has_higher, (mean_higher - fog) * self.options.downslope_rate, 0.0)

    def _diffusion(self, fog: np.ndarray) -> np.ndarray:
        """Four-neighbour diffusion; off-grid neighbours count as the cell itself."""
        padded = np.pad(fog, 1, mode="edge")
        neighbours = (padded[:-2, 1:-1] + padded[2:, 1:-1] + padded[1:-1, :-2] + padded[1:-1, 2:]) / 4
        return (neighbours - fog) * self.options.diffusion_rate

    def update(self, state: SimulationState, sun_altitude: float, time_factor: float) -> None:
        """
        Advance fog density by one time step.

        All transport terms read the pre-tick fog grid.
        """
        if time_factor <= 0:
            return

        fog = state.fog_density
        rate = self.change_rate(state, sun_altitude)
        change = rate + self._advection(state) + self._downslope_creep(state) + self._diffusion(fog)
        state.fog_density = np.clip(fog + change * time_factor, 0.0, 1.0)

        logger.debug("Fog updated", mean_density=float(state.fog_density.mean()))
