"""
Simulation orchestrator.

Runs the subsystems in a fixed order every tick:

1. reset latent heat
2. wind field (or calm air when terrain winds are disabled)
3. advection of temperature, humidity and cloud water
4. clouds and precipitation (or a full reset when disabled)
5. inversion gate
6. fog
7. thermodynamics, including the snowpack and diffusion
8. metrics

Brush edits are serialized through the same object and followed by a
zero-length tick so derived fields are refreshed without advancing time.
"""

from typing import Optional, Union

import numpy as np
import structlog

from ..config import settings
from ..config.controls import BrushStroke, SimulationControls
from ..utils.random import Seed, create_rng
from .advection import advect_grid
from .brush import BrushResult, apply_brush
from .clouds import CloudEngine, CloudOptions
from .fog import FogEngine
from .inversion import NO_INVERSION, InversionOptions, calculate_inversion_layer
from .metrics import SimulationMetrics, calculate_simulation_metrics
from .seasonal import DEFAULT_CLIMATE_OVERRIDES, ClimateOverrides, calculate_sun_altitude
from .soil import initialize_soil_moisture
from .spatial import SpatialAnalysis
from .state import SimulationState
from .thermodynamics import Thermodynamics, ThermodynamicsOptions
from .wind import WindFieldEngine, WindOptions, apply_wind_field

logger = structlog.get_logger()


class MicroclimateSimulation:
    """Owns a simulation state and advances it tick by tick."""

    def __init__(
        self,
        state: SimulationState,
        controls: Optional[SimulationControls] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Seed = None,
        climate: ClimateOverrides = DEFAULT_CLIMATE_OVERRIDES,
        wind: Optional[WindFieldEngine] = None,
        clouds: Optional[CloudEngine] = None,
        fog: Optional[FogEngine] = None,
        thermodynamics: Optional[Thermodynamics] = None,
        inversion_options: Optional[InversionOptions] = None,
        cell_size: Optional[float] = None,
    ):
        """
        Args:
            state: Initial state; spatial fields should already be derived
            controls: Forcing and toggles
            rng: Generator for every stochastic subsystem
            seed: Seed for a new generator when rng is not given
            climate: Baseline and humidity overrides
            wind, clouds, fog, thermodynamics: Engines (defaults if omitted)
            inversion_options: Inversion gate parameters
            cell_size: Horizontal spacing in metres
        """
        self.state = state
        self.controls = controls or SimulationControls()
        self.rng = rng if rng is not None else create_rng(seed)
        self.climate = climate
        self.cell_size = cell_size if cell_size is not None else settings.cell_size
        self.wind = wind or WindFieldEngine(WindOptions(cell_size=self.cell_size))
        self.clouds = clouds or CloudEngine(CloudOptions(cell_size=self.cell_size))
        self.fog = fog or FogEngine()
        self.thermodynamics = thermodynamics or Thermodynamics(ThermodynamicsOptions(cell_size=self.cell_size))
        self.inversion_options = inversion_options
        self.metrics = SimulationMetrics()

    @property
    def hour(self) -> int:
        return self.state.hour

    @property
    def sun_altitude(self) -> float:
        """Sun altitude at the current clock time including minutes."""
        return calculate_sun_altitude(self.state.hour + self.state.minute / 60)

    def advance(self, minutes: float) -> SimulationMetrics:
        """Advance the clock and run one tick covering that interval."""
        minutes = max(0.0, minutes)
        self.state.simulation_time += minutes
        return self.tick(minutes)

    def tick(self, delta_minutes: float = 0.0) -> SimulationMetrics:
        """
        Run every subsystem once.

        Args:
            delta_minutes: Simulated minutes covered by this tick; 0 refreshes
                derived fields without evolving the atmosphere

        Returns:
            SimulationMetrics after the tick
        """
        state = self.state
        controls = self.controls
        hour = state.hour
        sun_altitude = self.sun_altitude
        time_factor = max(0.0, delta_minutes) / 60

        state.latent_heat_effect = np.zeros(state.shape)

        if controls.enable_downslope:
            field = self.wind.compute(
                state,
                hour,
                controls.wind_speed,
                controls.wind_direction,
                controls.wind_gustiness,
                self.rng,
            )
            apply_wind_field(state, field)
        else:
            state.reset_wind()

        if controls.enable_advection and time_factor > 0:
            state.temperature = advect_grid(state.temperature, state.wind_x, state.wind_y, time_factor)
            state.humidity = np.clip(
                advect_grid(state.humidity, state.wind_x, state.wind_y, time_factor), 0.0, 1.0
            )
            state.cloud_water = np.clip(
                advect_grid(state.cloud_water, state.wind_x, state.wind_y, time_factor, neutral=0.0),
                0.0,
                self.clouds.options.max_cloud_water,
            )

        if controls.enable_clouds:
            self.clouds.update(
                state,
                month=controls.month,
                hour=hour,
                wind_speed=controls.wind_speed,
                wind_direction=controls.wind_direction,
                time_factor=time_factor,
                sun_altitude=calculate_sun_altitude(hour),
                rng=self.rng,
                climate=self.climate,
            )
        else:
            state.reset_clouds()

        if controls.enable_inversions:
            layer = calculate_inversion_layer(
                state.elevation,
                hour,
                controls.wind_speed,
                float(state.cloud_coverage.mean()),
                self.inversion_options,
            )
        else:
            layer = NO_INVERSION
        state.inversion_height, state.inversion_strength = layer

        self.fog.update(state, sun_altitude, time_factor)

        self.thermodynamics.update(
            state,
            month=controls.month,
            hour=hour,
            sun_altitude=sun_altitude,
            time_factor=time_factor,
            enable_diffusion=controls.enable_diffusion,
            enable_inversions=controls.enable_inversions,
            enable_downslope=controls.enable_downslope,
            climate=self.climate,
        )

        self.metrics = calculate_simulation_metrics(state)
        logger.debug(
            "Tick complete",
            minutes=delta_minutes,
            clock=state.simulation_time,
            avg_temperature=self.metrics.avg_temperature,
            inversion_strength=state.inversion_strength,
        )
        return self.metrics

    def recalculate_spatial_fields(self, hillshade: bool = True) -> None:
        """Recompute regions, distances and soil moisture after a surface edit."""
        SpatialAnalysis(self.state, cell_size=self.cell_size).run(hillshade=hillshade)
        initialize_soil_moisture(self.state)

    def apply_brush(self, stroke: Union[BrushStroke, dict]) -> BrushResult:
        """
        Apply a brush edit, refresh invalidated fields and run a zero-length tick.

        Terrain edits refresh hillshade; land and soil edits refresh the
        spatial fields and reset soil moisture.
        """
        if not isinstance(stroke, BrushStroke):
            stroke = BrushStroke.model_validate(stroke)

        result = apply_brush(self.state, stroke)

        if result.terrain_changed:
            SpatialAnalysis(self.state, cell_size=self.cell_size).calculate_hillshade()
        elif result.surface_changed:
            self.recalculate_spatial_fields(hillshade=False)

        self.tick(0.0)
        return result

    def update_controls(self, **changes) -> SimulationControls:
        """Change forcing or toggles; pydantic validates each assignment."""
        for name, value in changes.items():
            setattr(self.controls, name, value)
        return self.controls
