"""Soil moisture initialization after terrain and land edits."""

import numpy as np
import structlog

from .state import SimulationState
from .surface import surface_property_grids

logger = structlog.get_logger()

WATER_INFLUENCE_DISTANCE = 10.0  # cells
WATER_BOOST = 0.3
STEEP_SLOPE = 20.0  # m summed north/south elevation difference
STEEP_SLOPE_FACTOR = 0.7


def initialize_soil_moisture(state: SimulationState) -> np.ndarray:
    """
    Reset soil moisture from surface retention, water proximity and slope.

    Moisture starts at half the water retention of the surface, gains up to
    0.3 within ten cells of open water and drops by 30% on steep interior
    cells.
    """
    props = surface_property_grids(state.land_cover, state.soil_type)
    moisture = props.water_retention * 0.5

    distance = state.water_distance
    near = distance < WATER_INFLUENCE_DISTANCE
    moisture = moisture + np.where(
        near, (WATER_INFLUENCE_DISTANCE - np.where(near, distance, 0.0)) / WATER_INFLUENCE_DISTANCE * WATER_BOOST, 0.0
    )

    elevation = state.elevation
    if min(elevation.shape) >= 3:
        centre = elevation[1:-1, 1:-1]
        slope = np.abs(centre - elevation[:-2, 1:-1]) + np.abs(centre - elevation[2:, 1:-1])
        moisture[1:-1, 1:-1] = np.where(slope > STEEP_SLOPE, moisture[1:-1, 1:-1] * STEEP_SLOPE_FACTOR, moisture[1:-1, 1:-1])

    state.soil_moisture = np.clip(moisture, 0.0, 1.0)
    logger.debug("Soil moisture initialized", mean_moisture=float(state.soil_moisture.mean()))
    return state.soil_moisture
