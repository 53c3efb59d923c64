"""
Brush editing of terrain, land cover, soil and local weather.

A brush touches every cell within its radius with a linear falloff
(power 1 at the centre, 0 at the rim).
"""

import re
from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from ..config.controls import BrushCategory, BrushStroke
from .state import SimulationState
from .surface import resolve_land_type, resolve_soil_type

logger = structlog.get_logger()

MIN_ELEVATION = 0.0
MAX_ELEVATION = 1000.0

MANUAL_PRECIPITATION = "manualprecipitation"
RAIN_THRESHOLD = -5.0  # °C above which manual precipitation falls as rain


@dataclass
class BrushResult:
    """What a brush stroke changed and which derived fields it invalidated."""

    cells: int = 0
    terrain_changed: bool = False
    surface_changed: bool = False

    @property
    def requires_recalculation(self) -> bool:
        return self.terrain_changed or self.surface_changed


def brush_power(shape, center, radius: int) -> np.ndarray:
    """
    Falloff weights for a brush; NaN outside the radius.

    Args:
        shape: Grid shape (rows, cols)
        center: (x, y) brush centre
        radius: Brush radius in cells
    """
    cx, cy = center
    ys, xs = np.mgrid[0 : shape[0], 0 : shape[1]]
    distance = np.hypot(xs - cx, ys - cy)
    return np.where(distance <= radius, 1 - distance / radius, np.nan)


def _normalize_action(value: Optional[str]) -> str:
    return re.sub(r"[^a-z]", "", (value or "").lower())


def apply_brush(state: SimulationState, stroke: BrushStroke) -> BrushResult:
    """
    Apply one brush stroke to the state.

    Args:
        state: Simulation state, edited in place
        stroke: Validated brush stroke

    Returns:
        BrushResult describing the edit

    Raises:
        ValueError: If the land/soil value or action cannot be resolved
    """
    power = brush_power(state.shape, stroke.center, stroke.radius)
    inside = ~np.isnan(power)
    power = np.where(inside, power, 0.0)
    result = BrushResult(cells=int(np.count_nonzero(inside)))
    if not result.cells:
        return result

    category = BrushCategory(stroke.category)

    if category == BrushCategory.TERRAIN:
        delta = (-stroke.strength if stroke.erase else stroke.strength) * power
        state.elevation = np.where(
            inside, np.clip(state.elevation + delta, MIN_ELEVATION, MAX_ELEVATION), state.elevation
        )
        result.terrain_changed = True

    elif category == BrushCategory.LAND:
        land_type = resolve_land_type(stroke.value)
        if land_type is None:
            raise ValueError(f"Unknown land cover: {stroke.value!r}")
        state.land_cover = np.where(inside, land_type, state.land_cover).astype(np.int8)
        result.surface_changed = True

    elif category == BrushCategory.SOIL:
        soil_type = resolve_soil_type(stroke.value)
        if soil_type is None:
            raise ValueError(f"Unknown soil type: {stroke.value!r}")
        state.soil_type = np.where(inside, soil_type, state.soil_type).astype(np.int8)
        result.surface_changed = True

    elif category == BrushCategory.ACTION:
        if _normalize_action(stroke.value) != MANUAL_PRECIPITATION:
            raise ValueError(f"Unknown brush action: {stroke.value!r}")
        amount = 0.8 * power
        rain = inside & (state.temperature > RAIN_THRESHOLD)
        snow = inside & ~rain
        state.soil_moisture = np.where(rain, np.minimum(1.0, state.soil_moisture + amount * 0.5), state.soil_moisture)
        state.snow_depth = np.where(snow, state.snow_depth + amount * 5, state.snow_depth)
        state.temperature = np.where(
            rain, state.temperature - 1.5 * power, np.where(snow, state.temperature + 0.5 * power, state.temperature)
        )

    logger.debug(
        "Brush applied",
        category=category.value,
        value=stroke.value,
        center=stroke.center,
        cells=result.cells,
    )
    return result
