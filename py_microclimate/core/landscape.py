"""
Default synthetic landscape.

Builds a rolling valley with an east-west ridge, a clay basin with a lake,
a forest belt, a sandy southern slope and a settlement. Feature positions
are laid out on a 100-cell reference grid and scaled to the actual size.
"""

import math
from typing import Optional

import numpy as np
import structlog

from ..config import settings
from ..utils.random import get_rng
from .constants import BASE_ELEVATION
from .soil import initialize_soil_moisture
from .spatial import SpatialAnalysis
from .state import SimulationState, create_simulation_state
from .surface import LandType, SoilType

logger = structlog.get_logger()

REFERENCE_SIZE = 100


def generate_base_terrain(size: int, rng: np.random.Generator) -> np.ndarray:
    """Two sinusoidal octaves around the base elevation plus noise."""
    ys, xs = np.mgrid[0:size, 0:size]
    nx = xs / size * 4
    ny = ys / size * 4
    return (
        BASE_ELEVATION
        + np.sin(nx * math.pi) * np.cos(ny * math.pi) * 50
        + np.sin(nx * math.pi * 3) * np.cos(ny * math.pi * 3) * 20
        + (rng.random((size, size)) - 0.5) * 10
    )


def assign_base_soils(elevation: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Rock on high ground, clay or loam in hollows, a loam/sand/clay mix elsewhere."""
    draw = rng.random(elevation.shape)
    mixed = np.where(draw < 0.4, SoilType.LOAM, np.where(draw < 0.7, SoilType.SAND, SoilType.CLAY))
    low = np.where(draw > 0.5, SoilType.CLAY, SoilType.LOAM)
    soil = np.where(elevation > 140, SoilType.ROCK, np.where(elevation < 80, low, mixed))
    return soil.astype(np.int8)


class LandscapeBuilder:
    """Paints the default features onto a fresh state."""

    def __init__(
        self,
        size: int = 100,
        rng: Optional[np.random.Generator] = None,
        cell_size: Optional[float] = None,
    ):
        self.size = size
        self.cell_size = cell_size if cell_size is not None else settings.cell_size
        self.scale = size / REFERENCE_SIZE
        self.rng = rng if rng is not None else get_rng()

    def _s(self, value: float) -> int:
        return int(round(value * self.scale))

    def _rows(self, start: float, stop: float) -> range:
        return range(max(0, self._s(start)), min(self.size, self._s(stop)))

    def build(self) -> SimulationState:
        """Create the state, paint features and derive spatial fields."""
        elevation = generate_base_terrain(self.size, self.rng)
        state = create_simulation_state(
            self.size,
            elevation=elevation,
            soil_type=assign_base_soils(elevation, self.rng),
        )
        state.humidity = 0.5 + self.rng.random(state.shape) * 0.2

        self._add_ridge(state)
        self._add_valley(state)
        self._add_southern_slope(state)
        self._add_sand(state)
        self._add_lake(state)
        self._add_forest(state)
        self._add_settlement(state)

        SpatialAnalysis(state, cell_size=self.cell_size).run()
        initialize_soil_moisture(state)

        logger.info(
            "Landscape built",
            size=self.size,
            min_elevation=float(state.elevation.min()),
            max_elevation=float(state.elevation.max()),
        )
        return state

    def _ridge_height(self, x: int) -> float:
        return 800 + math.sin(x / self.scale / 10) * 200

    def _add_ridge(self, state: SimulationState) -> None:
        centre = 45 * self.scale
        for y in self._rows(40, 51):
            for x in self._rows(10, 90):
                height = self._ridge_height(x) - abs(y - centre) / self.scale * 80
                state.elevation[y, x] = height
                if height > 800:
                    state.soil_type[y, x] = SoilType.ROCK

    def _add_valley(self, state: SimulationState) -> None:
        centre = 20 * self.scale
        for y in self._rows(10, 30):
            for x in self._rows(10, 90):
                depth = (10 - abs(y - centre) / self.scale) * 5
                state.elevation[y, x] = max(60.0, state.elevation[y, x] - depth)
                if state.elevation[y, x] < 80:
                    state.soil_type[y, x] = SoilType.CLAY

    def _add_southern_slope(self, state: SimulationState) -> None:
        for y in self._rows(51, 70):
            for x in self._rows(10, 90):
                foot = self._ridge_height(x) - 5 * 80
                state.elevation[y, x] = max(80.0, foot - (y / self.scale - 50) * 12)

    def _add_sand(self, state: SimulationState) -> None:
        rows, cols = self._rows(65, 80), self._rows(30, 60)
        if not rows or not cols:
            return
        block = (slice(rows.start, rows.stop), slice(cols.start, cols.stop))
        draw = self.rng.random((len(rows), len(cols)))
        state.soil_type[block] = np.where(draw > 0.3, SoilType.SAND, state.soil_type[block])

    def _add_lake(self, state: SimulationState) -> None:
        ys, xs = np.mgrid[0 : self.size, 0 : self.size]
        radius = max(1.0, 6 * self.scale)
        lake = np.hypot(xs - 27 * self.scale, ys - 20 * self.scale) < radius
        state.land_cover[lake] = LandType.WATER
        state.elevation[lake] = 65.0

    def _add_forest(self, state: SimulationState) -> None:
        rows, cols = self._rows(30, 45), self._rows(20, 80)
        if not rows or not cols:
            return
        block = (slice(rows.start, rows.stop), slice(cols.start, cols.stop))
        planted = self.rng.random((len(rows), len(cols))) > 0.3
        state.land_cover[block] = np.where(planted, LandType.FOREST, state.land_cover[block])
        state.soil_type[block] = np.where(planted, SoilType.LOAM, state.soil_type[block])

    def _add_settlement(self, state: SimulationState) -> None:
        ys, xs = np.mgrid[0 : self.size, 0 : self.size]
        radius = 40 * self.scale
        diamond = np.abs(xs - 50 * self.scale) + np.abs(ys - 55 * self.scale) < radius
        state.land_cover[diamond] = LandType.SETTLEMENT


def build_default_landscape(
    size: int = 100,
    rng: Optional[np.random.Generator] = None,
    cell_size: Optional[float] = None,
) -> SimulationState:
    """Fresh state with the default landscape and its derived fields."""
    return LandscapeBuilder(size, rng, cell_size).build()
