"""
Wind field synthesis.

This module implements:
- Katabatic drainage flow on smooth slopes at night
- Foehn warming and lee-side acceleration downwind of ridges
- Valley channeling with a venturi speed-up in narrow valleys
- Gusts from terrain roughness and thermal turbulence
- Land-cover drag and a final weighted smoothing pass

The field is recomputed from scratch every tick from terrain and forcing.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog
from scipy import ndimage

from ..utils.random import get_rng
from .constants import EPSILON, is_night
from .state import SimulationState
from .surface import LandType

logger = structlog.get_logger()


@dataclass
class WindOptions:
    """Wind synthesis parameters."""

    cell_size: float = 6.0  # m between cell centres

    # Katabatic drainage
    katabatic_min_slope: float = 0.1  # rad
    katabatic_full_slope: float = 0.5  # rad for full strength
    katabatic_calm_cutoff: float = 30.0  # km/h base wind that suppresses drainage
    katabatic_flow_factor: float = 0.8
    katabatic_speed_scale: float = 5.0
    katabatic_cooling: float = 1.5  # per unit of flow
    cliff_threshold: float = 30.0  # m drop that separates the flow

    # Foehn
    foehn_min_wind: float = 10.0  # km/h
    foehn_min_slope: float = 0.15  # rad
    foehn_scan_distance: int = 10  # cells upwind
    foehn_crest_margin: float = 20.0  # m above the running maximum
    foehn_max_warming: float = 12.0  # °C
    foehn_speed_scale: float = 10.0

    # Valley channeling
    valley_radius: int = 5
    valley_rise: float = 25.0  # m a neighbour must exceed the cell by
    valley_enclosure: float = 0.4  # fraction of higher neighbours
    valley_wall_rise: float = 30.0  # m that marks the valley wall
    valley_max_half_width: int = 14  # cells
    valley_reference_width: float = 15.0  # cells
    venturi_gain: float = 1.2
    channel_base_strength: float = 0.4
    channel_narrow_strength: float = 0.6
    channel_speed_factor: float = 0.8

    # Gusts
    roughness_scale: float = 20.0  # m of elevation spread per unit roughness
    turbulence_scale: float = 15.0

    # Land-cover drag
    drag: Dict[int, float] = field(
        default_factory=lambda: {
            LandType.GRASSLAND: 0.85,
            LandType.FOREST: 0.55,
            LandType.WATER: 0.95,
            LandType.URBAN: 0.7,
            LandType.SETTLEMENT: 0.8,
        }
    )
    forest_depth_scale: float = 20.0
    forest_depth_reduction: float = 0.4
    min_forest_drag: float = 0.2


class WindField(NamedTuple):
    """Wind vector grids plus the katabatic and foehn diagnostics."""

    wind_x: np.ndarray
    wind_y: np.ndarray
    wind_speed: np.ndarray
    downslope_winds: np.ndarray
    foehn_effect: np.ndarray


SMOOTHING_KERNEL = np.array([[1.0, 1.0, 1.0], [1.0, 4.0, 1.0], [1.0, 1.0, 1.0]]) / 12.0


def wind_unit_vector(direction: float) -> Tuple[float, float]:
    """Grid-space unit vector for a wind direction in degrees."""
    rad = math.radians(direction)
    return math.sin(rad), -math.cos(rad)


def _round_half_up(values):
    return np.floor(np.asarray(values) + 0.5).astype(np.intp)


class WindFieldEngine:
    """Builds the per-cell wind vector field."""

    def __init__(self, options: Optional[WindOptions] = None):
        self.options = options or WindOptions()

    def vegetation_drag(self, land_cover: np.ndarray, forest_depth: np.ndarray) -> np.ndarray:
        """Per-cell multiplier applied to every wind vector."""
        opts = self.options
        default = opts.drag.get(LandType.GRASSLAND, 0.85)
        drag = np.full(land_cover.shape, default)
        for land_type, factor in opts.drag.items():
            drag[land_cover == land_type] = factor

        forest = land_cover == LandType.FOREST
        depth_factor = 1 - np.minimum(1.0, forest_depth / opts.forest_depth_scale) * opts.forest_depth_reduction
        drag[forest] *= np.maximum(opts.min_forest_drag, depth_factor[forest])
        return drag

    def compute(
        self,
        state: SimulationState,
        hour: float,
        base_speed: float,
        base_direction: float,
        gustiness: float,
        rng: Optional[np.random.Generator] = None,
    ) -> WindField:
        """
        Synthesize the wind field for the current terrain and forcing.

        Args:
            state: Simulation state (terrain, forest depth, thermal strength)
            hour: Hour of day
            base_speed: Ambient wind speed in km/h
            base_direction: Ambient wind direction in degrees
            gustiness: Gust level 0-100
            rng: Generator for gust noise

        Returns:
            WindField with the smoothed vectors and diagnostics
        """
        opts = self.options
        elevation = state.elevation
        n_rows, n_cols = elevation.shape

        wind_x = np.zeros(elevation.shape)
        wind_y = np.zeros(elevation.shape)
        downslope = np.zeros(elevation.shape)
        foehn = np.zeros(elevation.shape)

        if n_rows > 4 and n_cols > 4:
            self._add_terrain_flows(state, hour, base_speed, base_direction, wind_x, wind_y, downslope, foehn)

        drag = self.vegetation_drag(state.land_cover, state.forest_depth)

        if gustiness > 0 and n_rows > 2 and n_cols > 2:
            self._add_gusts(state, base_speed, gustiness, drag, rng, wind_x, wind_y)

        wind_x *= drag
        wind_y *= drag

        if n_rows > 2 and n_cols > 2:
            smooth_x = ndimage.convolve(wind_x, SMOOTHING_KERNEL, mode="nearest")
            smooth_y = ndimage.convolve(wind_y, SMOOTHING_KERNEL, mode="nearest")
            wind_x[1:-1, 1:-1] = smooth_x[1:-1, 1:-1]
            wind_y[1:-1, 1:-1] = smooth_y[1:-1, 1:-1]

        wind_speed = np.hypot(wind_x, wind_y)

        logger.debug(
            "Wind field computed",
            mean_speed=float(wind_speed.mean()),
            katabatic_cells=int(np.count_nonzero(downslope)),
            foehn_cells=int(np.count_nonzero(foehn)),
        )
        return WindField(wind_x, wind_y, wind_speed, downslope, foehn)

    def _add_terrain_flows(self, state, hour, base_speed, base_direction, wind_x, wind_y, downslope, foehn):
        """Katabatic, foehn and valley components over cells 2+ from the border."""
        opts = self.options
        elevation = state.elevation
        n_rows, n_cols = elevation.shape

        ys, xs = np.mgrid[2 : n_rows - 2, 2 : n_cols - 2]
        inner = (slice(2, n_rows - 2), slice(2, n_cols - 2))
        elev = elevation[inner]

        dzdx = (elevation[2:-2, 4:] - elevation[2:-2, :-4]) / (4 * opts.cell_size)
        dzdy = (elevation[4:, 2:-2] - elevation[:-4, 2:-2]) / (4 * opts.cell_size)
        slope = np.hypot(dzdx, dzdy)
        slope_angle = np.arctan(slope)

        wx, wy = wind_unit_vector(base_direction)

        # Katabatic drainage
        if is_night(hour):
            strength = np.minimum(1.0, slope_angle / opts.katabatic_full_slope) * max(
                0.0, 1 - base_speed / opts.katabatic_calm_cutoff
            )
            surface = np.ones(elev.shape, dtype=bool)
            for d in (1, 2):
                cx = _round_half_up(xs - dzdx * d)
                cy = _round_half_up(ys - dzdy * d)
                inside = (cx >= 0) & (cx < n_cols) & (cy >= 0) & (cy < n_rows)
                diff = np.zeros(elev.shape)
                diff[inside] = np.abs(elevation[cy[inside], cx[inside]] - elev[inside])
                surface &= diff <= opts.cliff_threshold

            active = (slope_angle > opts.katabatic_min_slope) & surface & (slope > EPSILON) & (strength > 0)
            flow = strength * opts.katabatic_flow_factor
            safe_slope = np.where(active, slope, 1.0)
            wind_x[inner] = np.where(active, -dzdx / safe_slope * flow * opts.katabatic_speed_scale, 0.0)
            wind_y[inner] = np.where(active, -dzdy / safe_slope * flow * opts.katabatic_speed_scale, 0.0)
            downslope[inner] = np.where(active, -flow * opts.katabatic_cooling, 0.0)

        # Foehn on lee slopes
        if base_speed > opts.foehn_min_wind:
            candidates = slope_angle > opts.foehn_min_slope
            max_upwind = elev.copy()
            lee = np.zeros(elev.shape, dtype=bool)
            for d in range(1, opts.foehn_scan_distance + 1):
                cx = _round_half_up(xs - wx * d)
                cy = _round_half_up(ys - wy * d)
                inside = (cx >= 0) & (cx < n_cols) & (cy >= 0) & (cy < n_rows)
                upwind = np.full(elev.shape, -np.inf)
                upwind[inside] = elevation[cy[inside], cx[inside]]
                crest = inside & (upwind > max_upwind + opts.foehn_crest_margin)
                lee |= crest
                max_upwind = np.where(crest, upwind, max_upwind)

            lee &= candidates
            descent = max_upwind - elev
            strength = np.minimum(1.0, descent / 100.0) * (base_speed / 30.0)
            warming = np.minimum(opts.foehn_max_warming, descent * 0.01 * strength)
            foehn[inner] = np.where(lee, warming, 0.0)
            wind_x[inner] += np.where(lee, wx * strength * opts.foehn_speed_scale, 0.0)
            wind_y[inner] += np.where(lee, wy * strength * opts.foehn_speed_scale, 0.0)

        # Valley channeling
        for y, x in zip(*np.nonzero(self._enclosed_valleys(elevation))):
            vector = self._channel_vector(elevation, int(x), int(y), base_speed, wx, wy)
            if vector is not None:
                wind_x[y, x] += vector[0]
                wind_y[y, x] += vector[1]

    def _enclosed_valleys(self, elevation: np.ndarray) -> np.ndarray:
        """Cells with a large share of markedly higher neighbours."""
        opts = self.options
        r = opts.valley_radius
        n_rows, n_cols = elevation.shape
        padded = np.pad(elevation, r, mode="constant", constant_values=-np.inf)
        higher = np.zeros(elevation.shape, dtype=np.int32)
        for dy in range(-r, r + 1):
            for dx in range(-r, r + 1):
                if dx == 0 and dy == 0:
                    continue
                neighbour = padded[r + dy : r + dy + n_rows, r + dx : r + dx + n_cols]
                higher += neighbour > elevation + opts.valley_rise

        total = (2 * r + 1) ** 2 - 1
        valleys = higher > total * opts.valley_enclosure
        border = np.ones(elevation.shape, dtype=bool)
        border[2:-2, 2:-2] = False
        valleys[border] = False
        return valleys

    def _valley_axis(self, elevation: np.ndarray, x: int, y: int) -> Optional[Tuple[float, float, int]]:
        """Unit axis through the lowest ring exits and the valley width in cells."""
        opts = self.options
        r = opts.valley_radius
        n_rows, n_cols = elevation.shape
        here = elevation[y, x]

        exits: List[Tuple[float, int, int]] = []
        for k in range(16):
            angle = k * math.pi / 8
            nx = int(math.floor(x + r * math.cos(angle) + 0.5))
            ny = int(math.floor(y + r * math.sin(angle) + 0.5))
            if 0 <= nx < n_cols and 0 <= ny < n_rows:
                exits.append((elevation[ny, nx], nx, ny))
        exits.sort(key=lambda e: e[0])
        lowest = exits[: max(2, len(exits) // 3)]
        if len(lowest) < 2:
            return None

        best = None
        best_dist = 0
        for i in range(len(lowest)):
            for j in range(i + 1, len(lowest)):
                dist_sq = (lowest[i][1] - lowest[j][1]) ** 2 + (lowest[i][2] - lowest[j][2]) ** 2
                if dist_sq > best_dist:
                    best, best_dist = (lowest[i], lowest[j]), dist_sq
        if best is None:
            return None

        axis_x = best[1][1] - best[0][1]
        axis_y = best[1][2] - best[0][2]
        axis_mag = math.hypot(axis_x, axis_y)
        if axis_mag <= EPSILON:
            return None
        vx, vy = axis_x / axis_mag, axis_y / axis_mag

        # Width across the axis until the walls rise
        px, py = -vy, vx
        width = 0
        for sign in (-1, 1):
            for d in range(1, opts.valley_max_half_width + 1):
                cx = int(math.floor(x + px * d * sign + 0.5))
                cy = int(math.floor(y + py * d * sign + 0.5))
                outside = not (0 <= cx < n_cols and 0 <= cy < n_rows)
                if outside or elevation[cy, cx] > here + opts.valley_wall_rise:
                    width += d
                    break
                if d == opts.valley_max_half_width:
                    width += d
        return vx, vy, width

    def _channel_vector(
        self, elevation: np.ndarray, x: int, y: int, base_speed: float, wx: float, wy: float
    ) -> Optional[Tuple[float, float]]:
        """Channeled wind for one enclosed valley cell, None without a clear axis."""
        opts = self.options
        axis = self._valley_axis(elevation, x, y)
        if axis is None:
            return None
        vx, vy, width = axis

        alignment = wx * vx + wy * vy
        narrowness = max(0.0, (opts.valley_reference_width - width) / opts.valley_reference_width)
        venturi = 1.0 + narrowness * opts.venturi_gain
        channel_strength = opts.channel_base_strength + narrowness * opts.channel_narrow_strength
        speed = base_speed * abs(alignment) * venturi

        direction = -1.0 if alignment < 0 else 1.0
        blend_x = wx * (1 - channel_strength) + vx * direction * channel_strength
        blend_y = wy * (1 - channel_strength) + vy * direction * channel_strength
        return (
            blend_x * speed * opts.channel_speed_factor,
            blend_y * speed * opts.channel_speed_factor,
        )

    def _add_gusts(self, state, base_speed, gustiness, drag, rng, wind_x, wind_y):
        """Zero-mean gust noise over interior cells."""
        opts = self.options
        rng = rng if rng is not None else get_rng()
        elevation = state.elevation
        inner = (slice(1, -1), slice(1, -1))

        mean = ndimage.uniform_filter(elevation, size=3, mode="nearest")
        mean_sq = ndimage.uniform_filter(elevation * elevation, size=3, mode="nearest")
        roughness = np.sqrt(np.maximum(0.0, mean_sq - mean * mean))[inner] / opts.roughness_scale
        turbulence = state.thermal_strength[inner] / opts.turbulence_scale

        gust_factor = (gustiness / 100.0) * (1 + roughness + turbulence)
        local_speed = np.hypot(wind_x[inner], wind_y[inner]) + base_speed
        magnitude = local_speed * gust_factor * 0.5 * drag[inner]

        shape = magnitude.shape
        wind_x[inner] += rng.uniform(-1.0, 1.0, shape) * magnitude
        wind_y[inner] += rng.uniform(-1.0, 1.0, shape) * magnitude


def apply_wind_field(state: SimulationState, wind: WindField) -> None:
    """Write a computed wind field into the state."""
    state.wind_x = wind.wind_x
    state.wind_y = wind.wind_y
    state.wind_speed = wind.wind_speed
    state.downslope_winds = wind.downslope_winds
    state.foehn_effect = wind.foehn_effect
