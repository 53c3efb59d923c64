"""
Spatial analysis of the land-cover and elevation grids.

This module handles:
- Contiguous same-land-cover regions (8-connected flood fill)
- Multi-source distance fields to water, forest and built-up cells
- Forest interior depth
- Hillshade from a fixed sun

These fields only change when a brush edit touches land cover or elevation.
"""

import heapq
import math
from collections import deque
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from .state import SimulationState
from .surface import LandType

logger = structlog.get_logger()

NEIGHBORS_8: Tuple[Tuple[int, int], ...] = tuple(
    (dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dx, dy) != (0, 0)
)

MAX_FOREST_DEPTH_RADIUS = 20
HILLSHADE_AZIMUTH = 315.0  # degrees
HILLSHADE_ALTITUDE = 45.0  # degrees


def multi_source_distance(
    sources: np.ndarray, source_ids: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Dijkstra expansion from every source cell at once.

    Steps to the 8 neighbours cost 1 (cardinal) or sqrt(2) (diagonal).

    Args:
        sources: Boolean grid of source cells
        source_ids: Optional region id per cell, propagated from the nearest source

    Returns:
        Tuple of (distance grid, nearest source id grid); unreachable cells
        keep +inf and id 0
    """
    height, width = sources.shape
    distance = np.full(sources.shape, np.inf)
    nearest = np.zeros(sources.shape, dtype=np.int32)

    heap: List[Tuple[float, int, int, int]] = []
    for y, x in zip(*np.nonzero(sources)):
        area_id = int(source_ids[y, x]) if source_ids is not None else 0
        distance[y, x] = 0.0
        nearest[y, x] = area_id
        heap.append((0.0, int(y), int(x), area_id))
    heapq.heapify(heap)

    while heap:
        dist, y, x, area_id = heapq.heappop(heap)
        if dist > distance[y, x]:
            continue
        for dx, dy in NEIGHBORS_8:
            nx, ny = x + dx, y + dy
            if not (0 <= nx < width and 0 <= ny < height):
                continue
            new_dist = dist + (math.sqrt(2.0) if dx and dy else 1.0)
            if new_dist < distance[ny, nx]:
                distance[ny, nx] = new_dist
                nearest[ny, nx] = area_id
                heapq.heappush(heap, (new_dist, ny, nx, area_id))

    return distance, nearest


class SpatialAnalysis:
    """Recomputes the derived spatial fields of a simulation state."""

    def __init__(self, state: SimulationState, cell_size: float = 6.0):
        """
        Args:
            state: Simulation state whose derived fields are rewritten
            cell_size: Horizontal cell spacing in metres
        """
        self.state = state
        self.cell_size = cell_size

    def calculate_contiguous_areas(self) -> Dict[int, int]:
        """
        Label every maximal 8-connected same-land-cover region.

        Ids start at 1 and follow row-major discovery order.

        Returns:
            Mapping of region id to cell count
        """
        land = self.state.land_cover
        height, width = land.shape
        areas = np.zeros(land.shape, dtype=np.int32)
        sizes: Dict[int, int] = {}
        area_id = 0

        for start_y in range(height):
            for start_x in range(width):
                if areas[start_y, start_x]:
                    continue
                area_id += 1
                land_type = land[start_y, start_x]
                queue = deque([(start_x, start_y)])
                areas[start_y, start_x] = area_id
                count = 0

                while queue:
                    x, y = queue.popleft()
                    count += 1
                    for dx, dy in NEIGHBORS_8:
                        nx, ny = x + dx, y + dy
                        if (
                            0 <= nx < width
                            and 0 <= ny < height
                            and not areas[ny, nx]
                            and land[ny, nx] == land_type
                        ):
                            areas[ny, nx] = area_id
                            queue.append((nx, ny))

                sizes[area_id] = count

        self.state.contiguous_areas = areas
        self.state.area_sizes = sizes
        return sizes

    def calculate_distance_fields(self) -> None:
        """Distance to the nearest water, forest and built-up cell."""
        state = self.state
        land = state.land_cover

        state.water_distance, state.nearest_water_area_id = multi_source_distance(
            land == LandType.WATER, state.contiguous_areas
        )
        state.forest_distance, state.nearest_forest_area_id = multi_source_distance(
            land == LandType.FOREST, state.contiguous_areas
        )
        state.urban_distance, _ = multi_source_distance(
            (land == LandType.URBAN) | (land == LandType.SETTLEMENT)
        )
        state.forest_depth = self.calculate_forest_depth()

    def calculate_forest_depth(self) -> np.ndarray:
        """
        Distance from each forest cell to the forest edge.

        Searches square rings of growing radius and stops at the first ring
        containing a non-forest cell; cells with no edge within reach get
        the maximum depth.
        """
        land = self.state.land_cover
        height, width = land.shape
        depth = np.zeros(land.shape)
        forest = land == LandType.FOREST

        for y, x in zip(*np.nonzero(forest)):
            best = math.inf
            for radius in range(1, MAX_FOREST_DEPTH_RADIUS):
                y0, y1 = max(0, y - radius), min(height, y + radius + 1)
                x0, x1 = max(0, x - radius), min(width, x + radius + 1)
                window = ~forest[y0:y1, x0:x1]
                if not window.any():
                    continue
                for wy, wx in zip(*np.nonzero(window)):
                    dy, dx = wy + y0 - y, wx + x0 - x
                    if max(abs(dx), abs(dy)) == radius:
                        best = min(best, math.hypot(dx, dy))
                if best < math.inf:
                    break
            depth[y, x] = MAX_FOREST_DEPTH_RADIUS if best == math.inf else best

        return depth

    def calculate_hillshade(self) -> np.ndarray:
        """
        Shade interior cells from a fixed north-west sun.

        Border cells keep their previous value.
        """
        elevation = self.state.elevation
        hillshade = self.state.hillshade
        if min(elevation.shape) < 3:
            return hillshade

        azimuth = math.radians(HILLSHADE_AZIMUTH)
        altitude = math.radians(HILLSHADE_ALTITUDE)

        dzdx = (elevation[1:-1, 2:] - elevation[1:-1, :-2]) / (2 * self.cell_size)
        dzdy = (elevation[2:, 1:-1] - elevation[:-2, 1:-1]) / (2 * self.cell_size)
        slope = np.arctan(np.hypot(dzdx, dzdy))
        aspect = np.arctan2(dzdy, dzdx)

        shade = math.cos(altitude) * np.cos(slope) + math.sin(altitude) * np.sin(
            slope
        ) * np.cos(azimuth - aspect)
        hillshade[1:-1, 1:-1] = np.clip(shade, 0.0, 1.0)
        return hillshade

    def run(self, hillshade: bool = True) -> None:
        """Recompute regions, distance fields and optionally hillshade."""
        sizes = self.calculate_contiguous_areas()
        self.calculate_distance_fields()
        if hillshade:
            self.calculate_hillshade()

        logger.info(
            "Spatial fields recalculated",
            regions=len(sizes),
            water_cells=int(np.count_nonzero(self.state.land_cover == LandType.WATER)),
            forest_cells=int(np.count_nonzero(self.state.land_cover == LandType.FOREST)),
        )


def recalculate_spatial_fields(
    state: SimulationState, cell_size: float = 6.0, hillshade: bool = True
) -> SimulationState:
    """Convenience wrapper running a full SpatialAnalysis pass."""
    SpatialAnalysis(state, cell_size=cell_size).run(hillshade=hillshade)
    return state

