"""
Simulation state store.

All per-cell quantities are dense parallel grids (structure-of-arrays) held
as row-major NumPy arrays indexed ``[y, x]``. There is no per-cell object.
The state holds data only; engines read snapshots of it and write back one
authoritative next-state array per quantity.
"""

from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Dict, Iterator, Optional, Tuple

import numpy as np

from .constants import BASE_ELEVATION
from .surface import LandType, SoilType


class CloudType(IntEnum):
    """Cloud genera tracked by the cloud engine."""

    NONE = 0
    CUMULUS = 1
    STRATOCUMULUS = 2
    STRATUS = 3
    CUMULONIMBUS = 4
    OROGRAPHIC = 5
    CIRRUS = 6
    ALTOSTRATUS = 7
    NIMBOSTRATUS = 8
    ALTOCUMULUS = 9
    CIRROSTRATUS = 10


class PrecipitationType(IntEnum):
    """Precipitation reaching the ground."""

    NONE = 0
    DRIZZLE = 1
    RAIN = 2
    SNOW = 3
    SLEET = 4
    FREEZING_RAIN = 5
    GRAUPEL = 6
    HAIL = 7


# Grids advanced by the physics every tick (as opposed to terrain and
# derived spatial fields, which only change on edits).
ATMOSPHERIC_GRIDS: Tuple[str, ...] = (
    "temperature",
    "soil_temperature",
    "humidity",
    "dew_point",
    "cloud_water",
    "cloud_coverage",
    "cloud_base",
    "cloud_top",
    "cloud_type",
    "cloud_optical_depth",
    "precipitation",
    "precipitation_type",
    "fog_density",
    "snow_depth",
    "soil_moisture",
    "ice_content",
)


def _grid(size: int, value: float, dtype=np.float64) -> np.ndarray:
    return np.full((size, size), value, dtype=dtype)


@dataclass
class SimulationState:
    """Every grid and global scalar of one simulation."""

    size: int

    # Terrain
    elevation: np.ndarray = None
    land_cover: np.ndarray = None
    soil_type: np.ndarray = None
    hillshade: np.ndarray = None

    # Derived spatial fields (recomputed on edit)
    water_distance: np.ndarray = None
    nearest_water_area_id: np.ndarray = None
    forest_distance: np.ndarray = None
    nearest_forest_area_id: np.ndarray = None
    forest_depth: np.ndarray = None
    urban_distance: np.ndarray = None
    contiguous_areas: np.ndarray = None
    area_sizes: Dict[int, int] = field(default_factory=dict)

    # Thermal layers
    temperature: np.ndarray = None
    soil_temperature: np.ndarray = None

    # Moisture, clouds and precipitation
    humidity: np.ndarray = None
    dew_point: np.ndarray = None
    cloud_water: np.ndarray = None
    cloud_coverage: np.ndarray = None
    cloud_base: np.ndarray = None
    cloud_top: np.ndarray = None
    cloud_type: np.ndarray = None
    cloud_optical_depth: np.ndarray = None
    ice_content: np.ndarray = None
    convective_energy: np.ndarray = None
    thermal_strength: np.ndarray = None
    precipitation: np.ndarray = None
    precipitation_type: np.ndarray = None
    latent_heat_effect: np.ndarray = None
    fog_density: np.ndarray = None
    snow_depth: np.ndarray = None
    soil_moisture: np.ndarray = None

    # Wind field and its diagnostics
    wind_x: np.ndarray = None
    wind_y: np.ndarray = None
    wind_speed: np.ndarray = None
    downslope_winds: np.ndarray = None
    foehn_effect: np.ndarray = None

    # Global scalars
    simulation_time: float = 6 * 60  # minutes
    inversion_height: float = 0.0
    inversion_strength: float = 0.0

    def __post_init__(self):
        n = self.size
        defaults = {
            "elevation": (BASE_ELEVATION, np.float64),
            "land_cover": (LandType.GRASSLAND, np.int8),
            "soil_type": (SoilType.LOAM, np.int8),
            "hillshade": (1.0, np.float64),
            "water_distance": (np.inf, np.float64),
            "nearest_water_area_id": (0, np.int32),
            "forest_distance": (np.inf, np.float64),
            "nearest_forest_area_id": (0, np.int32),
            "forest_depth": (0.0, np.float64),
            "urban_distance": (np.inf, np.float64),
            "contiguous_areas": (0, np.int32),
            "temperature": (20.0, np.float64),
            "soil_temperature": (20.0, np.float64),
            "humidity": (0.5, np.float64),
            "dew_point": (10.0, np.float64),
            "cloud_type": (CloudType.NONE, np.int8),
            "precipitation_type": (PrecipitationType.NONE, np.int8),
        }
        for f in fields(self):
            if f.name in ("size", "area_sizes") or f.type is not np.ndarray:
                continue
            if getattr(self, f.name) is None:
                value, dtype = defaults.get(f.name, (0.0, np.float64))
                setattr(self, f.name, _grid(n, value, dtype))
            elif getattr(self, f.name).shape != (n, n):
                raise ValueError(
                    f"Grid '{f.name}' has shape {getattr(self, f.name).shape}, expected {(n, n)}"
                )

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.size, self.size)

    @property
    def hour(self) -> int:
        """Whole hour of the simulated day."""
        return int((self.simulation_time % (24 * 60)) // 60)

    @property
    def minute(self) -> int:
        return int((self.simulation_time % (24 * 60)) % 60)

    def grids(self) -> Iterator[Tuple[str, np.ndarray]]:
        """Iterate over (name, array) for every grid."""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray):
                yield f.name, value

    def snapshot(self, names: Optional[Tuple[str, ...]] = None) -> Dict[str, np.ndarray]:
        """Copies of the named grids (all grids by default)."""
        if names is None:
            return {name: grid.copy() for name, grid in self.grids()}
        return {name: getattr(self, name).copy() for name in names}

    def reset_wind(self) -> None:
        """Zero the wind vector field and its diagnostics."""
        for name in ("wind_x", "wind_y", "wind_speed", "downslope_winds", "foehn_effect"):
            getattr(self, name).fill(0.0)

    def reset_clouds(self) -> None:
        """Clear every cloud and precipitation grid."""
        for name in (
            "cloud_coverage",
            "cloud_water",
            "cloud_optical_depth",
            "cloud_base",
            "cloud_top",
            "precipitation",
            "thermal_strength",
            "convective_energy",
            "ice_content",
        ):
            getattr(self, name).fill(0.0)
        self.cloud_type.fill(CloudType.NONE)
        self.precipitation_type.fill(PrecipitationType.NONE)


def create_simulation_state(size: int = 100, **grids: np.ndarray) -> SimulationState:
    """
    Create a state with default grids.

    Args:
        size: Cells per grid side
        **grids: Optional initial arrays by field name

    Returns:
        SimulationState
    """
    return SimulationState(size=size, **grids)
