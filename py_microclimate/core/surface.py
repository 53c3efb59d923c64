"""
Surface classification and thermal properties.

This module implements:
- Land-cover and soil-type codes
- The static thermal property table keyed by (land cover, soil type)
- Name and alias resolution for brush values
- Vectorized per-cell property lookup
"""

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, NamedTuple, Optional, Union

import numpy as np


class LandType(IntEnum):
    """Land-cover codes stored in the land_cover grid."""

    GRASSLAND = 0
    FOREST = 1
    WATER = 2
    URBAN = 3
    SETTLEMENT = 4


class SoilType(IntEnum):
    """Soil-type codes stored in the soil_type grid."""

    LOAM = 0
    SAND = 1
    CLAY = 2
    ROCK = 3


@dataclass(frozen=True)
class ThermalProperties:
    """Thermal behaviour of one surface class."""

    name: str
    heat_capacity: float
    conductivity: float
    water_retention: float
    albedo: float
    evaporation: float


WATER_PROPERTIES = ThermalProperties("Water", 15.0, 4.0, 1.0, 0.08, 1.5)
URBAN_PROPERTIES = ThermalProperties("Urban", 1.6, 2.0, 0.05, 0.12, 0.1)
SETTLEMENT_PROPERTIES = ThermalProperties("Settlement", 1.3, 1.6, 0.2, 0.18, 0.4)

SOIL_PROPERTIES: Dict[SoilType, ThermalProperties] = {
    SoilType.LOAM: ThermalProperties("Loam", 1.0, 1.0, 0.7, 0.2, 1.0),
    SoilType.SAND: ThermalProperties("Sand", 0.8, 0.4, 0.2, 0.55, 1.2),
    SoilType.CLAY: ThermalProperties("Clay", 1.1, 1.3, 0.9, 0.15, 0.6),
    SoilType.ROCK: ThermalProperties("Rock/Bedrock", 1.2, 2.0, 0.1, 0.25, 0.1),
}

# Land covers whose properties override the soil underneath
LAND_PROPERTIES: Dict[LandType, ThermalProperties] = {
    LandType.WATER: WATER_PROPERTIES,
    LandType.URBAN: URBAN_PROPERTIES,
    LandType.SETTLEMENT: SETTLEMENT_PROPERTIES,
}

DEFAULT_SOIL_TYPE = SoilType.LOAM
DEFAULT_THERMAL_PROPERTIES = SOIL_PROPERTIES[DEFAULT_SOIL_TYPE]

LAND_TYPE_ALIASES: Dict[str, LandType] = {
    "city": LandType.URBAN,
    "town": LandType.SETTLEMENT,
    "village": LandType.SETTLEMENT,
    "farmland": LandType.GRASSLAND,
    "meadow": LandType.GRASSLAND,
    "plain": LandType.GRASSLAND,
    "woodland": LandType.FOREST,
    "forested": LandType.FOREST,
    "mixedforest": LandType.FOREST,
    "lake": LandType.WATER,
    "river": LandType.WATER,
    "ocean": LandType.WATER,
    "coast": LandType.WATER,
}

SOIL_TYPE_ALIASES: Dict[str, SoilType] = {
    "loamy": SoilType.LOAM,
    "silt": SoilType.LOAM,
    "silty": SoilType.LOAM,
    "peat": SoilType.LOAM,
    "sandy": SoilType.SAND,
    "dunes": SoilType.SAND,
    "clayey": SoilType.CLAY,
    "rocky": SoilType.ROCK,
    "bedrock": SoilType.ROCK,
}


def _normalize_key(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.strip().lower())


_LAND_LOOKUP = {_normalize_key(t.name): t for t in LandType}
_LAND_LOOKUP.update({_normalize_key(k): v for k, v in LAND_TYPE_ALIASES.items()})
_SOIL_LOOKUP = {_normalize_key(t.name): t for t in SoilType}
_SOIL_LOOKUP.update({_normalize_key(k): v for k, v in SOIL_TYPE_ALIASES.items()})


def resolve_land_type(value: Union[str, int, None]) -> Optional[LandType]:
    """Resolve a land-cover name, alias or numeric code; None if unknown."""
    if value is None:
        return None
    if isinstance(value, (int, np.integer)):
        return LandType(int(value)) if int(value) in LandType._value2member_map_ else None
    text = str(value).strip()
    if text.isdigit():
        return resolve_land_type(int(text))
    return _LAND_LOOKUP.get(_normalize_key(text)) if text else None


def resolve_soil_type(value: Union[str, int, None]) -> Optional[SoilType]:
    """Resolve a soil name, alias or numeric code; None if unknown."""
    if value is None:
        return None
    if isinstance(value, (int, np.integer)):
        return SoilType(int(value)) if int(value) in SoilType._value2member_map_ else None
    text = str(value).strip()
    if text.isdigit():
        return resolve_soil_type(int(text))
    return _SOIL_LOOKUP.get(_normalize_key(text)) if text else None


def get_thermal_properties(land: int, soil: int) -> ThermalProperties:
    """Thermal properties of a single cell."""
    land_props = LAND_PROPERTIES.get(resolve_land_type(land))
    if land_props is not None:
        return land_props
    soil_type = resolve_soil_type(soil)
    if soil_type is None:
        return DEFAULT_THERMAL_PROPERTIES
    return SOIL_PROPERTIES[soil_type]


class SurfaceGrids(NamedTuple):
    """Per-cell thermal properties as parallel arrays."""

    heat_capacity: np.ndarray
    conductivity: np.ndarray
    water_retention: np.ndarray
    albedo: np.ndarray
    evaporation: np.ndarray


def _property_table(field: str) -> np.ndarray:
    """Build a (land, soil) lookup table for one property."""
    table = np.empty((len(LandType), len(SoilType)), dtype=np.float64)
    for land in LandType:
        for soil in SoilType:
            table[land, soil] = getattr(get_thermal_properties(land, soil), field)
    return table


_PROPERTY_TABLES = {field: _property_table(field) for field in SurfaceGrids._fields}


def surface_property_grids(land_cover: np.ndarray, soil_type: np.ndarray) -> SurfaceGrids:
    """
    Look up thermal properties for every cell at once.

    Args:
        land_cover: Land-cover code grid
        soil_type: Soil-type code grid

    Returns:
        SurfaceGrids with one array per property
    """
    land = np.clip(land_cover.astype(np.intp), 0, len(LandType) - 1)
    soil = np.clip(soil_type.astype(np.intp), 0, len(SoilType) - 1)
    return SurfaceGrids(*(_PROPERTY_TABLES[field][land, soil] for field in SurfaceGrids._fields))


def describe_surface(land: int, soil: int) -> str:
    """Display name of the surface that governs a cell's thermal behaviour."""
    return get_thermal_properties(land, soil).name
