"""
Nocturnal temperature inversion gating.

Decides the height and strength of the valley inversion from the clock, the
ambient wind, the mean cloud cover and the terrain relief.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from .constants import BASE_ELEVATION, NIGHT_END_HOUR, NIGHT_START_HOUR, is_night


@dataclass
class InversionOptions:
    """Inversion gate parameters."""

    wind_cutoff: float = 15.0  # km/h above which no inversion forms
    cloud_cutoff: float = 0.5  # mean cloud cover above which no inversion forms
    valley_margin: float = 20.0  # m above base elevation still counted as valley floor
    base_offset: float = 60.0  # m
    depth_scale: float = 180.0  # m
    max_thickness: float = 280.0  # m above the valley floor
    relief_scale: float = 120.0  # m
    moderate_wind: float = 10.0  # km/h that halves the strength
    min_relief: float = 30.0  # m below which the strength is halved


class InversionLayer(NamedTuple):
    height: float
    strength: float


NO_INVERSION = InversionLayer(0.0, 0.0)


def calculate_inversion_layer(
    elevation: np.ndarray,
    hour: float,
    wind_speed: float,
    cloud_cover: float = 0.0,
    options: Optional[InversionOptions] = None,
) -> InversionLayer:
    """
    Inversion top height and strength for the current conditions.

    Args:
        elevation: Terrain elevation grid
        hour: Hour of day
        wind_speed: Ambient wind speed in km/h
        cloud_cover: Mean cloud coverage over the grid
        options: Gate parameters

    Returns:
        InversionLayer; both values are exactly 0 outside calm clear nights
    """
    opts = options or InversionOptions()

    if not is_night(hour) or wind_speed > opts.wind_cutoff or cloud_cover > opts.cloud_cutoff:
        return NO_INVERSION

    valley = elevation[elevation < BASE_ELEVATION + opts.valley_margin]
    valley_mean = float(valley.mean()) if valley.size else BASE_ELEVATION
    relief = float(elevation.max() - elevation.min())

    wind_factor = max(0.0, 1 - wind_speed / opts.wind_cutoff)
    if hour <= NIGHT_END_HOUR:
        hour_factor = (NIGHT_END_HOUR - hour) / NIGHT_END_HOUR
    else:
        hour_factor = (hour - NIGHT_START_HOUR) / 5.0

    height = valley_mean + opts.base_offset + opts.depth_scale * wind_factor * hour_factor
    height = min(height, valley_mean + opts.max_thickness)

    strength = wind_factor * hour_factor * min(1.0, relief / opts.relief_scale)
    if wind_speed > opts.moderate_wind or relief < opts.min_relief:
        strength *= 0.5

    return InversionLayer(height, strength)
