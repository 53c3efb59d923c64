"""
Seasonal and diurnal forcing.

This module implements:
- Monthly climatology tables and cyclic interpolation between months
- Sunrise/sunset from daylight hours
- The diurnal baseline air temperature for a month and hour
- Sun altitude from clock time
- Climate overrides that shift the baseline and the humidity target
"""

import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .constants import EPSILON

# Mean monthly air temperature (°C), January first
MONTHLY_TEMPS: List[float] = [-10, -8, -3, 2, 8, 13, 15, 15, 8, 2, -4, -9]

# Hours of daylight per month at the modelled mid-latitude site
MONTHLY_DAYLIGHT_HOURS: List[float] = [8.4, 9.9, 11.8, 13.7, 15.3, 16.2, 15.7, 14.3, 12.4, 10.5, 8.9, 8.0]

# Typical difference between daily max and min temperature (°C)
MONTHLY_DIURNAL_VARIATION: List[float] = [5.0, 6.5, 8.0, 10.0, 11.5, 12.0, 12.0, 11.0, 9.5, 7.5, 5.5, 4.5]

EVENING_WARMTH_FRACTION = 0.15


@dataclass
class ClimateOverrides:
    """Adjustments applied on top of the monthly climatology."""

    base_temperature_offset: float = 0.0  # °C added to the baseline
    humidity_target: float = 0.6  # Relative humidity the air relaxes toward
    seasonal_intensity: float = 1.0  # Scales the monthly swing around the annual mean
    seasonal_shift: float = 0.0  # Months to shift the seasonal cycle by


DEFAULT_CLIMATE_OVERRIDES = ClimateOverrides()


@dataclass
class SunCycle:
    """Sunrise and sunset for a month."""

    daylight_hours: float
    sunrise_hour: float
    sunset_hour: float


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def sample_monthly_cycle(month_value: float, values: Sequence[float]) -> float:
    """
    Linearly interpolate a 12-entry table at a fractional, zero-based month.

    December wraps back to January.
    """
    if not values:
        return 0.0
    period = len(values)
    if not math.isfinite(month_value):
        month_value = 0.0
    wrapped = month_value % period
    lower = int(math.floor(wrapped))
    upper = (lower + 1) % period
    fraction = wrapped - lower
    return values[lower] + (values[upper] - values[lower]) * fraction


def month_to_value(month: float) -> float:
    """Convert a 1-based calendar month to a zero-based cycle position."""
    if not math.isfinite(month):
        return 0.0
    return month - 1


def get_sun_cycle(month: float, seasonal_shift: float = 0.0) -> SunCycle:
    """Sunrise/sunset centred on solar noon for a month, optionally shifted by months."""
    month_value = month_to_value(month) + seasonal_shift
    daylight = _clamp(sample_monthly_cycle(month_value, MONTHLY_DAYLIGHT_HOURS), 0.0, 24.0)
    sunrise = _clamp(12 - daylight / 2, 0.0, 24.0)
    sunset = _clamp(sunrise + daylight, 0.0, 24.0)
    return SunCycle(daylight_hours=daylight, sunrise_hour=sunrise, sunset_hour=sunset)


def calculate_sun_altitude(hour: float) -> float:
    """Sine of the sun's elevation, zero outside 06:00-18:00."""
    return max(0.0, math.sin((hour - 6) * math.pi / 12))


def calculate_base_temperature(
    month: float, hour: float, climate: ClimateOverrides = DEFAULT_CLIMATE_OVERRIDES
) -> float:
    """
    Diurnal baseline air temperature for a month and hour.

    The day warms along a quarter sine from the minimum at sunrise to the
    maximum at midday, cools toward an evening temperature by sunset, then
    decays to the minimum through the night.

    Args:
        month: Calendar month (1-12)
        hour: Hour of day (0-24)
        climate: Overrides for offset, seasonal intensity and shift

    Returns:
        Baseline temperature in °C
    """
    month_value = month_to_value(month) + climate.seasonal_shift
    annual_mean = sum(MONTHLY_TEMPS) / len(MONTHLY_TEMPS)
    monthly_mean = sample_monthly_cycle(month_value, MONTHLY_TEMPS)
    average_temp = (
        annual_mean
        + (monthly_mean - annual_mean) * climate.seasonal_intensity
        + climate.base_temperature_offset
    )
    diurnal_range = sample_monthly_cycle(month_value, MONTHLY_DIURNAL_VARIATION)

    sun = get_sun_cycle(month, climate.seasonal_shift)
    daylight_hours = sun.daylight_hours
    sunrise = sun.sunrise_hour
    sunset = sun.sunset_hour
    midday = (sunrise + sunset) / 2
    total_night_hours = max(24 - daylight_hours, 0.1)

    max_temp = average_temp + diurnal_range / 2
    min_temp = average_temp - diurnal_range / 2
    evening_temp = average_temp + diurnal_range * EVENING_WARMTH_FRACTION

    if sunrise <= hour <= sunset and daylight_hours > EPSILON:
        if hour <= midday:
            rise_duration = max(midday - sunrise, 0.1)
            progress = _clamp((hour - sunrise) / rise_duration, 0.0, 1.0)
            return min_temp + (max_temp - min_temp) * math.sin(progress * math.pi / 2)

        set_duration = max(sunset - midday, 0.1)
        progress = _clamp((hour - midday) / set_duration, 0.0, 1.0)
        return evening_temp + (max_temp - evening_temp) * math.cos(progress * math.pi / 2)

    hours_since_sunset = hour - sunset if hour > sunset else hour + (24 - sunset)
    night_progress = _clamp(hours_since_sunset / total_night_hours, 0.0, 1.0)
    return min_temp + (evening_temp - min_temp) * math.cos(night_progress * math.pi / 2)


def blend_humidity_towards_target(current, target: float, blend: float):
    """Move humidity a fraction of the way toward a target (scalars or arrays)."""
    safe_current = np.clip(current, 0.0, 1.0)
    safe_target = _clamp(target, 0.0, 1.0)
    safe_blend = _clamp(blend, 0.0, 1.0)
    return safe_current + (safe_target - safe_current) * safe_blend
