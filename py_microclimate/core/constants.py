"""
Physical constants shared across the simulation engines.

Engine-specific tuning lives in each engine's options dataclass.
"""

import numpy as np

BASE_ELEVATION = 100.0  # Reference valley elevation (m)
LAPSE_RATE = 0.65  # °C per 100 m
STANDARD_SURFACE_TEMP = 15.0  # °C at BASE_ELEVATION in the standard atmosphere
SOLAR_INTENSITY_FACTOR = 1.5
EPSILON = 1e-6

# Absolute physical range for air and soil temperature (°C)
ABSOLUTE_MIN_TEMP = -70.0
ABSOLUTE_MAX_TEMP = 65.0

# Fixed night window used by wind and inversion gating (hours)
NIGHT_END_HOUR = 6
NIGHT_START_HOUR = 19

# Magnus formula coefficients
MAGNUS_A = 17.27
MAGNUS_B = 237.7


def is_night(hour: float) -> bool:
    """Night window used by katabatic flow and inversion gating."""
    return hour <= NIGHT_END_HOUR or hour >= NIGHT_START_HOUR


def compute_dew_point(temperature, humidity):
    """
    Dew point from air temperature and relative humidity (Magnus inverse).

    Works on scalars and arrays; humidity is floored at 1% so the logarithm
    stays finite.
    """
    rh = np.clip(humidity, 0.01, 1.0)
    gamma = np.log(rh) + MAGNUS_A * temperature / (MAGNUS_B + temperature)
    return MAGNUS_B * gamma / (MAGNUS_A - gamma)
