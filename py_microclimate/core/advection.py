"""
Semi-Lagrangian advection of scalar grids along the wind field.

Each destination cell traces back along its own wind vector and samples the
source grid bilinearly. Sources that fall outside the grid are damped toward a
neutral value instead of being wrapped or clamp-extended.
"""

from typing import Optional

import numpy as np
from scipy.ndimage import map_coordinates

ADVECTION_STEP_SCALE = 5.0  # cells per unit wind per hour
BOUNDARY_DAMPING = 0.5


def advect_grid(
    grid: np.ndarray,
    wind_x: np.ndarray,
    wind_y: np.ndarray,
    time_factor: float,
    neutral: Optional[float] = None,
) -> np.ndarray:
    """
    Transport a scalar grid along the wind for one time step.

    Args:
        grid: Scalar field indexed [y, x]
        wind_x: Eastward wind component per cell
        wind_y: Southward (row-increasing) wind component per cell
        time_factor: Time step in hours
        neutral: Value off-grid samples relax toward; defaults to the grid mean

    Returns:
        New advected grid; the input is left untouched
    """
    if time_factor <= 0:
        return grid.copy()

    n_rows, n_cols = grid.shape
    if neutral is None:
        neutral = float(np.mean(grid))

    step = time_factor * ADVECTION_STEP_SCALE
    ys, xs = np.mgrid[0:n_rows, 0:n_cols].astype(np.float64)
    source_x = xs - wind_x * step
    source_y = ys - wind_y * step

    clamped_x = np.clip(source_x, 0, n_cols - 1)
    clamped_y = np.clip(source_y, 0, n_rows - 1)

    # Linear interpolation at the traced-back departure points
    sampled = map_coordinates(grid, [clamped_y, clamped_x], order=1, mode="nearest")

    overflow = np.abs(source_x - clamped_x) + np.abs(source_y - clamped_y)
    damping = np.exp(-BOUNDARY_DAMPING * overflow)
    return neutral + (sampled - neutral) * damping
