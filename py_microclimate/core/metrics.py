"""Scalar summaries of the simulation state for readouts."""

from dataclasses import asdict, dataclass
from typing import Dict

import numpy as np

from .state import SimulationState


@dataclass
class SimulationMetrics:
    """Grid-wide summary values."""

    min_temperature: float = 0.0
    max_temperature: float = 0.0
    avg_temperature: float = 0.0
    total_precipitation: float = 0.0  # mean rate over all cells, mm/h
    max_cloud_height: float = 0.0  # m
    avg_snow_depth: float = 0.0  # cm

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _finite(grid: np.ndarray) -> np.ndarray:
    return grid[np.isfinite(grid)]


def calculate_simulation_metrics(state: SimulationState) -> SimulationMetrics:
    """Summaries that ignore non-finite cells."""
    temperature = _finite(state.temperature)
    precipitation = _finite(state.precipitation)
    cloud_top = _finite(state.cloud_top)
    snow = _finite(state.snow_depth)

    return SimulationMetrics(
        min_temperature=float(temperature.min()) if temperature.size else 0.0,
        max_temperature=float(temperature.max()) if temperature.size else 0.0,
        avg_temperature=float(temperature.mean()) if temperature.size else 0.0,
        total_precipitation=float(precipitation.sum() / max(1, precipitation.size)),
        max_cloud_height=float(cloud_top.max()) if cloud_top.size else 0.0,
        avg_snow_depth=float(snow.sum() / max(1, snow.size)),
    )
