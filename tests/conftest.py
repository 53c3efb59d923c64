"""Shared fixtures for the microclimate tests."""

import numpy as np
import pytest

from py_microclimate.core.spatial import SpatialAnalysis
from py_microclimate.core.state import create_simulation_state
from py_microclimate.core.surface import LandType


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def flat_state():
    """Uniform 10x10 grassland at 20 °C and 50% humidity, midnight."""
    state = create_simulation_state(10)
    state.simulation_time = 0.0
    return state


@pytest.fixture
def lake_state():
    """Flat 12x12 grid with a 3x3 lake in the middle."""
    state = create_simulation_state(12)
    state.land_cover[4:7, 4:7] = LandType.WATER
    SpatialAnalysis(state).run()
    state.simulation_time = 12 * 60
    return state


@pytest.fixture
def ridge_state():
    """20x20 grid with an east-west ridge across rows 8-11."""
    state = create_simulation_state(20)
    ys, _ = np.mgrid[0:20, 0:20]
    state.elevation = 100.0 + np.maximum(0.0, 150.0 - np.abs(ys - 9.5) * 30.0)
    SpatialAnalysis(state).run()
    return state
