"""
py-microclimate: interactive mesoscale microclimate simulator.
"""

__version__ = "0.1.0"

from .config import BrushStroke, SimulationControls, settings
from .core.landscape import build_default_landscape
from .core.simulation import MicroclimateSimulation
from .core.state import SimulationState, create_simulation_state

__all__ = [
    "BrushStroke",
    "SimulationControls",
    "settings",
    "build_default_landscape",
    "MicroclimateSimulation",
    "SimulationState",
    "create_simulation_state",
]
