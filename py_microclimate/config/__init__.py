"""
Configuration modules for the microclimate simulator.
"""

from .config import Settings, settings
from .controls import BrushCategory, BrushStroke, SimulationControls

__all__ = ["Settings", "settings", "BrushCategory", "BrushStroke", "SimulationControls"]
