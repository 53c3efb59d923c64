"""
Validated control models for the simulation.

The engine itself assumes well-formed input; these models are the boundary
where the surrounding application checks what a user (or a script) asked for.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class BrushCategory(str, Enum):
    """Kinds of brush edits."""

    TERRAIN = "terrain"
    LAND = "land"
    SOIL = "soil"
    ACTION = "action"


class SimulationControls(BaseModel):
    """Per-tick forcing and feature toggles."""

    model_config = ConfigDict(validate_assignment=True)

    month: int = Field(default=6, ge=1, le=12, description="Calendar month (1-12)")
    wind_speed: float = Field(default=5.0, ge=0, le=60, description="Base wind speed (km/h)")
    wind_direction: float = Field(default=270.0, ge=0, le=360, description="Base wind direction (degrees)")
    wind_gustiness: float = Field(default=20.0, ge=0, le=100, description="Gustiness (0-100)")

    enable_advection: bool = Field(default=True, description="Transport fields along the wind")
    enable_diffusion: bool = Field(default=True, description="Smooth air temperature each tick")
    enable_inversions: bool = Field(default=True, description="Model nocturnal inversions")
    enable_downslope: bool = Field(default=True, description="Model terrain-driven winds")
    enable_clouds: bool = Field(default=True, description="Model clouds and precipitation")

    simulation_speed: float = Field(default=10.0, ge=0, le=100, description="Speed multiplier")


class BrushStroke(BaseModel):
    """A single brush application centered on one cell."""

    center: Tuple[int, int] = Field(..., description="(x, y) cell at the brush center")
    radius: int = Field(default=15, ge=1, le=100, description="Brush radius in cells")
    category: BrushCategory = Field(default=BrushCategory.TERRAIN, description="Edit category")
    value: Optional[str] = Field(
        default=None,
        description="Land or soil type name for land/soil brushes, action name for action brushes",
    )
    strength: float = Field(default=5.0, ge=0, le=100, description="Terrain change at the center (m)")
    erase: bool = Field(default=False, description="Lower terrain instead of raising it")
