"""
Core microclimate simulation functionality.
"""

from .state import CloudType, PrecipitationType, SimulationState, create_simulation_state
from .surface import LandType, SoilType, ThermalProperties, get_thermal_properties
from .spatial import SpatialAnalysis, recalculate_spatial_fields
from .wind import WindField, WindFieldEngine, WindOptions
from .advection import advect_grid
from .inversion import InversionLayer, InversionOptions, calculate_inversion_layer
from .clouds import CloudEngine, CloudOptions
from .fog import FogEngine, FogOptions
from .snow import SnowEngine, SnowOptions
from .thermodynamics import Thermodynamics, ThermodynamicsOptions
from .soil import initialize_soil_moisture
from .seasonal import ClimateOverrides, calculate_base_temperature, calculate_sun_altitude
from .brush import BrushResult, apply_brush
from .metrics import SimulationMetrics, calculate_simulation_metrics
from .landscape import build_default_landscape
from .simulation import MicroclimateSimulation

__all__ = ['CloudType', 'PrecipitationType', 'SimulationState', 'create_simulation_state',
           'LandType', 'SoilType', 'ThermalProperties', 'get_thermal_properties',
           'SpatialAnalysis', 'recalculate_spatial_fields',
           'WindField', 'WindFieldEngine', 'WindOptions', 'advect_grid',
           'InversionLayer', 'InversionOptions', 'calculate_inversion_layer',
           'CloudEngine', 'CloudOptions', 'FogEngine', 'FogOptions',
           'SnowEngine', 'SnowOptions', 'Thermodynamics', 'ThermodynamicsOptions',
           'initialize_soil_moisture', 'ClimateOverrides', 'calculate_base_temperature',
           'calculate_sun_altitude', 'BrushResult', 'apply_brush',
           'SimulationMetrics', 'calculate_simulation_metrics',
           'build_default_landscape', 'MicroclimateSimulation']
