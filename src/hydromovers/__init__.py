"""hydromovers: mass-transfer processes for conceptual watershed models.

Canopy evaporation, canopy snow sublimation, canopy drip and advective
constituent transport expressed as directed transfers between storage
compartments, computed as proposed rates followed by physical constraints.
"""

import hydromovers.advection  # noqa: F401 - triggers auto-registration
import hydromovers.vegetation  # noqa: F401 - triggers auto-registration
from hydromovers.advection import Advection
from hydromovers.config import ConstituentConfig, ModelConfig, ProcessConfig, build_processes
from hydromovers.errors import ConfigurationError, StubError
from hydromovers.process import Process
from hydromovers.registry import get_participation, get_process, list_processes, participation_table
from hydromovers.solver import advance, simulate
from hydromovers.storage import StorageIndex
from hydromovers.sublimation import SublimationModel, sublimation_rate
from hydromovers.transport import TransportModel
from hydromovers.types import (
    ForcingValues,
    GlobalParameters,
    Options,
    ParameterClass,
    ParameterSpec,
    SpatialUnit,
    StorageSpec,
    StorageType,
    SurfaceProperties,
    UnitType,
    VegetationProperties,
)
from hydromovers.vegetation import (
    CanopyDrip,
    CanopyDripModel,
    CanopyEvaporation,
    CanopyEvaporationModel,
    CanopySublimation,
)

__all__ = [
    "Advection",
    "CanopyDrip",
    "CanopyDripModel",
    "CanopyEvaporation",
    "CanopyEvaporationModel",
    "CanopySublimation",
    "ConfigurationError",
    "ConstituentConfig",
    "ForcingValues",
    "GlobalParameters",
    "ModelConfig",
    "Options",
    "ParameterClass",
    "ParameterSpec",
    "Process",
    "ProcessConfig",
    "SpatialUnit",
    "StorageIndex",
    "StorageSpec",
    "StorageType",
    "StubError",
    "SublimationModel",
    "SurfaceProperties",
    "TransportModel",
    "UnitType",
    "VegetationProperties",
    "advance",
    "build_processes",
    "get_participation",
    "get_process",
    "list_processes",
    "participation_table",
    "simulate",
    "sublimation_rate",
]
