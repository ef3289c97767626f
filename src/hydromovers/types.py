"""Core data types shared by all mass-transfer processes.

This module defines:
- StorageType, UnitType, ParameterClass: closed enumerations used for wiring and validation
- Connection, ParameterSpec, StorageSpec: immutable descriptors for process wiring and reflection
- Options, GlobalParameters: validated global run options
- SurfaceProperties, VegetationProperties, ForcingValues, SpatialUnit: read-only view of a spatial unit
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


class StorageType(str, Enum):
    """Semantic type of a storage compartment."""

    ATMOSPHERE = "atmosphere"
    ATMOS_PRECIP = "atmos_precip"
    PONDED_WATER = "ponded_water"
    SOIL = "soil"
    GROUNDWATER = "groundwater"
    SURFACE_WATER = "surface_water"
    SNOW = "snow"
    SNOW_LIQ = "snow_liq"
    DEPRESSION = "depression"
    CANOPY = "canopy"
    CANOPY_SNOW = "canopy_snow"
    TRUNK = "trunk"
    AET = "aet"
    CONSTITUENT = "constituent"


class UnitType(str, Enum):
    """Discrete type tag of a spatial unit."""

    STANDARD = "standard"
    WETLAND = "wetland"
    LAKE = "lake"
    GLACIER = "glacier"
    ROCK = "rock"


class ParameterClass(str, Enum):
    """Lookup table a required parameter is read from."""

    VEGETATION = "vegetation"
    LANDUSE = "landuse"
    SOIL = "soil"
    GLOBAL = "global"


# Unit types able to host a vegetation canopy
CANOPY_UNIT_TYPES: frozenset[UnitType] = frozenset({UnitType.STANDARD, UnitType.WETLAND})


class Connection(NamedTuple):
    """Directed transfer between two state vector slots.

    from_index == to_index marks an accumulator connection: the rate is added
    to that slot rather than moved between two slots.
    """

    from_index: int | None
    to_index: int | None

    @property
    def is_accumulator(self) -> bool:
        return self.from_index == self.to_index


class ParameterSpec(NamedTuple):
    """A parameter a process model requires, and the class it belongs to."""

    name: str
    parameter_class: ParameterClass


class StorageSpec(NamedTuple):
    """A compartment a process model requires. level=None means single-level or externally supplied."""

    storage_type: StorageType
    level: int | None = None


class GlobalParameters(BaseModel):
    """Parameters shared by every spatial unit.

    Attributes:
        snow_roughness: Roughness length of snow surfaces [m].
    """

    model_config = ConfigDict(frozen=True)

    snow_roughness: float = Field(default=0.0002, gt=0.0)


class Options(BaseModel):
    """Global run options consumed by every process.

    Attributes:
        timestep: Step length [d]. Must be positive.
        suppress_competitive_et: When False (default), canopy processes reduce PET
            by the actual ET already recorded this step.
        global_params: Parameters of class GLOBAL.
    """

    model_config = ConfigDict(frozen=True)

    timestep: float = Field(default=1.0, gt=0.0)
    suppress_competitive_et: bool = False
    global_params: GlobalParameters = Field(default_factory=GlobalParameters)


class SurfaceProperties(BaseModel):
    """Land-use derived surface properties.

    Attributes:
        forest_coverage: Fraction of the unit covered by canopy [-].
    """

    model_config = ConfigDict(frozen=True)

    forest_coverage: float = Field(default=0.0, ge=0.0, le=1.0)


class VegetationProperties(BaseModel):
    """Vegetation properties for the current simulated time.

    Attributes:
        capacity: Canopy storage capacity per unit canopy area [mm].
        trunk_fraction: Fraction of evaporation drawn from trunk storage [-].
        stemflow_fraction: Fraction of drip diverted to stemflow [-].
        drip_proportion: Slow drain rate coefficient [1/d].
        height: Canopy height [m].
    """

    model_config = ConfigDict(frozen=True)

    capacity: float = Field(default=0.0, ge=0.0)
    trunk_fraction: float = Field(default=0.0, ge=0.0, le=1.0)
    stemflow_fraction: float = Field(default=0.0, ge=0.0, le=1.0)
    drip_proportion: float = Field(default=0.0, ge=0.0)
    height: float = Field(default=0.0, ge=0.0)


class ForcingValues(BaseModel):
    """Forcing values for the current simulated time.

    Attributes:
        pet: Potential evapotranspiration [mm/d]. May be negative (condensation); processes floor it at zero.
        wind_vel: Wind speed at measurement height [m/s].
        temp_ave: Mean air temperature [C].
        rel_humidity: Relative humidity [0-1].
        air_pres: Air pressure [kPa].
    """

    model_config = ConfigDict(frozen=True)

    pet: float = 0.0
    wind_vel: float = Field(default=2.0, ge=0.0)
    temp_ave: float = 0.0
    rel_humidity: float = Field(default=0.5, ge=0.0, le=1.0)
    air_pres: float = Field(default=101.3, gt=0.0)


class SpatialUnit(BaseModel):
    """Read-only view of a spatial unit as seen by a process.

    Attributes:
        unit_type: Discrete type tag gating which processes apply.
        surface: Surface (land-use) properties.
        vegetation: Vegetation properties.
        forcing: Forcing values for the current time step.
        name: Optional identifier used in log messages.
    """

    model_config = ConfigDict(frozen=True)

    unit_type: UnitType = UnitType.STANDARD
    surface: SurfaceProperties = Field(default_factory=SurfaceProperties)
    vegetation: VegetationProperties = Field(default_factory=VegetationProperties)
    forcing: ForcingValues = Field(default_factory=ForcingValues)
    name: str = ""

    @property
    def hosts_canopy(self) -> bool:
        """Whether this unit type can host a vegetation canopy."""
        return self.unit_type in CANOPY_UNIT_TYPES

    @model_validator(mode="after")
    def warn_on_unusual_properties(self) -> SpatialUnit:
        """Log warnings for properties outside typical ranges (not an error)."""
        for name, value, (lower, upper) in (
            ("vegetation.capacity", self.vegetation.capacity, _TYPICAL_RANGES["capacity"]),
            ("forcing.pet", self.forcing.pet, _TYPICAL_RANGES["pet"]),
            ("forcing.wind_vel", self.forcing.wind_vel, _TYPICAL_RANGES["wind_vel"]),
        ):
            if value < lower or value > upper:
                logger.warning(
                    "Spatial unit '%s' property %s=%.4f is outside typical range [%.2f, %.2f]",
                    self.name,
                    name,
                    value,
                    lower,
                    upper,
                )
        return self


# Unit property bounds for validation warnings
_TYPICAL_RANGES: dict[str, tuple[float, float]] = {
    "capacity": (0.0, 50.0),  # [mm]
    "pet": (-5.0, 30.0),  # [mm/d]
    "wind_vel": (0.0, 60.0),  # [m/s]
}
