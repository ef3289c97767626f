"""Wind-dependent snow sublimation rate formulas.

Pure functions used by snow and canopy-snow processes. Rates are positive for
mass loss from the snow surface [mm/d]; deposition (negative vapor gradient)
is not represented and yields zero.
"""

from __future__ import annotations

import math
from enum import Enum

from hydromovers.constants import (
    FEET_PER_METER,
    HPA_PER_KPA,
    MM_PER_INCH,
    MPH_PER_MPS,
    R_AIR,
    REFERENCE_HEIGHT,
    SEC_PER_DAY,
    TFRZ,
    VON_KARMAN,
)
from hydromovers.types import Options, SpatialUnit


class SublimationModel(str, Enum):
    """Snow sublimation sub-models."""

    MAXIMUM = "maximum"  # sublimates at PET
    ALL = "all"  # all snow sublimates within one step
    SVERDRUP = "sverdrup"  # bulk aerodynamic transfer (Sverdrup, 1946)
    KUZMIN = "kuzmin"  # empirical wind function (Kuzmin, 1972)
    CENTRAL_SIERRA = "central_sierra"  # Central Sierra Snow Laboratory (USACE, 1956)

    @property
    def is_wind_dependent(self) -> bool:
        return self not in (SublimationModel.MAXIMUM, SublimationModel.ALL)


def saturated_vapor_pressure(temp: float) -> float:
    """Saturation vapor pressure using the Tetens formula.

    Uses the ice coefficients below freezing.

    Args:
        temp: Temperature [C].

    Returns:
        Saturation vapor pressure [kPa].
    """
    if temp >= 0.0:
        return 0.6112 * math.exp(17.67 * temp / (temp + 243.5))
    return 0.6112 * math.exp(21.8745584 * temp / (temp + 265.5))


def air_density(temp: float, air_pres: float) -> float:
    """Density of dry air [kg/m3] from temperature [C] and pressure [kPa]."""
    return air_pres * 1000.0 / (R_AIR * (temp + TFRZ))


def sublimation_rate(unit: SpatialUnit, options: Options, wind_vel: float, model: SublimationModel) -> float:
    """Sublimation rate from a snow surface for a wind-dependent model.

    The snow surface is assumed saturated at min(air temperature, 0 C). Wind
    speed is taken at REFERENCE_HEIGHT; callers must adjust it beforehand.

    Args:
        unit: Spatial unit providing temperature, humidity and pressure forcings.
        options: Global options providing the snow roughness length.
        wind_vel: Wind speed at reference height [m/s].
        model: A wind-dependent sublimation model.

    Returns:
        Sublimation rate [mm/d], never negative.

    Raises:
        ValueError: If model is not wind-dependent.
    """
    forcing = unit.forcing
    surface_vp = saturated_vapor_pressure(min(forcing.temp_ave, 0.0))
    air_vp = forcing.rel_humidity * saturated_vapor_pressure(forcing.temp_ave)
    deficit = surface_vp - air_vp  # [kPa]

    if model == SublimationModel.SVERDRUP:
        z0 = options.global_params.snow_roughness
        rho = air_density(forcing.temp_ave, forcing.air_pres)
        numer = 0.623 * rho * VON_KARMAN**2 * wind_vel * deficit
        denom = forcing.air_pres * math.log(REFERENCE_HEIGHT / z0) ** 2
        rate = numer / denom * SEC_PER_DAY  # [kg/m2/d] == [mm/d]
    elif model == SublimationModel.KUZMIN:
        rate = (0.18 + 0.098 * wind_vel) * deficit * HPA_PER_KPA
    elif model == SublimationModel.CENTRAL_SIERRA:
        height_ft = REFERENCE_HEIGHT * FEET_PER_METER
        coeff = 0.0063 * (height_ft * height_ft) ** (-1.0 / 6.0)  # [in/d per mb mph]
        rate = coeff * deficit * HPA_PER_KPA * wind_vel * MPH_PER_MPS * MM_PER_INCH
    else:
        msg = f"Sublimation model {model.name} is not wind-dependent"
        raise ValueError(msg)

    return max(rate, 0.0)
