"""Physical constants used by process functions."""

VON_KARMAN: float = 0.41  # [-]
R_AIR: float = 287.0  # Gas constant of dry air [J/(kg K)]
TFRZ: float = 273.15  # Freezing point [K]
SEC_PER_DAY: float = 86400.0
MM_PER_INCH: float = 25.4
FEET_PER_METER: float = 3.28084
MPH_PER_MPS: float = 2.23694
HPA_PER_KPA: float = 10.0

# Measurement height assumed for wind and humidity forcings [m]
REFERENCE_HEIGHT: float = 2.0
