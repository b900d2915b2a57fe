"""
Numerical constants and unit conversion tables.
"""
from typing import Dict, Final, Tuple

# Numerical stability
# Relative tolerance handed to the ODE stepper for the moisture/depth system
ODE_TOLERANCE: Final[float] = 1.0e-4
# Absolute tolerance floor for the same system
ODE_ABS_TOLERANCE: Final[float] = 1.0e-8
# Offset keeping theta below porosity and the water table below the surface (ft)
SATURATION_TOLERANCE: Final[float] = 1.0e-3

# Months per year, factors in a monthly pattern
MONTHS_PER_YEAR: Final[int] = 12

# Number of factors required by each time pattern type
PATTERN_FACTOR_COUNTS: Final[Dict[str, int]] = {
    "MONTHLY": 12,
    "DAILY": 7,
    "HOURLY": 24,
    "WEEKEND": 24,
}

# Conversion factors from internal units to user units, as (US, SI) pairs.
# Internal units are ft, ft/s, ft2, ft3 and mg.
UNIT_FACTORS: Final[Dict[str, Tuple[float, float]]] = {
    "RAINFALL": (43200.0, 1097280.0),      # in/hr, mm/hr per ft/s
    "RAINDEPTH": (12.0, 304.8),            # in, mm per ft
    "EVAPRATE": (1036800.0, 26334720.0),   # in/day, mm/day per ft/s
    "LENGTH": (1.0, 0.3048),               # ft, m per ft
    "LANDAREA": (2.2956e-5, 0.92903e-5),   # ac, ha per ft2
    "VOLUME": (1.0, 0.02832),              # ft3, m3 per ft3
    "MASS": (2.203e-6, 1.0e-6),            # lb, kg per mg
    "GWFLOW": (43560.0, 3048.0),           # cfs/ac, cms/ha per ft/s
}

# Conversion factors from cfs to each flow unit
FLOW_FACTORS: Final[Dict[str, float]] = {
    "CFS": 1.0,
    "GPM": 448.831,
    "MGD": 0.64632,
    "CMS": 0.02832,
    "LPS": 28.317,
    "MLD": 2.4466,
}
