"""
Type definitions and type aliases for the aquiflow package.
Provides strong typing throughout the codebase.
"""
from enum import Enum
from typing import Protocol, runtime_checkable
from typing_extensions import TypeAlias
import numpy as np


# Type aliases for clarity
SubcatchmentID: TypeAlias = str
ElevationFt: TypeAlias = float
DepthFt: TypeAlias = float
RateFtPerSec: TypeAlias = float
VolumeFt3: TypeAlias = float
MoistureContent: TypeAlias = float  # dimensionless volumetric fraction

# Two-element [theta, lower_depth] vector handed to the ODE stepper
StateVector: TypeAlias = np.ndarray


class UnitSystem(str, Enum):
    """Unit system used for user-facing values"""
    US = "US"
    SI = "SI"


class FlowUnits(str, Enum):
    """Flow units used for user-facing flow rates"""
    CFS = "CFS"
    GPM = "GPM"
    MGD = "MGD"
    CMS = "CMS"
    LPS = "LPS"
    MLD = "MLD"


class QuantityKind(str, Enum):
    """Kinds of physical quantity with a unit conversion factor"""
    RAINFALL = "RAINFALL"
    RAINDEPTH = "RAINDEPTH"
    EVAPRATE = "EVAPRATE"
    LENGTH = "LENGTH"
    LANDAREA = "LANDAREA"
    VOLUME = "VOLUME"
    MASS = "MASS"
    GWFLOW = "GWFLOW"
    FLOW = "FLOW"


class PatternType(str, Enum):
    """Time pattern types"""
    MONTHLY = "MONTHLY"
    DAILY = "DAILY"
    HOURLY = "HOURLY"
    WEEKEND = "WEEKEND"


class FlowKind(str, Enum):
    """Which groundwater outflow a user equation applies to"""
    LATERAL = "LATERAL"
    DEEP = "DEEP"


# Protocol definitions for the collectors fed by the step orchestrator
@runtime_checkable
class MassBalanceSink(Protocol):
    """Write-only accumulator of groundwater volumes (ft3)"""

    def add_groundwater_totals(
        self,
        infil_vol: float,
        upper_evap_vol: float,
        lower_evap_vol: float,
        deep_loss_vol: float,
        lateral_vol: float,
    ) -> None:
        ...


@runtime_checkable
class StatisticsSink(Protocol):
    """Write-only collector of per-subcatchment groundwater rates"""

    def record_groundwater_stats(
        self,
        subcatchment_id: SubcatchmentID,
        infil_rate: float,
        evap_loss_rate: float,
        lateral_flow_rate: float,
        deep_loss_rate: float,
        theta: float,
        water_table_elev: float,
        tstep: float,
    ) -> None:
        ...
