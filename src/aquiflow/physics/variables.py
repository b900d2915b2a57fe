"""
Named groundwater variables available to user-supplied flow equations.

Each variable maps to a pure function of the per-step context, so an
equation evaluated repeatedly during one integration always sees the same
consistent snapshot of aquifer state.
"""
from enum import Enum
from typing import Callable, Dict, Optional, TYPE_CHECKING

from aquiflow.core.types import QuantityKind
from aquiflow.core.units import UnitConverter

if TYPE_CHECKING:
    from aquiflow.physics.fluxes import StepContext


class GroundwaterVariable(Enum):
    """Variables that may appear in lateral and deep flow equations"""
    HGW = "HGW"      # water table height above aquifer bottom
    HSW = "HSW"      # surface water height above aquifer bottom
    HCB = "HCB"      # channel bottom height above aquifer bottom
    HGS = "HGS"      # ground surface height above aquifer bottom
    KS = "KS"        # saturated hydraulic conductivity
    K = "K"          # unsaturated hydraulic conductivity
    THETA = "THETA"  # upper zone moisture content
    PHI = "PHI"      # soil porosity
    FI = "FI"        # surface infiltration rate
    FU = "FU"        # upper zone percolation rate
    A = "A"          # subcatchment area

    @property
    def keyword(self) -> str:
        return self.value


ValueFunction = Callable[["StepContext", UnitConverter], float]

_VALUE_FUNCTIONS: Dict[GroundwaterVariable, ValueFunction] = {
    GroundwaterVariable.HGW: lambda ctx, u: ctx.hgw * u.ucf(QuantityKind.LENGTH),
    GroundwaterVariable.HSW: lambda ctx, u: ctx.hsw * u.ucf(QuantityKind.LENGTH),
    GroundwaterVariable.HCB: lambda ctx, u: ctx.hstar * u.ucf(QuantityKind.LENGTH),
    GroundwaterVariable.HGS: lambda ctx, u: ctx.total_depth * u.ucf(QuantityKind.LENGTH),
    GroundwaterVariable.KS: lambda ctx, u: ctx.aquifer.conductivity * u.ucf(QuantityKind.RAINFALL),
    GroundwaterVariable.K: lambda ctx, u: ctx.hyd_con * u.ucf(QuantityKind.RAINFALL),
    GroundwaterVariable.THETA: lambda ctx, u: ctx.theta,
    GroundwaterVariable.PHI: lambda ctx, u: ctx.aquifer.porosity,
    GroundwaterVariable.FI: lambda ctx, u: ctx.infil * u.ucf(QuantityKind.RAINFALL),
    GroundwaterVariable.FU: lambda ctx, u: ctx.upper_perc * u.ucf(QuantityKind.RAINFALL),
    GroundwaterVariable.A: lambda ctx, u: ctx.area * u.ucf(QuantityKind.LANDAREA),
}


def resolve_name(text: str) -> Optional[GroundwaterVariable]:
    """Case-insensitive lookup of a variable keyword; None if unknown"""
    try:
        return GroundwaterVariable[text.strip().upper()]
    except KeyError:
        return None


def resolve_value(
    variable: GroundwaterVariable,
    context: "StepContext",
    units: UnitConverter
) -> float:
    """Current value of a variable, in user units"""
    return _VALUE_FUNCTIONS[variable](context, units)


def context_values(
    context: "StepContext",
    units: UnitConverter
) -> Callable[[GroundwaterVariable], float]:
    """Bind a context so an expression can look up values by variable"""
    return lambda variable: resolve_value(variable, context, units)
