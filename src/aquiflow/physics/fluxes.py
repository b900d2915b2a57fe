"""
Water fluxes into and out of the upper and lower groundwater zones.

All rates are in ft/s over the whole subcatchment area. The flux engine is
a set of pure functions over a per-step ``StepContext``: the context holds
the quantities fixed for the step (limits, heads, climate) plus a few
scratch values refreshed on every evaluation so that flow equations can
read them through the named variables.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from aquiflow.core.types import QuantityKind
from aquiflow.core.units import UnitConverter
from aquiflow.physics.aquifer import Aquifer
from aquiflow.physics.expressions import FlowExpression
from aquiflow.physics.groundwater import Groundwater
from aquiflow.physics.variables import context_values

logger = logging.getLogger(__name__)

THETA = 0
LOWER_DEPTH = 1

# Avoid exp overflow in float64
_LOG_MAX_FLOAT64 = 709.0


@dataclass
class GroundwaterFluxes:
    """Flux rates (ft/s) at one state of the upper and lower zones"""
    infil: float = 0.0
    upper_evap: float = 0.0
    lower_evap: float = 0.0
    upper_perc: float = 0.0
    deep_loss: float = 0.0
    lateral: float = 0.0

    @property
    def evap_loss(self) -> float:
        return self.upper_evap + self.lower_evap

    @property
    def upper_net(self) -> float:
        return self.infil - self.upper_evap - self.upper_perc

    @property
    def lower_net(self) -> float:
        return self.upper_perc - self.deep_loss - self.lower_evap - self.lateral


@dataclass
class StepContext:
    """Snapshot of everything the flux engine needs for one step"""
    groundwater: Groundwater
    units: UnitConverter
    area: float
    tstep: float
    infil: float
    max_evap: float
    avail_evap: float
    upper_evap_frac: float  # monthly-adjusted
    total_depth: float
    hstar: float  # flow threshold height above aquifer bottom
    hsw: float  # surface water height above aquifer bottom
    max_upper_perc: float
    max_gw_flow_pos: float
    max_gw_flow_neg: float
    lateral_expr: Optional[FlowExpression] = None
    deep_expr: Optional[FlowExpression] = None

    # refreshed by compute_fluxes
    hgw: float = 0.0
    theta: float = 0.0
    hyd_con: float = 0.0
    upper_perc: float = 0.0

    @property
    def aquifer(self) -> Aquifer:
        return self.groundwater.aquifer


def evap_rates(ctx: StepContext, theta: float, upper_depth: float):
    """Evapotranspiration (upper, lower) drawn from the two zones"""
    if ctx.infil > 0.0:
        return 0.0, 0.0

    aquifer = ctx.aquifer
    upper_frac = ctx.upper_evap_frac

    upper_evap = 0.0
    if theta > aquifer.wilting_point:
        upper_evap = min(upper_frac * ctx.max_evap, ctx.avail_evap)

    lower_evap = 0.0
    if aquifer.lower_evap_depth > 0.0:
        # part of the evaporation depth reaching into the saturated zone
        lower_frac = (aquifer.lower_evap_depth - upper_depth) / aquifer.lower_evap_depth
        lower_frac = min(max(lower_frac, 0.0), 1.0)
        lower_evap = lower_frac * (1.0 - upper_frac) * ctx.max_evap
        lower_evap = max(min(lower_evap, ctx.avail_evap - upper_evap), 0.0)

    return upper_evap, lower_evap


def upper_percolation(ctx: StepContext, theta: float, upper_depth: float) -> float:
    """Percolation from the upper to the lower zone, before limiting"""
    aquifer = ctx.aquifer
    exponent = min((theta - aquifer.porosity) * aquifer.conduct_slope, _LOG_MAX_FLOAT64)
    ctx.hyd_con = aquifer.conductivity * math.exp(exponent)

    if upper_depth <= 0.0 or theta <= aquifer.field_capacity or ctx.hyd_con <= 0.0:
        return 0.0

    dhdz = 1.0 + aquifer.tension_slope * 2.0 * (theta - aquifer.field_capacity) / upper_depth
    return ctx.hyd_con * dhdz


def lateral_flow(ctx: StepContext, lower_depth: float) -> float:
    """Built-in lateral flow from the lower zone to the node"""
    if lower_depth <= ctx.hstar:
        return 0.0

    gw = ctx.groundwater
    ucf_length = ctx.units.ucf(QuantityKind.LENGTH)

    if gw.b1 == 0.0:
        t1 = gw.a1
    else:
        t1 = gw.a1 * ((lower_depth - ctx.hstar) * ucf_length) ** gw.b1

    if gw.b2 == 0.0:
        t2 = gw.a2
    elif ctx.hsw > ctx.hstar:
        t2 = gw.a2 * ((ctx.hsw - ctx.hstar) * ucf_length) ** gw.b2
    else:
        t2 = 0.0

    t3 = gw.a3 * lower_depth * ctx.hsw * ucf_length * ucf_length

    q = (t1 - t2 + t3) / ctx.units.ucf(QuantityKind.GWFLOW)
    if q < 0.0 and gw.a3 != 0.0:
        q = 0.0
    return q


def compute_fluxes(ctx: StepContext, theta: float, lower_depth: float) -> GroundwaterFluxes:
    """All zone fluxes at the given state, honouring the per-step limits"""
    # plain floats overflow to inf quietly; the per-step limits bound them
    theta = float(theta)
    lower_depth = min(max(float(lower_depth), 0.0), ctx.total_depth)
    upper_depth = ctx.total_depth - lower_depth

    ctx.hgw = lower_depth
    ctx.theta = theta

    upper_evap, lower_evap = evap_rates(ctx, theta, upper_depth)

    upper_perc = min(upper_percolation(ctx, theta, upper_depth), ctx.max_upper_perc)
    ctx.upper_perc = upper_perc

    values = context_values(ctx, ctx.units)

    if ctx.deep_expr is not None:
        deep_loss = ctx.deep_expr.evaluate(values) / ctx.units.ucf(QuantityKind.RAINFALL)
    else:
        deep_loss = ctx.aquifer.lower_loss_coeff * lower_depth / ctx.total_depth
    deep_loss = min(deep_loss, lower_depth / ctx.tstep)

    lateral = lateral_flow(ctx, lower_depth)
    if ctx.lateral_expr is not None:
        lateral += ctx.lateral_expr.evaluate(values) / ctx.units.ucf(QuantityKind.GWFLOW)
    if lateral >= 0.0:
        lateral = min(lateral, ctx.max_gw_flow_pos)
    else:
        lateral = max(lateral, ctx.max_gw_flow_neg)

    return GroundwaterFluxes(
        infil=ctx.infil,
        upper_evap=upper_evap,
        lower_evap=lower_evap,
        upper_perc=upper_perc,
        deep_loss=deep_loss,
        lateral=lateral,
    )


def derivatives(ctx: StepContext, t: float, x: np.ndarray) -> np.ndarray:
    """d(theta)/dt and d(lower_depth)/dt at state x"""
    theta = x[THETA]
    lower_depth = x[LOWER_DEPTH]
    fluxes = compute_fluxes(ctx, theta, lower_depth)

    dxdt = np.zeros(2)

    denom = ctx.total_depth - lower_depth
    if denom > 0.0:
        dxdt[THETA] = fluxes.upper_net / denom

    denom = ctx.aquifer.porosity - theta
    if denom > 0.0:
        dxdt[LOWER_DEPTH] = fluxes.lower_net / denom

    return dxdt
