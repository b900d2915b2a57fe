"""
Groundwater linkage between a subcatchment, its aquifer and a drainage node.

A subcatchment's groundwater is split into an unsaturated upper zone
(moisture content theta) sitting on a saturated lower zone (depth
``lower_depth`` above the aquifer bottom):

    surf_elev  ---------------------------   ground surface
                 upper zone (theta)
    water tbl  ---------------------------   bottom_elev + lower_depth
                 lower zone (saturated)
    bottom     ---------------------------   aquifer bottom
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from aquiflow.core.constants import SATURATION_TOLERANCE
from aquiflow.core.exceptions import ErrorContext, GroundElevationError
from aquiflow.core.types import DepthFt, ElevationFt
from aquiflow.data.contracts import Node
from aquiflow.physics.aquifer import Aquifer
from aquiflow.physics.expressions import FlowExpressionBindings

logger = logging.getLogger(__name__)


@dataclass
class Groundwater:
    """Groundwater flow parameters and state for one subcatchment.

    Lateral flow to the node follows
        q = a1*(Hgw - Hcb)^b1 - a2*(Hsw - Hcb)^b2 + a3*Hgw*Hsw
    in user flow-per-area units.
    """
    aquifer: Aquifer
    node: Node
    surf_elev: float  # ground surface elevation (ft)
    a1: float = 0.0
    b1: float = 0.0
    a2: float = 0.0
    b2: float = 0.0
    a3: float = 0.0
    fixed_depth: float = 0.0  # fixed surface water depth (ft), 0 if unused
    node_elev: Optional[float] = None  # override of node invert for flow threshold
    bottom_elev: Optional[float] = None
    water_table_elev: Optional[float] = None
    upper_moisture: Optional[float] = None

    # state
    theta: float = 0.0
    lower_depth: float = 0.0
    old_flow: float = 0.0  # lateral flow at start of step (ft/s)
    new_flow: float = 0.0  # lateral flow at end of step (ft/s)
    evap_loss: float = 0.0
    max_infil_vol: float = 0.0  # infiltration the upper zone can accept (ft)

    @property
    def total_depth(self) -> DepthFt:
        return self.surf_elev - (self.bottom_elev or 0.0)

    @property
    def upper_depth(self) -> DepthFt:
        return self.total_depth - self.lower_depth

    @property
    def current_water_table(self) -> ElevationFt:
        return (self.bottom_elev or 0.0) + self.lower_depth


@dataclass
class Subcatchment:
    """Land area draining to a node, optionally underlain by groundwater"""
    name: str
    area: float  # ft2
    frac_perv: float = 1.0
    groundwater: Optional[Groundwater] = None
    flow_expressions: FlowExpressionBindings = field(default_factory=FlowExpressionBindings)


def validate_linkage(subcatchment: Subcatchment) -> List[GroundElevationError]:
    """
    Fill unspecified groundwater parameters from the aquifer and check the
    ground surface lies at or above the water table.
    """
    gw = subcatchment.groundwater
    if gw is None:
        return []

    aquifer = gw.aquifer
    if gw.bottom_elev is None:
        gw.bottom_elev = aquifer.bottom_elev
    if gw.water_table_elev is None:
        gw.water_table_elev = aquifer.water_table_elev
    if gw.upper_moisture is None:
        gw.upper_moisture = aquifer.upper_moisture

    errors = []
    if gw.surf_elev < gw.water_table_elev:
        error = GroundElevationError(
            f"ground elevation {gw.surf_elev} is below water table "
            f"elevation {gw.water_table_elev}",
            ErrorContext(subcatchment=subcatchment.name, aquifer=aquifer.name,
                         operation="validate_linkage")
        )
        logger.error(str(error))
        errors.append(error)
    return errors


def init_state(subcatchment: Subcatchment):
    """Set the initial groundwater state; linkage must be validated first."""
    gw = subcatchment.groundwater
    if gw is None:
        return

    porosity = gw.aquifer.porosity

    gw.theta = gw.upper_moisture
    if gw.theta >= porosity:
        gw.theta = porosity - SATURATION_TOLERANCE

    gw.lower_depth = gw.water_table_elev - gw.bottom_elev
    if gw.lower_depth >= gw.total_depth:
        gw.lower_depth = gw.total_depth - SATURATION_TOLERANCE

    gw.old_flow = 0.0
    gw.new_flow = 0.0
    gw.evap_loss = 0.0

    if subcatchment.frac_perv > 0.0:
        gw.max_infil_vol = ((gw.surf_elev - gw.water_table_elev)
                            * (porosity - gw.theta) / subcatchment.frac_perv)
    else:
        gw.max_infil_vol = 0.0

    logger.debug(
        f"Initialized groundwater for {subcatchment.name}: "
        f"theta={gw.theta:.4f}, lower_depth={gw.lower_depth:.3f} ft"
    )


def get_volume(subcatchment: Subcatchment) -> DepthFt:
    """Water stored in both zones, as a depth over the subcatchment (ft)"""
    gw = subcatchment.groundwater
    if gw is None:
        return 0.0
    return gw.upper_depth * gw.theta + gw.lower_depth * gw.aquifer.porosity
