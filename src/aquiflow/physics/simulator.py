"""
Time stepping of subcatchment groundwater.

For each subcatchment with groundwater the simulator integrates upper zone
moisture and lower zone depth over a runoff time step, keeps the result
within physical bounds, and reports the committed fluxes to the mass
balance and statistics accumulators.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from aquiflow.core.config import AquiflowConfig, SolverConfig, get_config
from aquiflow.core.constants import SATURATION_TOLERANCE
from aquiflow.core.exceptions import AquiflowError
from aquiflow.core.types import (
    FlowKind,
    MassBalanceSink,
    StatisticsSink,
    SubcatchmentID,
)
from aquiflow.core.units import UnitConverter
from aquiflow.physics.fluxes import (
    GroundwaterFluxes,
    StepContext,
    compute_fluxes,
    derivatives,
)
from aquiflow.physics.groundwater import Subcatchment, get_volume, init_state
from aquiflow.physics.ode import integrate
from aquiflow.physics.project import Project


@dataclass
class ClimateState:
    """Climate conditions for the current runoff step"""
    evap_rate: float = 0.0  # potential evaporation (ft/s)
    month: int = 1


@dataclass
class GroundwaterStateRecord:
    """Groundwater state as saved to and restored from a hotstart record"""
    theta: float
    water_table_elev: float
    lateral_flow: float
    max_infil_vol: Optional[float] = None


class GroundwaterSimulator:
    """
    Steps the two-zone groundwater model of each subcatchment in a project.

    Example:
        >>> sim = GroundwaterSimulator(project)
        >>> sim.initialize()
        >>> sim.climate.evap_rate = 1.0e-7
        >>> fluxes = sim.step("S1", 0.0, 0.0, 300.0)
    """

    def __init__(
        self,
        project: Project,
        units: Optional[UnitConverter] = None,
        solver: Optional[SolverConfig] = None,
        mass_balance: Optional[MassBalanceSink] = None,
        statistics: Optional[StatisticsSink] = None,
        config: Optional[AquiflowConfig] = None
    ):
        config = config or get_config()
        self.project = project
        self.units = units or UnitConverter.from_config(config)
        self.solver = solver or config.solver
        self.mass_balance = mass_balance
        self.statistics = statistics
        self.climate = ClimateState()
        self._setup_logging()

    def _setup_logging(self):
        """Configure simulator-specific logging"""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def initialize(self) -> List[AquiflowError]:
        """Validate the project and set every groundwater state to its initial value"""
        errors = self.project.validate()
        for subcatchment in self.project.subcatchments.values():
            init_state(subcatchment)
        self.logger.info(
            f"Initialized groundwater for {self._groundwater_count()} subcatchment(s)"
        )
        return errors

    def _groundwater_count(self) -> int:
        return sum(1 for s in self.project.subcatchments.values() if s.groundwater)

    def step(
        self,
        subcatchment: Union[SubcatchmentID, Subcatchment],
        evap_vol: float,
        infil_vol: float,
        tstep: float
    ) -> Optional[GroundwaterFluxes]:
        """
        Advance a subcatchment's groundwater by one time step.

        Args:
            subcatchment: Name of the subcatchment to update, or the subcatchment
            evap_vol: Evaporation already taken from the pervious surface (ft3)
            infil_vol: Surface infiltration entering the upper zone (ft3)
            tstep: Time step (s)

        Returns:
            Committed flux rates, or None when the subcatchment has no
            active groundwater this step
        """
        if isinstance(subcatchment, str):
            subcatchment = self.project.get_subcatchment(subcatchment)
        gw = subcatchment.groundwater
        if gw is None:
            return None
        if subcatchment.frac_perv <= 0.0 or subcatchment.area <= 0.0:
            self.logger.debug(f"Skipping {subcatchment.name}: no pervious area")
            return None
        if tstep <= 0.0:
            return None
        if gw.total_depth <= 0.0:
            self.logger.debug(f"Skipping {subcatchment.name}: zero aquifer depth")
            return None

        ctx = self._build_context(subcatchment, evap_vol, infil_vol, tstep)

        x = integrate(
            np.array([gw.theta, gw.lower_depth]),
            0.0,
            tstep,
            lambda t, y: derivatives(ctx, t, y),
            rtol=self.solver.rtol,
            max_step=tstep,
            atol=self.solver.atol,
            method=self.solver.method,
        )
        theta, lower_depth = self._clamp_state(ctx, float(x[0]), float(x[1]))

        gw.theta = theta
        gw.lower_depth = lower_depth
        fluxes = compute_fluxes(ctx, theta, lower_depth)
        gw.old_flow = gw.new_flow
        gw.new_flow = fluxes.lateral
        gw.evap_loss = fluxes.evap_loss
        gw.max_infil_vol = ((ctx.total_depth - lower_depth)
                            * (gw.aquifer.porosity - theta) / subcatchment.frac_perv)

        self._update_mass_balance(subcatchment, fluxes, tstep)
        if self.statistics is not None:
            self.statistics.record_groundwater_stats(
                subcatchment.name,
                fluxes.infil,
                gw.evap_loss,
                fluxes.lateral,
                fluxes.deep_loss,
                gw.theta,
                gw.current_water_table,
                tstep,
            )
        return fluxes

    def _build_context(
        self,
        subcatchment: Subcatchment,
        evap_vol: float,
        infil_vol: float,
        tstep: float
    ) -> StepContext:
        gw = subcatchment.groundwater
        aquifer = gw.aquifer
        node = gw.node
        area = subcatchment.area

        # volumes become rates over the whole subcatchment area
        infil = infil_vol / area / tstep
        evap = evap_vol / area / tstep

        # groundwater evaporation only acts through the pervious surface
        max_evap = self.climate.evap_rate * subcatchment.frac_perv
        avail_evap = max(max_evap - evap, 0.0)

        total_depth = gw.total_depth
        if gw.node_elev is not None:
            hstar = gw.node_elev - gw.bottom_elev
        else:
            hstar = node.invert_elev - gw.bottom_elev

        surface_depth = gw.fixed_depth if gw.fixed_depth > 0.0 else node.depth
        hsw = surface_depth + node.invert_elev - gw.bottom_elev

        upper_depth = total_depth - gw.lower_depth
        max_upper_perc = max(0.0, upper_depth * (gw.theta - aquifer.field_capacity)) / tstep
        max_gw_flow_pos = gw.lower_depth * aquifer.porosity / tstep
        node_flow = (node.inflow + node.volume / tstep) / area
        max_gw_flow_neg = -min(upper_depth * (aquifer.porosity - gw.theta) / tstep, node_flow)

        bindings = subcatchment.flow_expressions
        return StepContext(
            groundwater=gw,
            units=self.units,
            area=area,
            tstep=tstep,
            infil=infil,
            max_evap=max_evap,
            avail_evap=avail_evap,
            upper_evap_frac=aquifer.upper_evap_frac * aquifer.evap_factor(self.climate.month),
            total_depth=total_depth,
            hstar=hstar,
            hsw=hsw,
            max_upper_perc=max_upper_perc,
            max_gw_flow_pos=max_gw_flow_pos,
            max_gw_flow_neg=max_gw_flow_neg,
            lateral_expr=bindings.get(FlowKind.LATERAL),
            deep_expr=bindings.get(FlowKind.DEEP),
        )

    def _clamp_state(self, ctx: StepContext, theta: float, lower_depth: float):
        """Keep the integrated state inside physical bounds"""
        aquifer = ctx.aquifer
        theta = max(theta, aquifer.wilting_point)
        if theta >= aquifer.porosity:
            self.logger.debug("Upper zone saturated; merging zones")
            theta = aquifer.porosity - SATURATION_TOLERANCE
            lower_depth = ctx.total_depth - SATURATION_TOLERANCE
        lower_depth = max(lower_depth, 0.0)
        if lower_depth >= ctx.total_depth:
            lower_depth = ctx.total_depth - SATURATION_TOLERANCE
        return theta, lower_depth

    def _update_mass_balance(self, subcatchment: Subcatchment, fluxes: GroundwaterFluxes, tstep: float):
        if self.mass_balance is None:
            return
        gw = subcatchment.groundwater
        ft2sec = subcatchment.area * tstep
        self.mass_balance.add_groundwater_totals(
            fluxes.infil * ft2sec,
            fluxes.upper_evap * ft2sec,
            fluxes.lower_evap * ft2sec,
            fluxes.deep_loss * ft2sec,
            0.5 * (gw.old_flow + gw.new_flow) * ft2sec,
        )

    def read_state(self, name: SubcatchmentID) -> Optional[GroundwaterStateRecord]:
        """Current state of a subcatchment's groundwater, or None without one"""
        gw = self.project.get_subcatchment(name).groundwater
        if gw is None:
            return None
        return GroundwaterStateRecord(
            theta=gw.theta,
            water_table_elev=gw.current_water_table,
            lateral_flow=gw.new_flow,
            max_infil_vol=gw.max_infil_vol,
        )

    def write_state(self, name: SubcatchmentID, record: GroundwaterStateRecord):
        """Restore a saved state; a max_infil_vol of None keeps the current value"""
        gw = self.project.get_subcatchment(name).groundwater
        if gw is None:
            return
        gw.theta = record.theta
        gw.lower_depth = record.water_table_elev - gw.bottom_elev
        gw.old_flow = record.lateral_flow
        gw.new_flow = record.lateral_flow
        if record.max_infil_vol is not None:
            gw.max_infil_vol = record.max_infil_vol

    def total_stored_volume(self, name: SubcatchmentID) -> float:
        """Water stored in both zones as a depth over the subcatchment (ft)"""
        return get_volume(self.project.get_subcatchment(name))

    def total_storage(self) -> float:
        """Water stored in all aquifers of the project (ft3)"""
        return sum(
            get_volume(s) * s.area for s in self.project.subcatchments.values()
        )

