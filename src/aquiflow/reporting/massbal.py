"""
Groundwater continuity accounting.

Checks that, over a run,

    infiltration + initial storage =
        upper evap + lower evap + deep loss + lateral flow + final storage

with all terms as volumes (ft3) summed over every subcatchment.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from aquiflow.core.types import QuantityKind
from aquiflow.core.units import UnitConverter

logger = logging.getLogger(__name__)


@dataclass
class GroundwaterMassBalance:
    """Running groundwater volume totals (ft3)"""
    infil: float = 0.0
    upper_evap: float = 0.0
    lower_evap: float = 0.0
    deep_loss: float = 0.0
    lateral: float = 0.0
    initial_storage: float = 0.0
    final_storage: float = 0.0
    n_steps: int = 0

    def add_groundwater_totals(
        self,
        infil_vol: float,
        upper_evap_vol: float,
        lower_evap_vol: float,
        deep_loss_vol: float,
        lateral_vol: float
    ):
        """Add the volumes of one subcatchment's time step"""
        self.infil += infil_vol
        self.upper_evap += upper_evap_vol
        self.lower_evap += lower_evap_vol
        self.deep_loss += deep_loss_vol
        self.lateral += lateral_vol
        self.n_steps += 1

    def set_initial_storage(self, volume: float):
        self.initial_storage = volume

    def set_final_storage(self, volume: float):
        self.final_storage = volume

    @property
    def total_inflow(self) -> float:
        return self.infil + self.initial_storage

    @property
    def total_outflow(self) -> float:
        return (self.upper_evap + self.lower_evap + self.deep_loss
                + self.lateral + self.final_storage)

    def continuity_error(self) -> float:
        """Continuity error in percent of total inflow"""
        inflow = self.total_inflow
        if inflow <= 0.0:
            return 0.0
        return 100.0 * (1.0 - self.total_outflow / inflow)

    def report(self, units: Optional[UnitConverter] = None) -> Dict[str, float]:
        """Totals in user volume units plus the continuity error"""
        units = units or UnitConverter()
        factor = units.ucf(QuantityKind.VOLUME)
        error = self.continuity_error()
        if abs(error) > 1.0:
            logger.warning(f"Groundwater continuity error is {error:.2f}%")
        return {
            "initial_storage": self.initial_storage * factor,
            "infiltration": self.infil * factor,
            "upper_zone_et": self.upper_evap * factor,
            "lower_zone_et": self.lower_evap * factor,
            "deep_percolation": self.deep_loss * factor,
            "groundwater_flow": self.lateral * factor,
            "final_storage": self.final_storage * factor,
            "continuity_error_pct": error,
        }
