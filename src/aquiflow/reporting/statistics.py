"""
Per-subcatchment groundwater summary statistics.
"""
from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd

from aquiflow.core.types import QuantityKind, SubcatchmentID
from aquiflow.core.units import UnitConverter


@dataclass
class GroundwaterStats:
    """Time-integrated rates and state for one subcatchment"""
    infil: float = 0.0  # ft
    evap: float = 0.0
    lateral: float = 0.0
    deep_flow: float = 0.0
    theta_time: float = 0.0  # theta * s
    water_table_time: float = 0.0  # ft * s
    max_lateral: float = 0.0  # signed rate of largest magnitude (ft/s)
    final_theta: float = 0.0
    final_water_table: float = 0.0
    duration: float = 0.0  # s

    @property
    def avg_theta(self) -> float:
        return self.theta_time / self.duration if self.duration > 0.0 else 0.0

    @property
    def avg_water_table(self) -> float:
        return self.water_table_time / self.duration if self.duration > 0.0 else 0.0


class GroundwaterStatistics:
    """Collects groundwater rates reported after each time step"""

    def __init__(self):
        self.stats: Dict[SubcatchmentID, GroundwaterStats] = {}

    def record_groundwater_stats(
        self,
        subcatchment_id: SubcatchmentID,
        infil_rate: float,
        evap_loss_rate: float,
        lateral_flow_rate: float,
        deep_loss_rate: float,
        theta: float,
        water_table_elev: float,
        tstep: float
    ):
        stats = self.stats.setdefault(subcatchment_id, GroundwaterStats())
        stats.infil += infil_rate * tstep
        stats.evap += evap_loss_rate * tstep
        stats.lateral += lateral_flow_rate * tstep
        stats.deep_flow += deep_loss_rate * tstep
        stats.theta_time += theta * tstep
        stats.water_table_time += water_table_elev * tstep
        stats.duration += tstep
        stats.final_theta = theta
        stats.final_water_table = water_table_elev
        if abs(lateral_flow_rate) > abs(stats.max_lateral):
            stats.max_lateral = lateral_flow_rate

    def get(self, subcatchment_id: SubcatchmentID) -> Optional[GroundwaterStats]:
        return self.stats.get(subcatchment_id)

    def to_dataframe(self, units: Optional[UnitConverter] = None) -> pd.DataFrame:
        """
        Summary table indexed by subcatchment.

        Depths are in user depth units (in or mm), the peak lateral flow in
        user flow-per-area units, elevations in user length units.
        """
        units = units or UnitConverter()
        depth = units.ucf(QuantityKind.RAINDEPTH)
        length = units.ucf(QuantityKind.LENGTH)
        gwflow = units.ucf(QuantityKind.GWFLOW)

        rows = []
        for name, stats in self.stats.items():
            rows.append({
                "subcatchment": name,
                "total_infiltration": stats.infil * depth,
                "total_evaporation": stats.evap * depth,
                "total_lateral_outflow": stats.lateral * depth,
                "total_deep_percolation": stats.deep_flow * depth,
                "max_lateral_flow": stats.max_lateral * gwflow,
                "avg_upper_moisture": stats.avg_theta,
                "avg_water_table": stats.avg_water_table * length,
                "final_upper_moisture": stats.final_theta,
                "final_water_table": stats.final_water_table * length,
            })

        columns = [
            "subcatchment", "total_infiltration", "total_evaporation",
            "total_lateral_outflow", "total_deep_percolation", "max_lateral_flow",
            "avg_upper_moisture", "avg_water_table", "final_upper_moisture",
            "final_water_table",
        ]
        return pd.DataFrame(rows, columns=columns).set_index("subcatchment")
