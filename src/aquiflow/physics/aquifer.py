"""
Aquifer soil/aquifer properties and their range checks.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from aquiflow.core.exceptions import AquiferParameterError, ErrorContext
from aquiflow.data.contracts import TimePattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Aquifer:
    """Physical properties of an aquifer, shared by all linked subcatchments.

    Rates are in ft/s, depths and elevations in ft.
    """
    name: str
    porosity: float
    wilting_point: float
    field_capacity: float
    conductivity: float  # saturated hydraulic conductivity (ft/s)
    conduct_slope: float = 0.0  # slope of log(K) vs. moisture deficit
    tension_slope: float = 0.0  # slope of soil tension vs. moisture (1/ft)
    upper_evap_frac: float = 0.0  # fraction of total evap available to upper zone
    lower_evap_depth: float = 0.0  # depth of lower zone subject to evap (ft)
    lower_loss_coeff: float = 0.0  # coeff. for deep percolation (ft/s)
    bottom_elev: float = 0.0
    water_table_elev: float = 0.0
    upper_moisture: float = 0.0  # initial upper zone moisture content
    upper_evap_pattern: Optional[TimePattern] = None

    def evap_factor(self, month: int) -> float:
        """Monthly adjustment to the upper zone evaporation fraction"""
        if self.upper_evap_pattern is None:
            return 1.0
        return self.upper_evap_pattern.monthly_factor(month)


def validate_aquifer(aquifer: Aquifer) -> List[AquiferParameterError]:
    """
    Check aquifer properties for physically valid ranges.

    Problems are logged and returned rather than raised; the caller
    decides whether they prevent a simulation from starting.
    """
    errors = []
    context = ErrorContext(aquifer=aquifer.name, operation="validate_aquifer")

    violations = []
    if aquifer.porosity <= 0.0:
        violations.append("porosity must be positive")
    if aquifer.field_capacity >= aquifer.porosity:
        violations.append("field capacity must be below porosity")
    if aquifer.wilting_point >= aquifer.field_capacity:
        violations.append("wilting point must be below field capacity")
    if aquifer.conductivity <= 0.0:
        violations.append("conductivity must be positive")
    if aquifer.conduct_slope < 0.0:
        violations.append("conductivity slope cannot be negative")
    if aquifer.tension_slope < 0.0:
        violations.append("tension slope cannot be negative")
    if aquifer.upper_evap_frac < 0.0:
        violations.append("upper evaporation fraction cannot be negative")
    if aquifer.lower_evap_depth < 0.0:
        violations.append("lower evaporation depth cannot be negative")
    if aquifer.water_table_elev < aquifer.bottom_elev:
        violations.append("water table cannot lie below the aquifer bottom")
    if (aquifer.upper_moisture > aquifer.porosity
            or aquifer.upper_moisture < aquifer.wilting_point):
        violations.append("upper moisture must lie between wilting point and porosity")

    if violations:
        errors.append(AquiferParameterError(
            "; ".join(violations),
            ErrorContext(aquifer=aquifer.name, operation="validate_aquifer",
                         details={"violations": violations})
        ))

    pattern = aquifer.upper_evap_pattern
    if pattern is not None and not pattern.is_monthly:
        errors.append(AquiferParameterError(
            f"evaporation pattern {pattern.name} is not a monthly pattern",
            context
        ))

    for error in errors:
        logger.error(str(error))

    return errors
