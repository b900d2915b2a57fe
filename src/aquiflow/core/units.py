"""
Unit conversion between internal (ft, sec) units and user units.
"""
from dataclasses import dataclass
from typing import Optional, Union, TYPE_CHECKING

from aquiflow.core.constants import UNIT_FACTORS, FLOW_FACTORS
from aquiflow.core.types import UnitSystem, FlowUnits, QuantityKind

if TYPE_CHECKING:
    from aquiflow.core.config import AquiflowConfig


@dataclass(frozen=True)
class UnitConverter:
    """
    Looks up the factor that converts an internal quantity to user units.

    Multiply an internal value by ``ucf(kind)`` to get user units; divide
    a user value by it to get internal units.
    """
    unit_system: UnitSystem = UnitSystem.US
    flow_units: FlowUnits = FlowUnits.CFS

    def ucf(self, kind: Union[QuantityKind, str]) -> float:
        """Conversion factor for a quantity kind"""
        kind = QuantityKind(kind)
        if kind is QuantityKind.FLOW:
            return FLOW_FACTORS[self.flow_units.value]
        us_factor, si_factor = UNIT_FACTORS[kind.value]
        return us_factor if self.unit_system is UnitSystem.US else si_factor

    def to_internal(self, value: float, kind: Union[QuantityKind, str]) -> float:
        return value / self.ucf(kind)

    def to_user(self, value: float, kind: Union[QuantityKind, str]) -> float:
        return value * self.ucf(kind)

    @classmethod
    def from_config(cls, config: Optional["AquiflowConfig"] = None) -> "UnitConverter":
        """Build a converter from the unit settings of a configuration"""
        if config is None:
            from aquiflow.core.config import get_config
            config = get_config()
        return cls(
            unit_system=config.units.unit_system,
            flow_units=config.units.flow_units,
        )
