"""
Data contracts for the objects the groundwater model reads from its host:
drainage network nodes and time patterns.
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from aquiflow.core.constants import PATTERN_FACTOR_COUNTS
from aquiflow.core.types import PatternType


class Node(BaseModel):
    """Drainage network node that exchanges water with an aquifer.

    Only read by the groundwater model; the host hydraulics update it.
    """
    name: str
    invert_elev: float = Field(0.0, description="Invert elevation (ft)")
    depth: float = Field(0.0, ge=0, description="Current water depth (ft)")
    inflow: float = Field(0.0, description="Current total inflow (cfs)")
    volume: float = Field(0.0, ge=0, description="Current stored volume (ft3)")

    model_config = ConfigDict(validate_assignment=True)

    @property
    def head(self) -> float:
        """Water surface elevation (ft)"""
        return self.invert_elev + self.depth


class TimePattern(BaseModel):
    """Set of adjustment factors applied by time period"""
    name: str
    pattern_type: PatternType = PatternType.MONTHLY
    factors: List[float] = Field(default_factory=lambda: [1.0] * 12)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_factor_count(self):
        expected = PATTERN_FACTOR_COUNTS[self.pattern_type.value]
        if len(self.factors) != expected:
            raise ValueError(
                f"{self.pattern_type.value} pattern {self.name} needs "
                f"{expected} factors, got {len(self.factors)}"
            )
        return self

    @property
    def is_monthly(self) -> bool:
        return self.pattern_type is PatternType.MONTHLY

    def monthly_factor(self, month: int) -> float:
        """Factor for a calendar month (1-12)"""
        if not self.is_monthly:
            raise ValueError(f"Pattern {self.name} is not a monthly pattern")
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be in 1..12, got {month}")
        return self.factors[month - 1]
