"""Mass balance and summary statistics for groundwater runs."""

from .massbal import GroundwaterMassBalance
from .statistics import GroundwaterStatistics, GroundwaterStats

__all__ = [
    "GroundwaterMassBalance",
    "GroundwaterStatistics",
    "GroundwaterStats",
]
