"""Physics modules for two-zone groundwater exchange."""
from aquiflow.physics.aquifer import Aquifer, validate_aquifer
from aquiflow.physics.groundwater import (
    Groundwater,
    Subcatchment,
    validate_linkage,
    init_state,
    get_volume,
)
from aquiflow.physics.expressions import FlowExpression, FlowExpressionBindings
from aquiflow.physics.variables import GroundwaterVariable, resolve_name, resolve_value
from aquiflow.physics.fluxes import GroundwaterFluxes, StepContext, compute_fluxes
from aquiflow.physics.project import Project
from aquiflow.physics.simulator import (
    ClimateState,
    GroundwaterSimulator,
    GroundwaterStateRecord,
)

__all__ = [
    "Aquifer",
    "validate_aquifer",
    # Linkage and state
    "Groundwater",
    "Subcatchment",
    "validate_linkage",
    "init_state",
    "get_volume",
    # Flow equations
    "FlowExpression",
    "FlowExpressionBindings",
    "GroundwaterVariable",
    "resolve_name",
    "resolve_value",
    # Flux engine
    "GroundwaterFluxes",
    "StepContext",
    "compute_fluxes",
    "Project",
    "ClimateState",
    "GroundwaterSimulator",
    "GroundwaterStateRecord",
]
