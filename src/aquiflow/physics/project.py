"""
Registry of the objects making up a groundwater model run.
"""
import logging
from typing import Dict, List

from aquiflow.core.exceptions import AquiflowError, ErrorContext, UnknownNameError
from aquiflow.data.contracts import Node, TimePattern
from aquiflow.physics.aquifer import Aquifer, validate_aquifer
from aquiflow.physics.groundwater import Subcatchment, validate_linkage

logger = logging.getLogger(__name__)


class Project:
    """Named aquifers, nodes, patterns and subcatchments"""

    def __init__(self):
        self.aquifers: Dict[str, Aquifer] = {}
        self.nodes: Dict[str, Node] = {}
        self.patterns: Dict[str, TimePattern] = {}
        self.subcatchments: Dict[str, Subcatchment] = {}

    def add_aquifer(self, aquifer: Aquifer) -> Aquifer:
        self.aquifers[aquifer.name] = aquifer
        return aquifer

    def add_node(self, node: Node) -> Node:
        self.nodes[node.name] = node
        return node

    def add_pattern(self, pattern: TimePattern) -> TimePattern:
        self.patterns[pattern.name] = pattern
        return pattern

    def add_subcatchment(self, subcatchment: Subcatchment) -> Subcatchment:
        self.subcatchments[subcatchment.name] = subcatchment
        return subcatchment

    @staticmethod
    def _lookup(table: Dict, name: str, kind: str):
        try:
            return table[name]
        except KeyError:
            raise UnknownNameError(
                f"undefined {kind} '{name}'",
                ErrorContext(operation="lookup", token=name, details={"kind": kind})
            )

    def get_aquifer(self, name: str) -> Aquifer:
        return self._lookup(self.aquifers, name, "aquifer")

    def get_node(self, name: str) -> Node:
        return self._lookup(self.nodes, name, "node")

    def get_pattern(self, name: str) -> TimePattern:
        return self._lookup(self.patterns, name, "time pattern")

    def get_subcatchment(self, name: str) -> Subcatchment:
        return self._lookup(self.subcatchments, name, "subcatchment")

    def validate(self) -> List[AquiflowError]:
        """Validate every aquifer and groundwater linkage.

        Also fills groundwater parameters left unspecified from their
        aquifer. Returns all problems found; nothing is raised.
        """
        errors: List[AquiflowError] = []
        for aquifer in self.aquifers.values():
            errors.extend(validate_aquifer(aquifer))
        for subcatchment in self.subcatchments.values():
            errors.extend(validate_linkage(subcatchment))

        if errors:
            logger.warning(f"Project validation found {len(errors)} error(s)")
        return errors

    def clear_flow_expressions(self):
        for subcatchment in self.subcatchments.values():
            subcatchment.flow_expressions.clear()
