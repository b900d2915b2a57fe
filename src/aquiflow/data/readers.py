"""
Readers for the groundwater sections of a model input file.

Three record types are understood, each one whitespace-delimited line:

    [AQUIFERS]
    name porosity wiltingPoint fieldCapacity conductivity conductSlope
         tensionSlope upperEvapFrac lowerEvapDepth lowerLossCoeff
         bottomElev waterTableElev upperMoisture (evapPattern)

    [GROUNDWATER]
    subcatch aquifer node surfElev a1 b1 a2 b2 a3 fixedDepth
         (nodeElev bottomElev waterTableElev upperMoisture)

    [GWF]
    subcatch LATERAL|DEEP expression

Values are given in user units and stored in internal units.
"""
import logging
from typing import Iterable, List, Optional

from aquiflow.core.exceptions import (
    ErrorContext,
    InputError,
    ItemCountError,
    KeywordError,
    NumberFormatError,
)
from aquiflow.core.types import FlowKind, QuantityKind
from aquiflow.core.units import UnitConverter
from aquiflow.physics.aquifer import Aquifer
from aquiflow.physics.expressions import FlowExpression
from aquiflow.physics.groundwater import Groundwater
from aquiflow.physics.project import Project

logger = logging.getLogger(__name__)

AQUIFER_TOKENS = 13
GROUNDWATER_TOKENS = 10
SKIP_TOKEN = "*"


def tokenize(line: str) -> List[str]:
    """Split a line into tokens, dropping any ';' comment"""
    return line.split(";", 1)[0].split()


def _number(token: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise NumberFormatError(
            f"invalid number '{token}'",
            ErrorContext(operation="read_number", token=token)
        )


def _require(tokens: List[str], count: int, record: str):
    if len(tokens) < count:
        raise ItemCountError(
            f"{record} record needs at least {count} items, got {len(tokens)}",
            ErrorContext(operation=f"read_{record}", details={"tokens": tokens})
        )


class InputReader:
    """Builds aquifers, groundwater linkages and flow equations in a project"""

    def __init__(self, project: Project, units: Optional[UnitConverter] = None):
        self.project = project
        self.units = units or UnitConverter.from_config()

    def _internal(self, value: float, kind: QuantityKind) -> float:
        return self.units.to_internal(value, kind)

    def read_aquifer(self, tokens: List[str]) -> Aquifer:
        """Read an aquifer record and add the aquifer to the project"""
        _require(tokens, AQUIFER_TOKENS, "aquifer")
        x = [_number(token) for token in tokens[1:AQUIFER_TOKENS]]

        pattern = None
        if len(tokens) > AQUIFER_TOKENS:
            pattern = self.project.get_pattern(tokens[AQUIFER_TOKENS])

        aquifer = Aquifer(
            name=tokens[0],
            porosity=x[0],
            wilting_point=x[1],
            field_capacity=x[2],
            conductivity=self._internal(x[3], QuantityKind.RAINFALL),
            conduct_slope=x[4],
            tension_slope=self._internal(x[5], QuantityKind.LENGTH),
            upper_evap_frac=x[6],
            lower_evap_depth=self._internal(x[7], QuantityKind.LENGTH),
            lower_loss_coeff=self._internal(x[8], QuantityKind.RAINFALL),
            bottom_elev=self._internal(x[9], QuantityKind.LENGTH),
            water_table_elev=self._internal(x[10], QuantityKind.LENGTH),
            upper_moisture=x[11],
            upper_evap_pattern=pattern,
        )
        return self.project.add_aquifer(aquifer)

    def read_groundwater(self, tokens: List[str]) -> Groundwater:
        """Read a groundwater record and attach it to its subcatchment"""
        _require(tokens, 3, "groundwater")
        subcatchment = self.project.get_subcatchment(tokens[0])
        _require(tokens, GROUNDWATER_TOKENS, "groundwater")

        aquifer = self.project.get_aquifer(tokens[1])
        node = self.project.get_node(tokens[2])
        surf_elev, a1, b1, a2, b2, a3, fixed_depth = (
            _number(token) for token in tokens[3:GROUNDWATER_TOKENS]
        )

        # nodeElev, bottomElev, waterTableElev, upperMoisture
        optional: List[Optional[float]] = []
        for i in range(4):
            position = GROUNDWATER_TOKENS + i
            if len(tokens) <= position or tokens[position] == SKIP_TOKEN:
                optional.append(None)
                continue
            value = _number(tokens[position])
            if i < 3:
                value = self._internal(value, QuantityKind.LENGTH)
            optional.append(value)

        groundwater = Groundwater(
            aquifer=aquifer,
            node=node,
            surf_elev=self._internal(surf_elev, QuantityKind.LENGTH),
            a1=a1,
            b1=b1,
            a2=a2,
            b2=b2,
            a3=a3,
            fixed_depth=self._internal(fixed_depth, QuantityKind.LENGTH),
            node_elev=optional[0],
            bottom_elev=optional[1],
            water_table_elev=optional[2],
            upper_moisture=optional[3],
        )
        subcatchment.groundwater = groundwater
        return groundwater

    def read_flow_expression(self, tokens: List[str]) -> FlowExpression:
        """Read a lateral or deep flow equation, replacing any earlier one"""
        _require(tokens, 3, "flow equation")
        subcatchment = self.project.get_subcatchment(tokens[0])

        keyword = tokens[1].upper()
        if keyword.startswith("LAT"):
            kind = FlowKind.LATERAL
        elif keyword.startswith("DEEP"):
            kind = FlowKind.DEEP
        else:
            raise KeywordError(
                f"unknown flow type '{tokens[1]}'",
                ErrorContext(subcatchment=subcatchment.name,
                             operation="read_flow_expression", token=tokens[1])
            )

        return subcatchment.flow_expressions.replace(kind, " ".join(tokens[2:]))

    def read_sections(self, lines: Iterable[str]) -> List[InputError]:
        """
        Read the [AQUIFERS], [GROUNDWATER] and [GWF] sections of an input file.

        Lines in other sections are ignored. A bad record is skipped and
        its error logged and returned; reading continues with the next line.
        """
        handlers = {
            "[AQUIFERS]": self.read_aquifer,
            "[GROUNDWATER]": self.read_groundwater,
            "[GWF]": self.read_flow_expression,
        }
        handler = None
        errors: List[InputError] = []

        for line_number, line in enumerate(lines, start=1):
            tokens = tokenize(line)
            if not tokens:
                continue
            if tokens[0].startswith("["):
                handler = handlers.get(tokens[0].upper())
                continue
            if handler is None:
                continue
            try:
                handler(tokens)
            except InputError as e:
                e.context.details = {**(e.context.details or {}), "line": line_number}
                logger.error(f"Line {line_number}: {e}")
                errors.append(e)

        return errors
