"""
User-supplied groundwater flow equations.

Equations use the usual arithmetic operators, ``^`` for powers, the named
groundwater variables (HGW, HSW, ...) and a small set of math functions.
They are parsed once when read and evaluated many times per time step.
"""
import ast
import logging
import operator
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set

import numpy as np

from aquiflow.core.exceptions import ErrorContext, ExpressionError
from aquiflow.core.types import FlowKind
from aquiflow.physics.variables import GroundwaterVariable, resolve_name

logger = logging.getLogger(__name__)

NameResolver = Callable[[str], Optional[GroundwaterVariable]]
ValueResolver = Callable[[GroundwaterVariable], float]
Evaluator = Callable[[ValueResolver], np.float64]


def _step(x):
    return np.float64(1.0) if x > 0.0 else np.float64(0.0)


FUNCTIONS: Dict[str, Callable] = {
    "abs": np.abs,
    "sgn": np.sign,
    "step": _step,
    "sqrt": np.sqrt,
    "log": np.log,
    "log10": np.log10,
    "exp": np.exp,
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "cot": lambda x: 1.0 / np.tan(x),
    "asin": np.arcsin,
    "acos": np.arccos,
    "atan": np.arctan,
    "acot": lambda x: np.pi / 2.0 - np.arctan(x),
    "sinh": np.sinh,
    "cosh": np.cosh,
    "tanh": np.tanh,
    "coth": lambda x: 1.0 / np.tanh(x),
}

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}


class _ExpressionCompiler:
    """Turns a Python expression tree into nested evaluation closures"""

    def __init__(self, resolver: NameResolver, text: str):
        self.resolver = resolver
        self.text = text
        self.variables: Set[GroundwaterVariable] = set()

    def _error(self, message: str) -> ExpressionError:
        return ExpressionError(
            f"{message} in flow equation '{self.text}'",
            ErrorContext(operation="parse_expression", token=self.text)
        )

    def compile(self, node: ast.AST) -> Evaluator:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise self._error(f"unsupported constant {node.value!r}")
            value = np.float64(node.value)
            return lambda values: value

        if isinstance(node, ast.Name):
            variable = self.resolver(node.id)
            if variable is None:
                raise self._error(f"unknown variable '{node.id}'")
            self.variables.add(variable)
            return lambda values: np.float64(values(variable))

        if isinstance(node, ast.BinOp):
            op = _BINARY_OPERATORS.get(type(node.op))
            if op is None:
                raise self._error("unsupported operator")
            left = self.compile(node.left)
            right = self.compile(node.right)
            return lambda values: op(left(values), right(values))

        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPERATORS.get(type(node.op))
            if op is None:
                raise self._error("unsupported operator")
            operand = self.compile(node.operand)
            return lambda values: op(operand(values))

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.keywords:
                raise self._error("malformed function call")
            func = FUNCTIONS.get(node.func.id.lower())
            if func is None:
                raise self._error(f"unknown function '{node.func.id}'")
            if len(node.args) != 1:
                raise self._error(f"function '{node.func.id}' takes one argument")
            argument = self.compile(node.args[0])
            return lambda values: np.float64(func(argument(values)))

        raise self._error(f"unsupported syntax ({type(node).__name__})")


class FlowExpression:
    """A parsed flow equation"""

    def __init__(self, text: str, evaluator: Evaluator, variables: Set[GroundwaterVariable]):
        self.text = text
        self.variables = frozenset(variables)
        self._evaluator = evaluator

    @classmethod
    def parse(cls, text: str, resolver: NameResolver = resolve_name) -> "FlowExpression":
        """
        Parse an equation, resolving every name through ``resolver``.

        Raises:
            ExpressionError: on malformed syntax or an unknown variable
        """
        source = text.strip()
        if not source:
            raise ExpressionError("empty flow equation")

        try:
            tree = ast.parse(source.replace("^", "**"), mode="eval")
        except SyntaxError as e:
            raise ExpressionError(
                f"invalid flow equation '{text}': {e.msg}",
                ErrorContext(operation="parse_expression", token=text)
            )

        compiler = _ExpressionCompiler(resolver, text)
        evaluator = compiler.compile(tree.body)
        return cls(source, evaluator, compiler.variables)

    def evaluate(self, values: ValueResolver) -> float:
        """Evaluate with IEEE semantics (division by zero gives inf)"""
        with np.errstate(all="ignore"):
            return float(self._evaluator(values))

    def __repr__(self) -> str:
        return f"FlowExpression({self.text!r})"


@dataclass
class FlowExpressionBindings:
    """Optional lateral and deep flow equations of one subcatchment"""
    lateral: Optional[FlowExpression] = None
    deep: Optional[FlowExpression] = None

    def get(self, kind: FlowKind) -> Optional[FlowExpression]:
        return self.lateral if FlowKind(kind) is FlowKind.LATERAL else self.deep

    def bind(self, kind: FlowKind, expression: Optional[FlowExpression]):
        if FlowKind(kind) is FlowKind.LATERAL:
            self.lateral = expression
        else:
            self.deep = expression

    def replace(
        self,
        kind: FlowKind,
        text: str,
        resolver: NameResolver = resolve_name
    ) -> FlowExpression:
        """
        Parse ``text`` and bind it, discarding any existing equation first.

        If parsing fails the subcatchment is left without an equation of
        that kind and the ExpressionError propagates.
        """
        self.bind(kind, None)
        expression = FlowExpression.parse(text, resolver)
        self.bind(kind, expression)
        logger.debug(f"Bound {FlowKind(kind).value} flow equation: {expression.text}")
        return expression

    def clear(self):
        self.lateral = None
        self.deep = None
