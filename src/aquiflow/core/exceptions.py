"""
Custom exception hierarchy for the aquiflow package.
Provides clear error categories and rich error information.
"""
from typing import Optional, Any, Dict
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Context information for errors"""
    subcatchment: Optional[str] = None
    aquifer: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    token: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class AquiflowError(Exception):
    """Base exception for all aquiflow errors"""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        context_str = ""
        if self.context.subcatchment:
            context_str += f" [Subcatchment: {self.context.subcatchment}]"
        if self.context.aquifer:
            context_str += f" [Aquifer: {self.context.aquifer}]"
        if self.context.component:
            context_str += f" [Component: {self.context.component}]"
        if self.context.token:
            context_str += f" [Token: {self.context.token}]"

        return f"{self.__class__.__name__}: {self.message}{context_str}"


# Input errors: the offending record is rejected
class InputError(AquiflowError):
    """Base class for errors in input records"""
    pass


class ItemCountError(InputError):
    """Too few items on an input line"""
    pass


class UnknownNameError(InputError):
    """Reference to an object that was never declared"""
    pass


class NumberFormatError(InputError):
    """Token could not be read as a number"""
    pass


class KeywordError(InputError):
    """Unrecognized keyword"""
    pass


class ExpressionError(InputError):
    """Invalid flow equation (bad syntax or unknown variable)"""
    pass


# Physics model errors
class PhysicsModelError(AquiflowError):
    """Base class for physics model errors"""
    pass


class ParameterError(PhysicsModelError):
    """Invalid model parameters"""
    pass


class AquiferParameterError(ParameterError):
    """Aquifer property out of range"""
    pass


class GroundElevationError(ParameterError):
    """Ground surface lies below the water table"""
    pass


class IntegrationError(PhysicsModelError):
    """ODE integration failed"""
    pass


# Configuration errors
class ConfigurationError(AquiflowError):
    """Configuration error"""
    pass


def handle_exception(exc: Exception, context: Optional[ErrorContext] = None) -> AquiflowError:
    """
    Wrap generic exceptions in the AquiflowError hierarchy.
    Useful for catching and categorizing third-party exceptions.
    """
    if isinstance(exc, AquiflowError):
        return exc

    error_map = {
        ArithmeticError: PhysicsModelError,
        RuntimeError: PhysicsModelError,
    }

    for exc_type, aquiflow_exc_type in error_map.items():
        if isinstance(exc, exc_type):
            return aquiflow_exc_type(str(exc), context)

    return AquiflowError(str(exc), context)
