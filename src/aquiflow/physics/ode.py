"""
Adaptive ODE integration of the groundwater state over one time step.
"""
import logging
from typing import Callable

import numpy as np
from scipy.integrate import solve_ivp

from aquiflow.core.constants import ODE_ABS_TOLERANCE, ODE_TOLERANCE
from aquiflow.core.exceptions import ErrorContext, IntegrationError, handle_exception
from aquiflow.core.types import StateVector

logger = logging.getLogger(__name__)

DerivativeFn = Callable[[float, np.ndarray], np.ndarray]


def integrate(
    state: StateVector,
    t0: float,
    t1: float,
    derivatives: DerivativeFn,
    rtol: float = ODE_TOLERANCE,
    max_step: float = np.inf,
    atol: float = ODE_ABS_TOLERANCE,
    method: str = "RK45"
) -> np.ndarray:
    """
    Advance ``state`` from t0 to t1 and return the state at t1.

    If the solver stops short of t1 the last accepted state is returned
    and a warning is logged; callers bound the state themselves.

    Args:
        state: Initial state vector
        t0, t1: Integration interval (s)
        derivatives: f(t, x) -> dx/dt
        rtol: Relative error tolerance
        max_step: Largest internal step the solver may take (s)
        atol: Absolute error tolerance
        method: Any scipy.integrate.solve_ivp method

    Raises:
        IntegrationError: if the solver rejects its arguments
        PhysicsModelError: if the derivatives raise an arithmetic error
    """
    y0 = np.asarray(state, dtype=float)
    if t1 <= t0:
        return y0.copy()

    context = ErrorContext(operation="integrate", details={"t0": t0, "t1": t1})
    try:
        sol = solve_ivp(
            fun=derivatives,
            t_span=(t0, t1),
            y0=y0,
            method=method,
            rtol=rtol,
            atol=atol,
            max_step=max_step,
        )
    except (ArithmeticError, RuntimeError) as e:
        raise handle_exception(e, context) from e
    except ValueError as e:
        raise IntegrationError(f"solve_ivp({method}) rejected its arguments: {e}", context) from e

    if not sol.success:
        if sol.y.size == 0:
            y_last = y0.copy()
        else:
            y_last = np.asarray(sol.y[:, -1], dtype=float)
        t_last = sol.t[-1] if sol.t.size else t0
        logger.warning(
            f"solve_ivp({method}) stopped at t={t_last} of {t1} s: {sol.message}"
        )
        return y_last

    logger.debug(f"Integrated {t0}..{t1} s in {sol.nfev} evaluations")
    return np.asarray(sol.y[:, -1], dtype=float)
