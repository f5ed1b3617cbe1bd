"""Classical fourth-order Runge-Kutta integrator.

Fixed step size supplied by the caller. The single-step variant
:meth:`RK4Solver.solve_step` is meant for callers that interleave their own
state updates (e.g. an external physics engine) between steps.

Example:
    >>> solver = RK4Solver()
    >>> traj = solver.solve(f, 0.0, y0, step_size=1.0, max_steps=5000,
    ...                     stop=lambda t, y: y[1] <= 0.0)
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.integrators.base import DerivativeFunction, FixedStepSolver


@beartype
def rk4_step(
    f: DerivativeFunction,
    t: float,
    y: NDArray[np.float64],
    h: float,
) -> NDArray[np.float64]:
    """Perform one RK4 step.

    Args:
        f: Derivative function ``f(t, y)``
        t: Current time
        y: Current state (not modified)
        h: Step size

    Returns:
        State at t + h
    """
    half = 0.5 * h
    k1 = np.asarray(f(t, y), dtype=np.float64)
    k2 = np.asarray(f(t + half, y + half * k1), dtype=np.float64)
    k3 = np.asarray(f(t + half, y + half * k2), dtype=np.float64)
    k4 = np.asarray(f(t + h, y + h * k3), dtype=np.float64)

    return y + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


class RK4Solver(FixedStepSolver):
    """Fixed-step classical Runge-Kutta solver."""

    def solve_step(
        self,
        f: DerivativeFunction,
        t: float,
        y: NDArray[np.float64],
        h: float,
    ) -> NDArray[np.float64]:
        return rk4_step(f, t, y, h)
