"""Forward Euler integrator (first order, mostly for comparison runs)."""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.integrators.base import DerivativeFunction, FixedStepSolver


@beartype
def euler_step(
    f: DerivativeFunction,
    t: float,
    y: NDArray[np.float64],
    h: float,
) -> NDArray[np.float64]:
    """One explicit Euler step: y + h * f(t, y)."""
    return y + h * np.asarray(f(t, y), dtype=np.float64)


class EulerSolver(FixedStepSolver):
    """Fixed-step forward Euler solver."""

    def solve_step(
        self,
        f: DerivativeFunction,
        t: float,
        y: NDArray[np.float64],
        h: float,
    ) -> NDArray[np.float64]:
        return euler_step(f, t, y, h)
