"""ODE integrators: fixed-step RK4 and Euler, adaptive RKF45.

Example:
    >>> from spacesim.integrators import RK4Solver, RKF45Solver
    >>> traj = RK4Solver().solve(f, 0.0, y0, step_size=1.0, max_steps=100)
"""

from spacesim.integrators.base import (
    ConfigurationError,
    DerivativeFunction,
    FixedStepSolver,
    RejectedStep,
    StopPredicate,
    Trajectory,
    TrajectoryBuilder,
    validate_problem,
)
from spacesim.integrators.euler import EulerSolver, euler_step
from spacesim.integrators.rk4 import RK4Solver, rk4_step
from spacesim.integrators.rkf45 import AdaptiveConfig, RKF45Solver, rkf45_step

__all__ = [
    "AdaptiveConfig",
    "ConfigurationError",
    "DerivativeFunction",
    "EulerSolver",
    "FixedStepSolver",
    "RK4Solver",
    "RKF45Solver",
    "RejectedStep",
    "StopPredicate",
    "Trajectory",
    "TrajectoryBuilder",
    "euler_step",
    "rk4_step",
    "rkf45_step",
    "validate_problem",
]
