"""Adaptive Runge-Kutta-Fehlberg 4(5) integrator.

Six stage evaluations give both a 4th- and a 5th-order estimate of the next
state. Their difference is the local error estimate used to accept or reject
the step and to choose the next step size. Accepted steps advance with the
5th-order estimate.

When a single step keeps failing the tolerance (stiff or singular problems),
the number of retries is capped by ``AdaptiveConfig.max_rejections``. After
the cap the step is accepted anyway: the row is listed in
``Trajectory.forced`` and a warning is logged. The run is never aborted.

Example:
    >>> solver = RKF45Solver(AdaptiveConfig(tolerance=1e-6))
    >>> traj = solver.solve(f, 0.0, y0, step_size=60.0, max_steps=10_000,
    ...                     t_end=86400.0)
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.integrators.base import (
    ConfigurationError,
    DerivativeFunction,
    RejectedStep,
    StopPredicate,
    Trajectory,
    TrajectoryBuilder,
    validate_problem,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Fehlberg Tableau
# =============================================================================

C2, C3, C4, C5, C6 = 1.0 / 4.0, 3.0 / 8.0, 12.0 / 13.0, 1.0, 1.0 / 2.0

A21 = 1.0 / 4.0
A31, A32 = 3.0 / 32.0, 9.0 / 32.0
A41, A42, A43 = 1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0
A51, A52, A53, A54 = 439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0
A61, A62, A63, A64, A65 = -8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0

# 4th-order weights (b2 = b6 = 0)
B4 = (25.0 / 216.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0)
# 5th-order weights (b2 = 0)
B5 = (16.0 / 135.0, 6656.0 / 12825.0, 28561.0 / 56430.0, -9.0 / 50.0, 2.0 / 55.0)


# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class AdaptiveConfig:
    """Step-size control settings.

    Attributes:
        tolerance: Maximum accepted local error (max-abs norm)
        safety: Safety factor applied to the optimal step ratio
        max_growth: Largest allowed ratio next_step / step
        min_shrink: Smallest allowed ratio next_step / step
        max_rejections: Retries of a single step before it is force-accepted
        min_step: Step size below which retries stop and the step is forced
    """
    tolerance: float = 1e-9
    safety: float = 0.9
    max_growth: float = 5.0
    min_shrink: float = 0.1
    max_rejections: int = 50
    min_step: float = 0.0

    def __post_init__(self) -> None:
        if not self.tolerance > 0.0:
            raise ConfigurationError(f"tolerance must be positive, got {self.tolerance}")
        if not 0.0 < self.safety < 1.0:
            raise ConfigurationError(f"safety must be in (0, 1), got {self.safety}")
        if self.max_growth <= 1.0:
            raise ConfigurationError(f"max_growth must exceed 1, got {self.max_growth}")
        if not 0.0 < self.min_shrink < 1.0:
            raise ConfigurationError(f"min_shrink must be in (0, 1), got {self.min_shrink}")
        if self.max_rejections < 0:
            raise ConfigurationError(
                f"max_rejections must be non-negative, got {self.max_rejections}"
            )
        if self.min_step < 0.0:
            raise ConfigurationError(f"min_step must be non-negative, got {self.min_step}")

    def step_factor(self, error: float) -> float:
        """Ratio between the next step size and the current one.

        Below 1 whenever ``error`` exceeds the tolerance, so a rejected step is
        always retried with a strictly smaller step.
        """
        if not np.isfinite(error):
            return self.min_shrink
        if error == 0.0:
            return self.max_growth
        factor = self.safety * (self.tolerance / error) ** 0.2
        return float(min(self.max_growth, max(self.min_shrink, factor)))


# =============================================================================
# Single Step
# =============================================================================


@beartype
def rkf45_step(
    f: DerivativeFunction,
    t: float,
    y: NDArray[np.float64],
    h: float,
) -> tuple[NDArray[np.float64], NDArray[np.float64], float]:
    """Evaluate one Fehlberg step.

    Args:
        f: Derivative function ``f(t, y)``
        t: Current time
        y: Current state (not modified)
        h: Step size

    Returns:
        Tuple of (5th-order state, 4th-order state, max-abs error estimate)
    """
    k1 = np.asarray(f(t, y), dtype=np.float64)
    k2 = np.asarray(f(t + C2 * h, y + h * (A21 * k1)), dtype=np.float64)
    k3 = np.asarray(f(t + C3 * h, y + h * (A31 * k1 + A32 * k2)), dtype=np.float64)
    k4 = np.asarray(
        f(t + C4 * h, y + h * (A41 * k1 + A42 * k2 + A43 * k3)), dtype=np.float64
    )
    k5 = np.asarray(
        f(t + C5 * h, y + h * (A51 * k1 + A52 * k2 + A53 * k3 + A54 * k4)),
        dtype=np.float64,
    )
    k6 = np.asarray(
        f(t + C6 * h, y + h * (A61 * k1 + A62 * k2 + A63 * k3 + A64 * k4 + A65 * k5)),
        dtype=np.float64,
    )

    y4 = y + h * (B4[0] * k1 + B4[1] * k3 + B4[2] * k4 + B4[3] * k5)
    y5 = y + h * (B5[0] * k1 + B5[1] * k3 + B5[2] * k4 + B5[3] * k5 + B5[4] * k6)

    with np.errstate(invalid="ignore", over="ignore"):
        diff = np.abs(y5 - y4)
    error = float(np.max(diff)) if np.all(np.isfinite(diff)) else float("inf")
    return y5, y4, error


# =============================================================================
# Solver
# =============================================================================


@dataclass
class RKF45Solver:
    """Adaptive step-size Runge-Kutta-Fehlberg solver.

    Attributes:
        config: Step-size control settings
    """
    config: AdaptiveConfig = field(default_factory=AdaptiveConfig)

    def solve(
        self,
        f: DerivativeFunction,
        t0: float,
        y0: np.ndarray | list[float],
        step_size: float,
        max_steps: int,
        stop: StopPredicate | None = None,
        t_end: float | None = None,
    ) -> Trajectory:
        """Integrate with adaptive step control.

        Args:
            f: Derivative function ``f(t, y)``
            t0: Initial time
            y0: Initial state (never modified)
            step_size: Initial step size guess
            max_steps: Hard cap on the number of accepted steps
            stop: Optional predicate checked after every accepted step
            t_end: Optional final time; the last step is shortened to land on it

        Returns:
            Trajectory of accepted steps, including rejected attempts and
            force-accepted row indices
        """
        y = validate_problem(f, t0, y0, step_size, max_steps)
        if t_end is not None and t_end <= t0:
            raise ConfigurationError(f"t_end must be after t0={t0}, got {t_end}")

        cfg = self.config
        builder = TrajectoryBuilder(t0, y)
        t = t0
        h = step_size
        stopped = False

        for _ in range(max_steps):
            if t_end is not None and t >= t_end:
                break

            rejections = 0
            while True:
                h_try = h if t_end is None else min(h, t_end - t)
                y5, _, error = rkf45_step(f, t, y, h_try)
                if error <= cfg.tolerance:
                    forced = False
                    break

                h_next = h_try * cfg.step_factor(error)
                if rejections >= cfg.max_rejections or h_next < cfg.min_step:
                    forced = True
                    logger.warning(
                        "RKF45 step at t=%.6g forced after %d rejections "
                        "(h=%.3e, error=%.3e, tolerance=%.3e)",
                        t, rejections, h_try, error, cfg.tolerance,
                    )
                    break

                builder.reject(RejectedStep(t, h_try, error, h_next))
                h = h_next
                rejections += 1

            t = t + h_try if t_end is None or h_try < t_end - t else t_end
            y = y5
            builder.append(t, y, error=error, forced=forced)
            h = h_try * cfg.step_factor(error) if not forced else h_try

            if stop is not None and stop(t, y):
                stopped = True
                break

        return builder.build(stopped)
