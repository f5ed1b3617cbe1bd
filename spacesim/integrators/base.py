"""Common contract for the ODE integrators.

Every integrator consumes a derivative function ``f(t, y) -> dy/dt`` and an
initial state, and produces a :class:`Trajectory`: an ordered, immutable
sequence of ``(time, state)`` rows whose first row is the initial condition.

Example:
    >>> import numpy as np
    >>> from spacesim.integrators import RK4Solver
    >>>
    >>> traj = RK4Solver().solve(lambda t, y: -y, 0.0, np.array([1.0]), 0.1, 10)
    >>> traj.final_state
    array([0.36788...])
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

# =============================================================================
# Types
# =============================================================================

DerivativeFunction = Callable[[float, NDArray[np.float64]], NDArray[np.float64]]
StopPredicate = Callable[[float, NDArray[np.float64]], bool]


class ConfigurationError(ValueError):
    """Raised when a problem is malformed before any stepping begins."""


@dataclass(frozen=True, slots=True)
class RejectedStep:
    """A step attempt discarded by an adaptive integrator.

    Attributes:
        time: Time the attempt started from
        step_size: Step size that was tried
        error: Local error estimate of the attempt
        next_step_size: Step size used for the retry
    """
    time: float
    step_size: float
    error: float
    next_step_size: float


# =============================================================================
# Trajectory
# =============================================================================


@beartype
@dataclass(frozen=True)
class Trajectory:
    """Result of one integration run.

    Attributes:
        times: Row times, shape (n,)
        states: Row states, shape (n, dim)
        errors: Local error estimate per row (0 for the initial row and for
            fixed-step integrators)
        forced: Indices of rows accepted despite exceeding the error tolerance
        rejected: Step attempts discarded along the way
        stopped: True if the stop predicate ended the run
    """
    times: NDArray[np.float64]
    states: NDArray[np.float64]
    errors: NDArray[np.float64]
    forced: tuple[int, ...] = ()
    rejected: tuple[RejectedStep, ...] = ()
    stopped: bool = False

    def __post_init__(self) -> None:
        if self.states.ndim != 2 or self.states.shape[0] != self.times.shape[0]:
            raise ConfigurationError(
                f"states must have shape (n, dim) with n={self.times.shape[0]}, "
                f"got {self.states.shape}"
            )
        # Rows are shared by reference with consumers; freeze them.
        for arr in (self.times, self.states, self.errors):
            arr.setflags(write=False)

    def __len__(self) -> int:
        return int(self.times.shape[0])

    @property
    def n_steps(self) -> int:
        """Number of accepted steps (rows after the initial one)."""
        return len(self) - 1

    @property
    def dimension(self) -> int:
        return int(self.states.shape[1])

    @property
    def final_time(self) -> float:
        return float(self.times[-1])

    @property
    def final_state(self) -> NDArray[np.float64]:
        """Copy of the last state."""
        return self.states[-1].copy()

    @property
    def rows(self) -> NDArray[np.float64]:
        """Plain ``[t, state...]`` rows, shape (n, dim + 1)."""
        return np.column_stack((self.times, self.states))

    @property
    def timed_out(self) -> bool:
        """True if the run ended without the stop predicate firing."""
        return not self.stopped

    def to_dataframe(self, columns: Sequence[str] | None = None):
        """Convert to a polars DataFrame.

        Args:
            columns: Names for the state components. Defaults to y0, y1, ...

        Returns:
            DataFrame with a ``time`` column followed by one column per
            state component
        """
        import polars as pl

        if columns is None:
            columns = [f"y{i}" for i in range(self.dimension)]
        if len(columns) != self.dimension:
            raise ConfigurationError(
                f"Expected {self.dimension} column names, got {len(columns)}"
            )

        data = {"time": self.times}
        for i, name in enumerate(columns):
            data[name] = self.states[:, i]
        return pl.DataFrame(data)


class TrajectoryBuilder:
    """Append-only row collector used by the integration loops."""

    def __init__(self, t0: float, y0: NDArray[np.float64]) -> None:
        self._times: list[float] = [t0]
        self._states: list[NDArray[np.float64]] = [y0.copy()]
        self._errors: list[float] = [0.0]
        self._forced: list[int] = []
        self._rejected: list[RejectedStep] = []

    def __len__(self) -> int:
        return len(self._times)

    def append(
        self,
        t: float,
        y: NDArray[np.float64],
        error: float = 0.0,
        forced: bool = False,
    ) -> None:
        if forced:
            self._forced.append(len(self._times))
        self._times.append(t)
        self._states.append(y.copy())
        self._errors.append(error)

    def reject(self, rejected: RejectedStep) -> None:
        self._rejected.append(rejected)

    def build(self, stopped: bool) -> Trajectory:
        return Trajectory(
            times=np.array(self._times, dtype=np.float64),
            states=np.vstack(self._states),
            errors=np.array(self._errors, dtype=np.float64),
            forced=tuple(self._forced),
            rejected=tuple(self._rejected),
            stopped=stopped,
        )


# =============================================================================
# Validation
# =============================================================================


@beartype
def validate_problem(
    f: DerivativeFunction,
    t0: float,
    y0: np.ndarray | Sequence[float],
    step_size: float,
    max_steps: int,
) -> NDArray[np.float64]:
    """Check an initial value problem and return a private copy of y0.

    Raises:
        ConfigurationError: If the state is not a finite, non-empty vector, the
            step size is not positive, max_steps < 1, or ``f`` returns a
            derivative whose shape differs from the state's
    """
    y = np.array(y0, dtype=np.float64)
    if y.ndim != 1 or y.size == 0:
        raise ConfigurationError(f"y0 must be a non-empty 1-D vector, got shape {y.shape}")
    if not np.all(np.isfinite(y)):
        raise ConfigurationError(f"y0 must be finite, got {y}")
    if not np.isfinite(t0):
        raise ConfigurationError(f"t0 must be finite, got {t0}")
    if not np.isfinite(step_size) or step_size <= 0.0:
        raise ConfigurationError(f"step_size must be positive, got {step_size}")
    if max_steps < 1:
        raise ConfigurationError(f"max_steps must be >= 1, got {max_steps}")

    dydt = np.asarray(f(t0, y.copy()), dtype=np.float64)
    if dydt.shape != y.shape:
        raise ConfigurationError(
            f"Derivative function returned shape {dydt.shape} for a state of shape {y.shape}"
        )
    return y


# =============================================================================
# Fixed-step solver base
# =============================================================================


class FixedStepSolver(ABC):
    """Shared driver loop for single-step methods with a constant step size.

    Subclasses implement :meth:`solve_step`.
    """

    @abstractmethod
    def solve_step(
        self,
        f: DerivativeFunction,
        t: float,
        y: NDArray[np.float64],
        h: float,
    ) -> NDArray[np.float64]:
        """Advance one step of size h from (t, y)."""

    def solve(
        self,
        f: DerivativeFunction,
        t0: float,
        y0: np.ndarray | Sequence[float],
        step_size: float,
        max_steps: int,
        stop: StopPredicate | None = None,
    ) -> Trajectory:
        """Integrate with a constant step size.

        Args:
            f: Derivative function ``f(t, y)``
            t0: Initial time
            y0: Initial state (never modified)
            step_size: Constant step size h > 0
            max_steps: Hard cap on the number of steps
            stop: Optional predicate checked after every step; the run ends
                at the first step for which it returns True

        Returns:
            Trajectory with at most ``max_steps + 1`` rows
        """
        y = validate_problem(f, t0, y0, step_size, max_steps)
        builder = TrajectoryBuilder(t0, y)

        t = t0
        stopped = False
        for n in range(1, max_steps + 1):
            y = self.solve_step(f, t, y, step_size)
            # Avoid drift from repeated addition
            t = t0 + n * step_size
            builder.append(t, y)
            if stop is not None and stop(t, y):
                stopped = True
                break

        return builder.build(stopped)
