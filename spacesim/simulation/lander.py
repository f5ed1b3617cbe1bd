"""Lander descent simulation.

Two ways to run a descent:

- batch: :func:`simulate` (and the ``simulate_*`` shortcuts) bind a controller
  into :class:`LanderDynamics`, integrate until the lander reaches the ground or
  ``max_steps`` runs out, and return the :class:`Trajectory`
- step-driven: :class:`LanderSimulator` advances one fixed RK4 step per call to
  :meth:`LanderSimulator.step` and returns the new state together with the
  commands that were applied

Both stop on the first accepted row at or below the terrain, with the altitude
taken from the environment. Running out of steps is not an error; check
``trajectory.stopped``.

Example:
    >>> y0 = LanderState(x=0.0, y=1500.0, vx=1.487).to_array()
    >>> traj = simulate_feedback(y0, step_size=1.0, max_steps=10_000)
    >>> traj.stopped, classify_landing(traj.final_state)
"""

from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.dynamics.lander import LanderConfig, LanderDiagnostics, LanderDynamics
from spacesim.dynamics.state import LANDER_COLUMNS, LANDER_STATE_SIZE, lander_altitude
from spacesim.environment.environment import Environment, flat_calm
from spacesim.gnc.control import (
    CombinedController,
    Controller,
    FeedbackController,
    FeedbackGains,
    OpenLoopController,
)
from spacesim.gnc.landing import LandingOutcome, LandingTolerances, classify_landing
from spacesim.integrators import (
    AdaptiveConfig,
    ConfigurationError,
    EulerSolver,
    RK4Solver,
    RKF45Solver,
    StopPredicate,
    Trajectory,
    rk4_step,
)

DEFAULT_MAX_STEPS: int = 100_000


class IntegrationMethod(Enum):
    """Integrator used for a batch descent."""

    RK4 = auto()    # Fixed cadence, default for control loops
    RKF45 = auto()  # Adaptive
    EULER = auto()  # First order, for comparison only


@beartype
def ground_reached(environment: Environment | None = None) -> StopPredicate:
    """Stop predicate that fires once the lander is at or below the terrain."""
    env = environment if environment is not None else flat_calm()

    def reached(t: float, state: NDArray[np.float64]) -> bool:
        return lander_altitude(state, env) <= 0.0

    return reached


# =============================================================================
# Batch Simulation
# =============================================================================


@beartype
def simulate(
    controller: Controller,
    initial_state: NDArray[np.float64],
    step_size: float = 1.0,
    max_steps: int = DEFAULT_MAX_STEPS,
    environment: Environment | None = None,
    config: LanderConfig | None = None,
    method: IntegrationMethod = IntegrationMethod.RK4,
    adaptive: AdaptiveConfig | None = None,
) -> Trajectory:
    """Integrate a descent until touchdown or ``max_steps``.

    Args:
        controller: Control law bound into the dynamics
        initial_state: [x, y, theta, vx, vy, omega] at t = 0
        step_size: Step size (initial guess for RKF45) [s]
        max_steps: Hard cap on the number of steps
        environment: Altitude and wind provider (flat and calm by default)
        config: Lander parameters
        method: Integrator
        adaptive: Step control settings for RKF45

    Returns:
        Trajectory starting at (0, initial_state)
    """
    if initial_state.shape != (LANDER_STATE_SIZE,):
        raise ConfigurationError(
            f"initial_state must have shape ({LANDER_STATE_SIZE},), got {initial_state.shape}"
        )
    env = environment if environment is not None else flat_calm()
    dynamics = LanderDynamics(controller, env, config if config is not None else LanderConfig())
    stop = ground_reached(env)

    if method is IntegrationMethod.RKF45:
        return RKF45Solver(adaptive or AdaptiveConfig()).solve(
            dynamics.derivatives, 0.0, initial_state, step_size, max_steps, stop=stop
        )
    solver = EulerSolver() if method is IntegrationMethod.EULER else RK4Solver()
    return solver.solve(
        dynamics.derivatives, 0.0, initial_state, step_size, max_steps, stop=stop
    )


@beartype
def simulate_feedback(
    initial_state: NDArray[np.float64],
    gains: FeedbackGains | None = None,
    step_size: float = 1.0,
    max_steps: int = DEFAULT_MAX_STEPS,
    environment: Environment | None = None,
    config: LanderConfig | None = None,
) -> Trajectory:
    """Descent under the PD feedback cascade alone."""
    cfg = config or LanderConfig()
    controller = FeedbackController(gains or FeedbackGains(), cfg)
    return simulate(controller, initial_state, step_size, max_steps, environment, cfg)


@beartype
def simulate_open_loop(
    initial_state: NDArray[np.float64],
    tilt_angle: float,
    descent_time: float,
    step_size: float = 1.0,
    max_steps: int = DEFAULT_MAX_STEPS,
    environment: Environment | None = None,
    config: LanderConfig | None = None,
) -> Trajectory:
    """Descent flying the planned profile with no feedback."""
    cfg = config or LanderConfig()
    controller = OpenLoopController.plan(initial_state, tilt_angle, descent_time, cfg)
    return simulate(controller, initial_state, step_size, max_steps, environment, cfg)


@beartype
def simulate_combined(
    initial_state: NDArray[np.float64],
    tilt_angle: float,
    descent_time: float,
    gains: FeedbackGains | None = None,
    step_size: float = 1.0,
    max_steps: int = DEFAULT_MAX_STEPS,
    environment: Environment | None = None,
    config: LanderConfig | None = None,
) -> Trajectory:
    """Descent flying the planned profile corrected by feedback."""
    cfg = config or LanderConfig()
    controller = CombinedController(
        OpenLoopController.plan(initial_state, tilt_angle, descent_time, cfg),
        FeedbackController(gains or FeedbackGains(), cfg),
        cfg,
    )
    return simulate(controller, initial_state, step_size, max_steps, environment, cfg)


@beartype
def commands(
    trajectory: Trajectory,
    controller: Controller,
    environment: Environment | None = None,
    config: LanderConfig | None = None,
) -> NDArray[np.float64]:
    """Clamped (thrust, torque) applied at every row, shape (n, 2).

    Recomputed after the run from the same pure dynamics, so reporting never
    feeds back into the integration.
    """
    dynamics = LanderDynamics(
        controller,
        environment if environment is not None else flat_calm(),
        config if config is not None else LanderConfig(),
    )
    out = np.empty((len(trajectory), 2))
    for i, (t, state) in enumerate(zip(trajectory.times, trajectory.states, strict=True)):
        _, diag = dynamics.evaluate(float(t), state)
        out[i] = (diag.thrust, diag.torque)
    return out


# =============================================================================
# Step-Driven Simulator
# =============================================================================


@beartype
@dataclass
class LanderSimulator:
    """Advance a lander one RK4 step at a time.

    The caller owns the loop::

        sim = LanderSimulator(controller, y0)
        while not sim.landed:
            state, diag = sim.step(1.0)

    Attributes:
        controller: Control law
        initial_state: [x, y, theta, vx, vy, omega] at ``t0``
        environment: Altitude and wind provider
        config: Lander parameters
        t0: Start time [s]
    """
    controller: Controller
    initial_state: NDArray[np.float64]
    environment: Environment = field(default_factory=flat_calm)
    config: LanderConfig = field(default_factory=LanderConfig)
    t0: float = 0.0

    _dynamics: LanderDynamics = field(init=False, repr=False)
    _time: float = field(default=0.0, init=False, repr=False)
    _state: NDArray[np.float64] = field(init=False, repr=False)
    _times: list[float] = field(default_factory=list, init=False, repr=False)
    _states: list[NDArray[np.float64]] = field(default_factory=list, init=False, repr=False)
    _commands: list[tuple[float, float]] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.initial_state.shape != (LANDER_STATE_SIZE,):
            raise ConfigurationError(
                f"initial_state must have shape ({LANDER_STATE_SIZE},), "
                f"got {self.initial_state.shape}"
            )
        self._dynamics = LanderDynamics(self.controller, self.environment, self.config)
        self.reset()

    def reset(self) -> None:
        """Return to the initial condition and clear the history."""
        self._time = self.t0
        self._state = self.initial_state.astype(np.float64)
        self._times = [self._time]
        self._states = [self._state.copy()]
        self._commands = []

    @property
    def time(self) -> float:
        return self._time

    @property
    def landed(self) -> bool:
        return lander_altitude(self._state, self.environment) <= 0.0

    def get_state(self) -> NDArray[np.float64]:
        """Copy of the current state."""
        return self._state.copy()

    def step(self, dt: float) -> tuple[NDArray[np.float64], LanderDiagnostics]:
        """Propagate by ``dt`` seconds.

        Returns:
            Tuple of (new state, commands and drag applied at the start of the step)
        """
        if dt <= 0.0:
            raise ConfigurationError(f"dt must be positive, got {dt}")
        _, diag = self._dynamics.evaluate(self._time, self._state)
        self._state = rk4_step(self._dynamics.derivatives, self._time, self._state, dt)
        self._time += dt

        self._times.append(self._time)
        self._states.append(self._state.copy())
        self._commands.append((diag.thrust, diag.torque))
        return self._state.copy(), diag

    def run(self, dt: float = 1.0, max_steps: int = DEFAULT_MAX_STEPS) -> Trajectory:
        """Step until the ground is reached or ``max_steps`` steps have run."""
        for _ in range(max_steps):
            if self.landed:
                break
            self.step(dt)
        return self.trajectory()

    def outcome(self, tolerances: LandingTolerances | None = None) -> LandingOutcome:
        return classify_landing(self._state, tolerances, environment=self.environment)

    def trajectory(self) -> Trajectory:
        """History so far as a trajectory."""
        return Trajectory(
            times=np.array(self._times, dtype=np.float64),
            states=np.vstack(self._states),
            errors=np.zeros(len(self._times)),
            stopped=self.landed,
        )

    def get_commands(self) -> NDArray[np.float64]:
        """(thrust, torque) applied during each completed step, shape (n_steps, 2)."""
        return np.array(self._commands, dtype=np.float64).reshape(-1, 2)

    def history_dataframe(self):
        """Convert the history to a polars DataFrame with command columns."""
        import polars as pl

        df = self.trajectory().to_dataframe(list(LANDER_COLUMNS))
        cmds = self.get_commands()
        # Last row has no step after it yet
        thrust = np.append(cmds[:, 0], np.nan)
        torque = np.append(cmds[:, 1], np.nan)
        return df.with_columns(pl.Series("thrust", thrust), pl.Series("torque", torque))
