"""Cost functions that wrap whole simulations.

Each objective is a picklable callable: ``objective(genes) -> cost``, with an
``evaluate(genes)`` method that returns the underlying simulation result. Every
call builds fresh controller and dynamics objects, so identical genes always
give identical results and evaluations can run in parallel worker processes.

Example:
    >>> objective = LanderObjective(y0)
    >>> objective(np.array([0.3, 120.0]))
    >>> traj = objective.evaluate(np.array([0.3, 120.0]))
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.dynamics.lander import LanderConfig
from spacesim.dynamics.state import OMEGA, THETA, VX, VY, X, lander_altitude
from spacesim.environment.bodies import find_body, load_solar_system
from spacesim.environment.environment import Environment
from spacesim.gnc.control import (
    CombinedController,
    Controller,
    FeedbackController,
    FeedbackGains,
    OpenLoopController,
)
from spacesim.integrators import ConfigurationError, Trajectory
from spacesim.simulation.lander import DEFAULT_MAX_STEPS, simulate
from spacesim.simulation.solar_system import PhysicsEngine, ProbeResult, propagate_probe

# =============================================================================
# Landing Cost
# =============================================================================

AIRBORNE_PENALTY: float = 1e9
HARD_IMPACT_PENALTY: float = 5e8
MAX_TOUCHDOWN_SPEED: float = 0.005  # [km/s]


def landing_cost(
    final_state: NDArray[np.float64],
    environment: Environment | None = None,
) -> float:
    """Score the last state of a descent (lower is better).

    Still airborne and hard impacts get large penalties that grow with the
    miss; otherwise the cost is a weighted sum of the touchdown errors, with
    distances and speeds in metres and angles in degrees. Altitude is measured
    above the environment's terrain (above y = 0 without one).
    """
    altitude = lander_altitude(final_state, environment)
    vy = abs(float(final_state[VY]))
    if altitude > 0.0:
        return AIRBORNE_PENALTY + 1000.0 * altitude
    if vy > MAX_TOUCHDOWN_SPEED:
        return HARD_IMPACT_PENALTY + 1e5 * vy

    return (
        1.0 * abs(final_state[X]) * 1000.0
        + 2.0 * abs(altitude) * 1000.0
        + 10.0 * abs(final_state[VX]) * 1000.0
        + 20.0 * vy * 1000.0
        + 5.0 * math.degrees(abs(final_state[THETA]))
        + 2.0 * math.degrees(abs(final_state[OMEGA]))
    )


@beartype
@dataclass
class LanderObjective:
    """Landing cost as a function of the open-loop plan parameters.

    Genes are ``(tilt_angle, descent_time)``.

    Attributes:
        initial_state: Lander state at t = 0
        with_feedback: Fly the plan through the combined controller (True) or
            open loop only (False)
        gains: Feedback gains
        config: Lander parameters
        environment: Altitude and wind provider (flat and calm if None)
        step_size: RK4 step [s]
        max_steps: Step cap per descent
    """
    initial_state: NDArray[np.float64]
    with_feedback: bool = True
    gains: FeedbackGains = field(default_factory=FeedbackGains)
    config: LanderConfig = field(default_factory=LanderConfig)
    environment: Environment | None = None
    step_size: float = 1.0
    max_steps: int = DEFAULT_MAX_STEPS

    BOUNDS = ((0.05, 1.2), (10.0, 600.0))

    def controller(self, genes: NDArray[np.float64]) -> Controller:
        if genes.shape != (2,):
            raise ConfigurationError(f"Expected genes (tilt_angle, descent_time), got {genes}")
        plan = OpenLoopController.plan(
            self.initial_state, float(genes[0]), float(genes[1]), self.config
        )
        if not self.with_feedback:
            return plan
        return CombinedController(plan, FeedbackController(self.gains, self.config), self.config)

    def evaluate(self, genes: NDArray[np.float64]) -> Trajectory:
        return simulate(
            self.controller(genes),
            self.initial_state,
            self.step_size,
            self.max_steps,
            self.environment,
            self.config,
        )

    def __call__(self, genes: NDArray[np.float64]) -> float:
        return landing_cost(self.evaluate(genes).final_state, self.environment)

    def summarize(self, genes: NDArray[np.float64]) -> tuple[float, dict[str, float]]:
        """Cost together with the touchdown time and velocities."""
        traj = self.evaluate(genes)
        final = traj.final_state
        summary = {
            "touchdown_time": traj.final_time,
            "altitude": lander_altitude(final, self.environment),
            "vx": float(final[VX]),
            "vy": float(final[VY]),
        }
        return landing_cost(final, self.environment), summary


@beartype
@dataclass
class UnitBoxObjective:
    """Expose an objective over [0, 1]^n by scaling into its own bounds.

    Attributes:
        objective: Cost over the original parameters
        bounds: (lower, upper) per parameter
    """
    objective: Callable[[NDArray[np.float64]], float]
    bounds: tuple[tuple[float, float], ...]

    def __post_init__(self) -> None:
        if any(hi <= lo for lo, hi in self.bounds):
            raise ConfigurationError(f"Each bound needs lower < upper, got {self.bounds}")

    def from_unit(self, u: NDArray[np.float64]) -> NDArray[np.float64]:
        lo = np.array([b[0] for b in self.bounds])
        hi = np.array([b[1] for b in self.bounds])
        return lo + np.clip(u, 0.0, 1.0) * (hi - lo)

    def to_unit(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        lo = np.array([b[0] for b in self.bounds])
        hi = np.array([b[1] for b in self.bounds])
        return (x - lo) / (hi - lo)

    def __call__(self, u: NDArray[np.float64]) -> float:
        return self.objective(self.from_unit(u))


# =============================================================================
# Probe Launch
# =============================================================================


def probe_score(distance: float) -> float:
    """Higher-is-better score for a closest approach [km]."""
    return 1e6 / (distance + 1000.0)


def _unit_vector(longitude: float, latitude: float) -> NDArray[np.float64]:
    return np.array([
        math.cos(latitude) * math.cos(longitude),
        math.cos(latitude) * math.sin(longitude),
        math.sin(latitude),
    ])


@beartype
@dataclass
class ProbeObjective:
    """Closest approach to a target body for a launch from the home planet.

    Genes are ``(longitude, latitude, speed, azimuth, elevation)``: the launch
    site on the home body's surface (at its mean radius) and the launch
    velocity relative to the body, in the heliocentric frame.

    Attributes:
        target: Body to approach
        home: Launch body
        duration: Flight time [s]
        dt: Shared engine and probe step [s]
        max_speed: Upper bound on the relative launch speed [km/s]
    """
    target: str = "Titan"
    home: str = "Earth"
    duration: float = 365.0 * 86400.0
    dt: float = 3600.0
    max_speed: float = 60.0

    @property
    def bounds(self) -> tuple[tuple[float, float], ...]:
        return (
            (-math.pi, math.pi),
            (-0.5 * math.pi, 0.5 * math.pi),
            (0.0, self.max_speed),
            (-math.pi, math.pi),
            (-0.5 * math.pi, 0.5 * math.pi),
        )

    def launch_state(self, genes: NDArray[np.float64]) -> NDArray[np.float64]:
        """Probe [r, v] for the given genes."""
        if genes.shape != (5,):
            raise ConfigurationError(f"Expected 5 launch genes, got shape {genes.shape}")
        home = find_body(load_solar_system(), self.home)
        longitude, latitude, speed, azimuth, elevation = (float(g) for g in genes)
        speed = min(max(speed, 0.0), self.max_speed)
        position = home.position + home.radius * _unit_vector(longitude, latitude)
        velocity = home.velocity + speed * _unit_vector(azimuth, elevation)
        return np.concatenate([position, velocity])

    def evaluate(self, genes: NDArray[np.float64], progress: bool = False) -> ProbeResult:
        engine = PhysicsEngine()
        for body in load_solar_system():
            engine.add_body(body)
        steps = max(1, int(round(self.duration / self.dt)))
        return propagate_probe(
            engine, self.launch_state(genes), self.target, self.dt, steps, progress=progress
        )

    def __call__(self, genes: NDArray[np.float64]) -> float:
        return self.evaluate(genes).min_distance

    def summarize(self, genes: NDArray[np.float64]) -> tuple[float, dict[str, float]]:
        """Closest approach together with its time and score."""
        result = self.evaluate(genes)
        summary = {
            "min_distance": result.min_distance,
            "min_time": result.min_time,
            "score": probe_score(result.min_distance),
        }
        return result.min_distance, summary
