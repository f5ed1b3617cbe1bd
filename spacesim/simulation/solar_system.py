"""Solar-system propagation and probe flights.

:class:`PhysicsEngine` advances a set of bodies with fixed RK4 steps, for
callers that drive time themselves. :func:`propagate_solar_system` integrates
the same N-body problem with adaptive RKF45, the default for mission-length
runs. :func:`propagate_probe` flies a massless probe through an engine's field,
interleaving one RK4 probe step with each engine step: body positions are
captured before and after the engine step and interpolated linearly for the
probe's sub-stage gravity queries.

Example:
    >>> engine = PhysicsEngine()
    >>> for body in load_solar_system():
    ...     engine.add_body(body)
    >>> result = propagate_probe(engine, probe_state, "Titan", dt=3600.0, steps=24 * 365)
    >>> result.min_distance
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from beartype import beartype
from numpy.typing import NDArray
from tqdm import tqdm

from spacesim.dynamics.nbody import (
    FrozenBodies,
    NBodyConfig,
    nbody_derivatives,
    probe_derivatives,
)
from spacesim.environment.bodies import CelestialBody, index_of
from spacesim.integrators import (
    AdaptiveConfig,
    ConfigurationError,
    RK4Solver,
    RKF45Solver,
    Trajectory,
    TrajectoryBuilder,
    rk4_step,
)

logger = logging.getLogger(__name__)

# Absolute position error per step accepted for heliocentric runs [km]
SOLAR_SYSTEM_TOLERANCE: float = 1e-3


# =============================================================================
# Physics Engine
# =============================================================================


@beartype
@dataclass
class PhysicsEngine:
    """Mutable set of bodies advanced in lock-step.

    Attributes:
        config: Gravity settings
    """
    config: NBodyConfig = field(default_factory=NBodyConfig)

    _bodies: list[CelestialBody] = field(default_factory=list, init=False, repr=False)
    _time: float = field(default=0.0, init=False, repr=False)

    def add_body(self, body: CelestialBody) -> None:
        self._bodies.append(body)

    @property
    def bodies(self) -> list[CelestialBody]:
        return list(self._bodies)

    @property
    def time(self) -> float:
        return self._time

    @property
    def masses(self) -> NDArray[np.float64]:
        return np.array([b.mass for b in self._bodies], dtype=np.float64)

    def positions(self) -> NDArray[np.float64]:
        """Current positions, shape (n, 3)."""
        return np.array([b.position for b in self._bodies], dtype=np.float64).reshape(-1, 3)

    def state(self) -> NDArray[np.float64]:
        """Concatenated [r, v] of all bodies."""
        return np.concatenate([b.state() for b in self._bodies])

    def step(self, dt: float) -> None:
        """Advance every body by one RK4 step of ``dt`` seconds."""
        if not self._bodies:
            raise ConfigurationError("Cannot step an engine with no bodies")
        if dt <= 0.0:
            raise ConfigurationError(f"dt must be positive, got {dt}")

        f = nbody_derivatives(self.masses, self.config)
        y = rk4_step(f, self._time, self.state(), dt).reshape(-1, 6)
        for body, row in zip(self._bodies, y, strict=True):
            body.position = row[:3].copy()
            body.velocity = row[3:].copy()
        self._time += dt


# =============================================================================
# Batch Propagation
# =============================================================================


@beartype
def propagate_solar_system(
    bodies: list[CelestialBody],
    duration: float,
    step_size: float = 3600.0,
    max_steps: int = 1_000_000,
    adaptive: AdaptiveConfig | None = None,
    config: NBodyConfig | None = None,
) -> Trajectory:
    """Integrate all bodies for ``duration`` seconds with RKF45.

    Args:
        bodies: Bodies to propagate (not modified)
        duration: Time span [s]
        step_size: Initial step guess [s]
        max_steps: Cap on accepted steps
        adaptive: Step control settings
        config: Gravity settings

    Returns:
        Trajectory of the concatenated 6n-state, ending at ``duration`` unless
        ``max_steps`` ran out first
    """
    if not bodies:
        raise ConfigurationError("No bodies to propagate")
    masses = np.array([b.mass for b in bodies], dtype=np.float64)
    y0 = np.concatenate([b.state() for b in bodies])
    solver = RKF45Solver(adaptive or AdaptiveConfig(tolerance=SOLAR_SYSTEM_TOLERANCE))
    traj = solver.solve(
        nbody_derivatives(masses, config), 0.0, y0, step_size, max_steps, t_end=duration
    )
    if traj.final_time < duration:
        logger.info(
            "Propagation stopped at t=%.1f s of %.1f s after %d steps",
            traj.final_time, duration, traj.n_steps,
        )
    return traj


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a probe flight.

    Attributes:
        trajectory: Probe [r, v] per engine step
        min_distance: Closest approach to the target [km]
        min_time: Time of closest approach [s]
    """
    trajectory: Trajectory
    min_distance: float
    min_time: float


@beartype
def propagate_probe(
    engine: PhysicsEngine,
    probe_state: NDArray[np.float64],
    target: str,
    dt: float = 3600.0,
    steps: int = 24 * 365,
    progress: bool = False,
) -> ProbeResult:
    """Fly a massless probe alongside an engine's bodies.

    The engine is advanced in place.

    Args:
        engine: Engine holding the bodies
        probe_state: Probe [x, y, z, vx, vy, vz] at the engine's current time
        target: Name of the body whose distance is tracked
        dt: Step size shared by engine and probe [s]
        steps: Number of steps
        progress: Show a progress bar

    Returns:
        ProbeResult with the probe trajectory and closest approach
    """
    if probe_state.shape != (6,):
        raise ConfigurationError(f"probe_state must have shape (6,), got {probe_state.shape}")
    if dt <= 0.0:
        raise ConfigurationError(f"dt must be positive, got {dt}")
    if steps < 1:
        raise ConfigurationError(f"steps must be >= 1, got {steps}")

    target_idx = index_of(engine.bodies, target)
    masses = engine.masses
    solver = RK4Solver()

    t = engine.time
    y = probe_state.astype(np.float64)
    builder = TrajectoryBuilder(t, y)

    min_distance = float(np.linalg.norm(y[:3] - engine.positions()[target_idx]))
    min_time = t

    iterator: Any = range(steps)
    if progress:
        iterator = tqdm(iterator, desc="Probe flight", total=steps)

    for _ in iterator:
        before = engine.positions()
        engine.step(dt)
        after = engine.positions()

        frozen = FrozenBodies(before, after, masses, t, dt)
        y = solver.solve_step(probe_derivatives(frozen, engine.config), t, y, dt)
        t = engine.time
        builder.append(t, y)

        distance = float(np.linalg.norm(y[:3] - after[target_idx]))
        if distance < min_distance:
            min_distance, min_time = distance, t

    return ProbeResult(builder.build(stopped=False), min_distance, min_time)
