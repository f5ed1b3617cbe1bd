"""Touchdown classification.

A state above the terrain is airborne. At or below it, the landing is safe only
if every component is inside its tolerance; otherwise it is a crash. The
outcome is derived on demand and never stored alongside the state.

Example:
    >>> classify_landing(traj.final_state)
    <LandingOutcome.CRASH: 3>
"""

from dataclasses import dataclass
from enum import Enum, auto

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.dynamics.state import (
    LANDER_STATE_SIZE,
    OMEGA,
    THETA,
    VX,
    VY,
    X,
    lander_altitude,
    normalize_angle,
)
from spacesim.environment.environment import Environment
from spacesim.integrators.base import ConfigurationError, Trajectory


class LandingOutcome(Enum):
    """Result of classifying one lander state."""

    AIRBORNE = auto()
    SAFE_LANDING = auto()
    CRASH = auto()


@beartype
@dataclass(frozen=True)
class LandingTolerances:
    """Limits for a safe touchdown.

    Attributes:
        position: Max |x| from the landing site [km]
        angle: Max |theta| after wrapping [rad]
        vx: Max |vx| [km/s]
        vy: Max |vy| [km/s]
        omega: Max |omega| [rad/s]
    """
    position: float = 0.1
    angle: float = 0.02
    vx: float = 0.1
    vy: float = 0.1
    omega: float = 0.01

    def __post_init__(self) -> None:
        for name in ("position", "angle", "vx", "vy", "omega"):
            if getattr(self, name) < 0.0:
                raise ConfigurationError(f"Tolerance '{name}' must be non-negative")


@beartype
def classify_landing(
    state: NDArray[np.float64],
    tolerances: LandingTolerances | None = None,
    terrain_height: float = 0.0,
    environment: Environment | None = None,
) -> LandingOutcome:
    """Classify a lander state [x, y, theta, vx, vy, omega].

    Args:
        state: Lander state
        tolerances: Safe-landing limits
        terrain_height: Terrain height below the lander [km], used when no
            environment is given
        environment: Altitude provider; its terrain replaces ``terrain_height``

    Returns:
        AIRBORNE above the terrain, otherwise SAFE_LANDING or CRASH
    """
    if state.shape != (LANDER_STATE_SIZE,):
        raise ConfigurationError(
            f"Lander state must have shape ({LANDER_STATE_SIZE},), got {state.shape}"
        )
    tol = tolerances or LandingTolerances()

    if environment is not None:
        altitude = lander_altitude(state, environment)
    else:
        altitude = lander_altitude(state) - terrain_height
    if altitude > 0.0:
        return LandingOutcome.AIRBORNE

    safe = (
        abs(state[X]) <= tol.position
        and abs(normalize_angle(state[THETA])) <= tol.angle
        and abs(state[VX]) <= tol.vx
        and abs(state[VY]) <= tol.vy
        and abs(state[OMEGA]) <= tol.omega
    )
    return LandingOutcome.SAFE_LANDING if safe else LandingOutcome.CRASH


@beartype
def classify_trajectory(
    trajectory: Trajectory,
    tolerances: LandingTolerances | None = None,
    environment: Environment | None = None,
) -> list[LandingOutcome]:
    """Outcome for every row of a lander trajectory."""
    return [
        classify_landing(state, tolerances, environment=environment)
        for state in trajectory.states
    ]
