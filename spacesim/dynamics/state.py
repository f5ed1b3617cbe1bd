"""Planar lander state layout and angle helpers.

The lander state vector is ``[x, y, theta, vx, vy, omega]``:

- x: horizontal offset from the landing site [km]
- y: height above the reference surface [km]
- theta: tilt from vertical [rad], positive tilts thrust toward +x
- vx, vy: velocity [km/s]
- omega: tilt rate [rad/s]

Example:
    >>> state = LanderState(x=0.0, y=1500.0, vx=1.487)
    >>> y0 = state.to_array()
    >>> LanderState.from_array(y0).altitude
    1500.0
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.environment.environment import Environment
from spacesim.integrators.base import ConfigurationError

# Indices into the lander state vector
X, Y, THETA, VX, VY, OMEGA = range(6)
LANDER_STATE_SIZE: int = 6
LANDER_COLUMNS: tuple[str, ...] = ("x", "y", "theta", "vx", "vy", "omega")


def normalize_angle(angle: float) -> float:
    """Wrap an angle to (-pi, pi]."""
    return float(np.pi - ((np.pi - angle) % (2.0 * np.pi)))


def lander_position(state: NDArray[np.float64]) -> NDArray[np.float64]:
    """Position 3-vector (x, y, 0) used for environment lookups."""
    return np.array([state[X], state[Y], 0.0])


def lander_altitude(state: NDArray[np.float64], environment: Environment | None = None) -> float:
    """Height above the terrain, or y when there is no environment."""
    if environment is None:
        return float(state[Y])
    return float(environment.altitude(lander_position(state)))


@beartype
@dataclass
class LanderState:
    """Named view of a lander state vector.

    Attributes:
        x: Horizontal position [km]
        y: Vertical position [km]
        theta: Tilt angle [rad]
        vx: Horizontal velocity [km/s]
        vy: Vertical velocity [km/s]
        omega: Tilt rate [rad/s]
    """
    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0

    @property
    def altitude(self) -> float:
        return self.y

    @property
    def speed(self) -> float:
        return float(np.hypot(self.vx, self.vy))

    def to_array(self) -> NDArray[np.float64]:
        return np.array([self.x, self.y, self.theta, self.vx, self.vy, self.omega])

    @classmethod
    def from_array(cls, arr: NDArray[np.float64]) -> "LanderState":
        if arr.shape != (LANDER_STATE_SIZE,):
            raise ConfigurationError(
                f"Lander state must have shape ({LANDER_STATE_SIZE},), got {arr.shape}"
            )
        return cls(*(float(v) for v in arr))
