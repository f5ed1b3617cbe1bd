"""Planar powered-descent lander dynamics.

Equations of motion with main-engine acceleration u (along the body axis) and
angular acceleration v:

    x''     = u sin(theta) + drag_x / m
    y''     = u cos(theta) - g + drag_y / m
    theta'' = v

u is clamped to [0, u_max] and v to [-v_max, v_max] before use. Drag is
quadratic in the velocity relative to the local wind and only acts below the
atmosphere ceiling.

Ground contact: while the altitude is below ``ground_epsilon`` an upward net
vertical acceleration is zeroed, so a lander resting on the surface is not
flung back up by a thrust transient.

The controller is evaluated inside the derivative function, so the commanded
thrust is a pure function of (t, state). The clamped commands are returned as
:class:`LanderDiagnostics` from :meth:`LanderDynamics.evaluate` instead of
being stored on the model.

Example:
    >>> dynamics = LanderDynamics(FeedbackController(), constant_wind(1e-4))
    >>> dydt, diag = dynamics.evaluate(0.0, y0)
    >>> diag.thrust
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.dynamics.state import LANDER_STATE_SIZE, OMEGA, THETA, VX, VY, lander_position
from spacesim.environment.drag import AtmosphericDrag
from spacesim.environment.environment import Environment, flat_calm
from spacesim.integrators.base import ConfigurationError

# =============================================================================
# Constants
# =============================================================================

G_TITAN: float = 1.352e-3  # Surface gravity [km/s^2]
U_MAX: float = 10.0 * G_TITAN  # Main engine limit [km/s^2]
V_MAX: float = 1.0  # Attitude limit [rad/s^2]
LANDER_MASS: float = 50000.0  # [kg]
GROUND_EPSILON: float = 1e-4  # [km]


# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class LanderConfig:
    """Physical parameters of the lander.

    Attributes:
        mass: Vehicle mass [kg]
        gravity: Surface gravity [km/s^2]
        u_max: Maximum main-engine acceleration [km/s^2]
        v_max: Maximum angular acceleration [rad/s^2]
        drag: Atmospheric drag model
        ground_epsilon: Altitude below which ground contact applies [km]
    """
    mass: float = LANDER_MASS
    gravity: float = G_TITAN
    u_max: float = U_MAX
    v_max: float = V_MAX
    drag: AtmosphericDrag = field(default_factory=AtmosphericDrag)
    ground_epsilon: float = GROUND_EPSILON

    def __post_init__(self) -> None:
        if self.mass <= 0.0:
            raise ConfigurationError(f"mass must be positive, got {self.mass}")
        if self.gravity < 0.0:
            raise ConfigurationError(f"gravity must be non-negative, got {self.gravity}")
        if self.u_max <= 0.0:
            raise ConfigurationError(f"u_max must be positive, got {self.u_max}")
        if self.v_max <= 0.0:
            raise ConfigurationError(f"v_max must be positive, got {self.v_max}")

    def clamp_thrust(self, u: float) -> float:
        return float(min(max(u, 0.0), self.u_max))

    def clamp_torque(self, v: float) -> float:
        return float(min(max(v, -self.v_max), self.v_max))


# =============================================================================
# Dynamics
# =============================================================================


@runtime_checkable
class ControlLaw(Protocol):
    """Anything that maps (t, state) to a (thrust, torque) pair."""

    def evaluate(self, t: float, state: NDArray[np.float64]) -> tuple[float, float]: ...


class LanderDiagnostics(NamedTuple):
    """Side-channel output of one derivative evaluation."""
    thrust: float  # Clamped main-engine acceleration [km/s^2]
    torque: float  # Clamped angular acceleration [rad/s^2]
    drag: NDArray[np.float64]  # Drag acceleration (x, y) [km/s^2]
    altitude: float  # Height above terrain [km]
    grounded: bool  # Ground-contact rule active


@beartype
@dataclass
class LanderDynamics:
    """Derivative function for the planar lander.

    Holds no mutable state, so one instance may be integrated repeatedly and
    concurrently as long as the controller and environment are read-only.

    Attributes:
        controller: Control law evaluated at every derivative call
        environment: Altitude and wind provider
        config: Physical parameters
    """
    controller: ControlLaw
    environment: Environment = field(default_factory=flat_calm)
    config: LanderConfig = field(default_factory=LanderConfig)

    def evaluate(
        self,
        t: float,
        state: NDArray[np.float64],
    ) -> tuple[NDArray[np.float64], LanderDiagnostics]:
        """Compute the state derivative and the commands that produced it."""
        if state.shape != (LANDER_STATE_SIZE,):
            raise ConfigurationError(
                f"Lander state must have shape ({LANDER_STATE_SIZE},), got {state.shape}"
            )
        cfg = self.config

        u_cmd, v_cmd = self.controller.evaluate(t, state)
        u = cfg.clamp_thrust(u_cmd)
        v = cfg.clamp_torque(v_cmd)

        theta = state[THETA]
        position = lander_position(state)
        velocity = np.array([state[VX], state[VY], 0.0])

        altitude = self.environment.altitude(position)
        if cfg.drag.in_atmosphere(altitude):
            relative = velocity - self.environment.wind(position)
            drag = cfg.drag.force_relative(relative)[:2] / cfg.mass
        else:
            drag = np.zeros(2)

        ax = u * np.sin(theta) + drag[0]
        ay = u * np.cos(theta) - cfg.gravity + drag[1]

        grounded = bool(altitude < cfg.ground_epsilon and ay > 0.0)
        if grounded:
            ay = 0.0

        dydt = np.array([state[VX], state[VY], state[OMEGA], ax, ay, v])
        return dydt, LanderDiagnostics(u, v, drag, float(altitude), grounded)

    def derivatives(self, t: float, state: NDArray[np.float64]) -> NDArray[np.float64]:
        """Pure ``f(t, y)`` for the integrators."""
        return self.evaluate(t, state)[0]
