"""Cascaded PD feedback law for the planar lander.

Three loops:

- vertical: u = g - kp_y * y - kd_y * vy, clamped to [0, u_max]
- horizontal, expressed as a desired tilt:
  theta_des = asin(clamp((-kp_x * x - kd_x * vx) / u, -1, 1)),
  or 0 (upright) when the thrust is effectively zero
- attitude: v = -kp_theta * wrap(theta - theta_des) - kd_theta * omega,
  clamped to [-v_max, v_max]

Example:
    >>> ctrl = FeedbackController(FeedbackGains(kp_y=2e-4))
    >>> u, v = ctrl.evaluate(0.0, state)
"""

import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.dynamics.lander import LanderConfig
from spacesim.dynamics.state import OMEGA, THETA, VX, VY, X, Y, normalize_angle
from spacesim.gnc.control.base import ControlCommand, clamp, saturate

# Below this thrust the tilt loop has no authority and holds upright
MIN_TILT_THRUST: float = 1e-9


@beartype
@dataclass
class FeedbackGains:
    """PD gains for the three loops.

    Attributes:
        kp_y: Altitude gain [1/s^2]
        kd_y: Vertical rate gain [1/s]
        kp_x: Horizontal position gain [1/s^2]
        kd_x: Horizontal rate gain [1/s]
        kp_theta: Attitude gain [1/s^2]
        kd_theta: Attitude rate gain [1/s]
    """
    kp_y: float = 1e-4
    kd_y: float = 5e-5
    kp_x: float = 5e-4
    kd_x: float = 2e-4
    kp_theta: float = 10.0
    kd_theta: float = 5.0


@beartype
@dataclass
class FeedbackController:
    """Position -> attitude -> torque cascade.

    Attributes:
        gains: Loop gains
        config: Lander parameters (gravity and actuator limits)
    """
    gains: FeedbackGains = field(default_factory=FeedbackGains)
    config: LanderConfig = field(default_factory=LanderConfig)

    def vertical_thrust(self, state: NDArray[np.float64]) -> float:
        """Hover feed-forward plus altitude PD, clamped to the engine range."""
        k = self.gains
        u = self.config.gravity - k.kp_y * state[Y] - k.kd_y * state[VY]
        return clamp(float(u), 0.0, self.config.u_max)

    def desired_tilt(self, state: NDArray[np.float64], thrust: float) -> float:
        """Tilt that turns ``thrust`` into the horizontal PD acceleration."""
        if thrust < MIN_TILT_THRUST:
            return 0.0
        k = self.gains
        ratio = (-k.kp_x * state[X] - k.kd_x * state[VX]) / thrust
        return math.asin(clamp(float(ratio), -1.0, 1.0))

    def raw(self, t: float, state: NDArray[np.float64]) -> ControlCommand:
        """Commands before the final torque saturation."""
        k = self.gains
        u = self.vertical_thrust(state)
        theta_des = self.desired_tilt(state, u)
        v = -k.kp_theta * normalize_angle(state[THETA] - theta_des) - k.kd_theta * state[OMEGA]
        return ControlCommand(u, float(v))

    def evaluate(self, t: float, state: NDArray[np.float64]) -> ControlCommand:
        return saturate(self.raw(t, state), self.config)
