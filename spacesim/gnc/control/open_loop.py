"""Open-loop descent profile: a precomputed piecewise-constant command table.

Each controller owns its table of ``(time, thrust, torque)`` rows, built once
at construction. A query returns the last row at or before the query time, and
zero before the first row or at/after ``end_time``.

:meth:`OpenLoopController.plan` builds the table in closed form from the
initial state:

1. bang-bang rotation to a tilt opposing the horizontal velocity, at hover thrust
2. tilted burn at g / cos(tilt) until the horizontal velocity is cancelled
3. bang-bang rotation back upright, at hover thrust
4. free-fall coast, then a constant vertical braking burn of length
   ``descent_time`` that reaches zero altitude and zero vertical speed together

The plan ignores drag and wind, and assumes the lander starts with zero tilt
rate; feedback corrects what the plan misses.

Example:
    >>> ctrl = OpenLoopController.plan(y0, tilt_angle=0.3, descent_time=120.0)
    >>> ctrl.lookup_u(10.0), ctrl.lookup_v(10.0)
"""

import math
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.dynamics.lander import LanderConfig
from spacesim.dynamics.state import LANDER_STATE_SIZE, THETA, VX, VY, Y
from spacesim.gnc.control.base import ControlCommand, saturate
from spacesim.integrators.base import ConfigurationError

ProfileRow = tuple[float, float, float]


@beartype
@dataclass
class OpenLoopController:
    """Table-driven feed-forward controller.

    Attributes:
        rows: ``(time, thrust, torque)`` rows with non-decreasing times
        end_time: Time at which the profile ends; commands are zero afterwards
        config: Lander parameters used to saturate the output
    """
    rows: tuple[ProfileRow, ...]
    end_time: float
    config: LanderConfig = field(default_factory=LanderConfig)

    _times: NDArray[np.float64] = field(init=False, repr=False)
    _thrusts: NDArray[np.float64] = field(init=False, repr=False)
    _torques: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        table = np.array(self.rows, dtype=np.float64).reshape(-1, 3)
        times = table[:, 0]
        if times.size and times[0] < 0.0:
            raise ConfigurationError(f"Profile must start at t >= 0, got {times[0]}")
        if np.any(np.diff(times) < 0.0):
            raise ConfigurationError("Profile times must be non-decreasing")
        if times.size and self.end_time < times[-1]:
            raise ConfigurationError(
                f"end_time {self.end_time} precedes the last row at {times[-1]}"
            )
        self._times = times.copy()
        self._thrusts = table[:, 1].copy()
        self._torques = table[:, 2].copy()

    def _row_index(self, t: float) -> int | None:
        if self._times.size == 0 or t < 0.0 or t >= self.end_time:
            return None
        idx = int(np.searchsorted(self._times, t, side="right")) - 1
        return idx if idx >= 0 else None

    def lookup_u(self, t: float) -> float:
        """Tabulated thrust at ``t``, or 0 outside the profile."""
        idx = self._row_index(t)
        return 0.0 if idx is None else float(self._thrusts[idx])

    def lookup_v(self, t: float) -> float:
        """Tabulated torque at ``t``, or 0 outside the profile."""
        idx = self._row_index(t)
        return 0.0 if idx is None else float(self._torques[idx])

    def raw(self, t: float, state: NDArray[np.float64]) -> ControlCommand:
        return ControlCommand(self.lookup_u(t), self.lookup_v(t))

    def evaluate(self, t: float, state: NDArray[np.float64]) -> ControlCommand:
        return saturate(self.raw(t, state), self.config)

    @property
    def duration(self) -> float:
        return self.end_time

    @classmethod
    def plan(
        cls,
        initial_state: NDArray[np.float64],
        tilt_angle: float,
        descent_time: float,
        config: LanderConfig | None = None,
    ) -> "OpenLoopController":
        """Build the four-phase descent profile.

        Args:
            initial_state: Lander state [x, y, theta, vx, vy, omega] at t = 0
            tilt_angle: Magnitude of the tilt used to cancel vx [rad], in (0, pi/2)
            descent_time: Length of the final braking burn [s]
            config: Lander parameters

        Returns:
            Controller holding the planned profile
        """
        cfg = config or LanderConfig()
        if initial_state.shape != (LANDER_STATE_SIZE,):
            raise ConfigurationError(
                f"initial_state must have shape ({LANDER_STATE_SIZE},), got {initial_state.shape}"
            )
        if not 0.0 < tilt_angle < 0.5 * math.pi:
            raise ConfigurationError(f"tilt_angle must be in (0, pi/2), got {tilt_angle}")
        if descent_time <= 0.0:
            raise ConfigurationError(f"descent_time must be positive, got {descent_time}")

        g = cfg.gravity
        hover = min(g, cfg.u_max)
        rows: list[ProfileRow] = []

        y = float(initial_state[Y])
        vy = float(initial_state[VY])
        vx = float(initial_state[VX])
        theta = float(initial_state[THETA])
        t = 0.0

        def rotate(start: float, delta: float) -> float:
            # Accelerate for half the time, decelerate for the other half
            if abs(delta) < 1e-12:
                return 0.0
            half = math.sqrt(abs(delta) / cfg.v_max)
            sign = math.copysign(1.0, delta)
            rows.append((start, hover, sign * cfg.v_max))
            rows.append((start + half, hover, -sign * cfg.v_max))
            return 2.0 * half

        if vx != 0.0:
            target = -math.copysign(tilt_angle, vx)

            dt = rotate(t, target - theta)
            y += vy * dt
            t += dt

            u_burn = min(g / math.cos(tilt_angle), cfg.u_max)
            ax = u_burn * math.sin(tilt_angle)
            ay = u_burn * math.cos(tilt_angle) - g
            dt = abs(vx) / ax
            rows.append((t, u_burn, 0.0))
            y += vy * dt + 0.5 * ay * dt * dt
            vy += ay * dt
            t += dt

            theta = target

        dt = rotate(t, -theta)
        y += vy * dt
        t += dt

        coast = _coast_time(y, vy, g, descent_time)
        vy_brake = vy - g * coast
        u_brake = min(max(g - vy_brake / descent_time, 0.0), cfg.u_max)

        rows.append((t, 0.0, 0.0))
        rows.append((t + coast, u_brake, 0.0))

        return cls(rows=tuple(rows), end_time=t + coast + descent_time, config=cfg)


def _coast_time(y: float, vy: float, g: float, burn: float) -> float:
    """Free-fall time before a constant braking burn of length ``burn``.

    Non-negative root of 0.5 g tau^2 - (vy - g burn/2) tau - (y + vy burn/2) = 0,
    or 0 when the burn must start immediately.
    """
    b = vy - 0.5 * g * burn
    c = y + 0.5 * vy * burn
    if g <= 0.0:
        return max(-c / b, 0.0) if b < 0.0 else 0.0
    disc = b * b + 2.0 * g * c
    if disc < 0.0:
        return 0.0
    return max((b + math.sqrt(disc)) / g, 0.0)
