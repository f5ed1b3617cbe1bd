"""Control command type and actuator saturation."""

from typing import NamedTuple

from beartype import beartype

from spacesim.dynamics.lander import LanderConfig


class ControlCommand(NamedTuple):
    """Main-engine and attitude commands.

    Unpacks as ``u, v = command``.
    """
    thrust: float  # Main-engine acceleration [km/s^2]
    torque: float  # Angular acceleration [rad/s^2]

    def __add__(self, other: "ControlCommand") -> "ControlCommand":  # type: ignore[override]
        return ControlCommand(self.thrust + other.thrust, self.torque + other.torque)


@beartype
def clamp(value: float, lower: float, upper: float) -> float:
    return float(min(max(value, lower), upper))


@beartype
def saturate(command: ControlCommand, config: LanderConfig) -> ControlCommand:
    """Clamp a command to [0, u_max] x [-v_max, v_max]."""
    return ControlCommand(
        clamp(command.thrust, 0.0, config.u_max),
        clamp(command.torque, -config.v_max, config.v_max),
    )
