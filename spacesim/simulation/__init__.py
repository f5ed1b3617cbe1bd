"""Simulation drivers: lander descents and solar-system propagation."""

from spacesim.simulation.lander import (
    DEFAULT_MAX_STEPS,
    IntegrationMethod,
    LanderSimulator,
    commands,
    ground_reached,
    simulate,
    simulate_combined,
    simulate_feedback,
    simulate_open_loop,
)
from spacesim.simulation.solar_system import (
    SOLAR_SYSTEM_TOLERANCE,
    PhysicsEngine,
    ProbeResult,
    propagate_probe,
    propagate_solar_system,
)

__all__ = [
    "DEFAULT_MAX_STEPS",
    "IntegrationMethod",
    "LanderSimulator",
    "PhysicsEngine",
    "ProbeResult",
    "SOLAR_SYSTEM_TOLERANCE",
    "commands",
    "ground_reached",
    "propagate_probe",
    "propagate_solar_system",
    "simulate",
    "simulate_combined",
    "simulate_feedback",
    "simulate_open_loop",
]
