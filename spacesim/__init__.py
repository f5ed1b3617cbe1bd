"""SpaceSim - Planetary lander descent and solar-system flight simulation.

This package integrates a planar lander descending through a Titan-like
atmosphere under open-loop, feedback or combined control, propagates the
solar system with N-body gravity, and searches descent plans and probe
launches with genetic and gradient-based optimizers.

Example:
    >>> import numpy as np
    >>> from spacesim import LanderObjective, simulate_combined, classify_trajectory
    >>>
    >>> y0 = np.array([-100.0, 150.0, 0.0, 0.5, 0.0, 0.0])
    >>> traj = simulate_combined(y0, tilt_angle=0.3, descent_time=200.0)
    >>> print(classify_trajectory(traj))
    >>> print(f"Touchdown at t={traj.final_time:.1f} s")
"""

__version__ = "0.1.0"

# Dynamics
from spacesim.dynamics import (
    LanderConfig,
    LanderDynamics,
    LanderState,
    NBodyConfig,
)

# Environment
from spacesim.environment import (
    AtmosphericDrag,
    CelestialBody,
    SurfaceEnvironment,
    constant_wind,
    flat_calm,
    load_solar_system,
    perlin_terrain,
)

# Control and landing assessment
from spacesim.gnc import (
    CombinedController,
    FeedbackController,
    FeedbackGains,
    LandingOutcome,
    LandingTolerances,
    OpenLoopController,
    classify_landing,
    classify_trajectory,
)

# Integrators
from spacesim.integrators import (
    AdaptiveConfig,
    ConfigurationError,
    EulerSolver,
    RK4Solver,
    RKF45Solver,
    Trajectory,
)

# Optimization
from spacesim.optimization import (
    GAConfig,
    GeneticAlgorithm,
    GradientDescentConfig,
    GradientDescentOptimizer,
    LanderObjective,
    ProbeObjective,
    UnitBoxObjective,
    landing_cost,
)

# Simulation
from spacesim.simulation import (
    IntegrationMethod,
    LanderSimulator,
    PhysicsEngine,
    propagate_probe,
    propagate_solar_system,
    simulate,
    simulate_combined,
    simulate_feedback,
    simulate_open_loop,
)

__all__ = [
    "__version__",
    # Dynamics
    "LanderConfig",
    "LanderDynamics",
    "LanderState",
    "NBodyConfig",
    # Environment
    "AtmosphericDrag",
    "CelestialBody",
    "SurfaceEnvironment",
    "constant_wind",
    "flat_calm",
    "load_solar_system",
    "perlin_terrain",
    # Control
    "CombinedController",
    "FeedbackController",
    "FeedbackGains",
    "LandingOutcome",
    "LandingTolerances",
    "OpenLoopController",
    "classify_landing",
    "classify_trajectory",
    # Integrators
    "AdaptiveConfig",
    "ConfigurationError",
    "EulerSolver",
    "RK4Solver",
    "RKF45Solver",
    "Trajectory",
    # Optimization
    "GAConfig",
    "GeneticAlgorithm",
    "GradientDescentConfig",
    "GradientDescentOptimizer",
    "LanderObjective",
    "ProbeObjective",
    "UnitBoxObjective",
    "landing_cost",
    # Simulation
    "IntegrationMethod",
    "LanderSimulator",
    "PhysicsEngine",
    "propagate_probe",
    "propagate_solar_system",
    "simulate",
    "simulate_combined",
    "simulate_feedback",
    "simulate_open_loop",
]
