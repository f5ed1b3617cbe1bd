"""Parameter search for descent plans and probe launches."""

from spacesim.optimization.genetic import (
    CostFunction,
    GAConfig,
    GAResult,
    GeneticAlgorithm,
    Individual,
)
from spacesim.optimization.gradient import (
    GradientCalculator,
    GradientDescentConfig,
    GradientDescentOptimizer,
    Objective,
    OptimizationResult,
)
from spacesim.optimization.objectives import (
    LanderObjective,
    ProbeObjective,
    UnitBoxObjective,
    landing_cost,
    probe_score,
)

__all__ = [
    "CostFunction",
    "GAConfig",
    "GAResult",
    "GeneticAlgorithm",
    "GradientCalculator",
    "GradientDescentConfig",
    "GradientDescentOptimizer",
    "Individual",
    "LanderObjective",
    "Objective",
    "OptimizationResult",
    "ProbeObjective",
    "UnitBoxObjective",
    "landing_cost",
    "probe_score",
]
