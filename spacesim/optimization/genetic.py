"""Real-coded genetic algorithm over a bounded parameter box.

Minimizes a scalar cost. Each generation:

1. evaluate every individual whose cost is not cached
2. sort by cost; the best ``elite_fraction`` survive unchanged
3. fill the rest with tournament-selected parents, BLX-alpha crossover and
   per-gene Gaussian mutation, clamped to the bounds

Costs are cached on the individual and only recomputed for new genes. With
``workers > 1`` pending evaluations run in a ``multiprocessing.Pool``, so the
cost function must be picklable (e.g. a module-level class instance) and must
build its own simulation objects per call.

Example:
    >>> ga = GeneticAlgorithm(
    ...     LanderObjective(y0),
    ...     bounds=[(0.05, 1.2), (10.0, 600.0)],
    ...     config=GAConfig(population_size=60, generations=20, seed=1),
    ... )
    >>> result = ga.run(progress=True)
    >>> result.best.genes, result.best.fitness
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from multiprocessing import Pool
from typing import Any

import numpy as np
from beartype import beartype
from numpy.typing import NDArray
from tqdm import tqdm

from spacesim.integrators.base import ConfigurationError

logger = logging.getLogger(__name__)

# A cost may also return (cost, summary) to cache a few trajectory figures
# (e.g. closest approach) alongside the fitness
Summary = dict[str, float]
CostFunction = Callable[[NDArray[np.float64]], float | tuple[float, Summary]]


# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class GAConfig:
    """Genetic algorithm settings.

    Attributes:
        population_size: Individuals per generation
        generations: Number of generations
        mutation_rate: Per-gene mutation probability
        crossover_rate: Probability that two parents are blended
        elite_fraction: Share of the population carried over unchanged
        tournament_size: Contestants per parent selection
        blend_alpha: BLX-alpha extension of the parents' interval
        mutation_scale: Mutation sigma as a fraction of each gene's range
        seed: Random seed (None for nondeterministic runs)
        workers: Worker processes for cost evaluation (1 = in-process)
    """
    population_size: int = 500
    generations: int = 200
    mutation_rate: float = 0.15
    crossover_rate: float = 0.85
    elite_fraction: float = 0.1
    tournament_size: int = 5
    blend_alpha: float = 0.25
    mutation_scale: float = 0.1
    seed: int | None = None
    workers: int = 1

    def __post_init__(self) -> None:
        if self.population_size < 2:
            raise ConfigurationError(f"population_size must be >= 2, got {self.population_size}")
        if self.generations < 1:
            raise ConfigurationError(f"generations must be >= 1, got {self.generations}")
        for name in ("mutation_rate", "crossover_rate", "elite_fraction"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if self.tournament_size < 1:
            raise ConfigurationError(f"tournament_size must be >= 1, got {self.tournament_size}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")

    @property
    def n_elite(self) -> int:
        return int(self.population_size * self.elite_fraction)


# =============================================================================
# Individuals
# =============================================================================


@dataclass
class Individual:
    """Parameter vector with its cached cost.

    Attributes:
        genes: Parameter values
        fitness: Cost, or None until evaluated
        summary: Figures reported by the cost function with the fitness, if any
    """
    genes: NDArray[np.float64]
    fitness: float | None = None
    summary: Summary | None = None

    @property
    def evaluated(self) -> bool:
        return self.fitness is not None

    def copy(self) -> "Individual":
        return Individual(
            self.genes.copy(),
            self.fitness,
            dict(self.summary) if self.summary is not None else None,
        )

    def set_genes(self, genes: NDArray[np.float64]) -> None:
        """Replace the genes and drop the cached fitness and summary."""
        self.genes = genes
        self.fitness = None
        self.summary = None


@dataclass(frozen=True)
class GAResult:
    """Outcome of a run.

    Attributes:
        best: Lowest-cost individual seen
        history: Best cost per generation
        mean_history: Mean finite cost per generation
        evaluations: Number of cost evaluations
    """
    best: Individual
    history: NDArray[np.float64]
    mean_history: NDArray[np.float64]
    evaluations: int


# =============================================================================
# Genetic Algorithm
# =============================================================================


@beartype
class GeneticAlgorithm:
    """Minimize a cost over a box with a real-coded GA."""

    def __init__(
        self,
        cost: CostFunction,
        bounds: Sequence[tuple[float, float]],
        config: GAConfig | None = None,
        seeds: Sequence[Sequence[float]] | None = None,
    ) -> None:
        """Initialize the optimizer.

        Args:
            cost: Function mapping a gene vector to a scalar cost, or to
                (cost, summary) to keep a summary on the individual
            bounds: (lower, upper) per gene
            config: Algorithm settings
            seeds: Gene vectors placed in the initial population before the
                random fill (clamped to the bounds)
        """
        self.cost = cost
        self.config = config or GAConfig()
        self.lower = np.array([b[0] for b in bounds], dtype=np.float64)
        self.upper = np.array([b[1] for b in bounds], dtype=np.float64)
        if self.lower.size == 0:
            raise ConfigurationError("At least one gene bound is required")
        if np.any(self.upper < self.lower):
            raise ConfigurationError(f"Each bound needs lower <= upper, got {list(bounds)}")
        self.seeds = [np.array(s, dtype=np.float64) for s in (seeds or [])]
        for s in self.seeds:
            if s.shape != self.lower.shape:
                raise ConfigurationError(
                    f"Seed {s} has {s.size} genes, expected {self.lower.size}"
                )
        self.rng = np.random.default_rng(self.config.seed)
        self.evaluations = 0

    @property
    def n_genes(self) -> int:
        return int(self.lower.size)

    def _clip(self, genes: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.clip(genes, self.lower, self.upper)

    def initial_population(self) -> list[Individual]:
        population = [Individual(self._clip(s)) for s in self.seeds[: self.config.population_size]]
        while len(population) < self.config.population_size:
            genes = self.lower + self.rng.random(self.n_genes) * (self.upper - self.lower)
            population.append(Individual(genes))
        return population

    def evaluate(self, population: list[Individual]) -> None:
        """Fill in the cost of every unevaluated individual."""
        pending = [ind for ind in population if not ind.evaluated]
        if not pending:
            return

        genes = [ind.genes for ind in pending]
        if self.config.workers > 1:
            with Pool(processes=self.config.workers) as pool:
                costs = pool.map(self.cost, genes)
        else:
            costs = [self.cost(g) for g in genes]

        for ind, outcome in zip(pending, costs, strict=True):
            if isinstance(outcome, tuple):
                cost, ind.summary = float(outcome[0]), dict(outcome[1])
            else:
                cost = float(outcome)
            # NaN costs would break sorting; rank them last
            ind.fitness = cost if np.isfinite(cost) else np.inf
        self.evaluations += len(pending)

    def select(self, population: list[Individual]) -> Individual:
        """Tournament selection (lowest cost wins)."""
        idx = self.rng.integers(0, len(population), size=self.config.tournament_size)
        return min((population[i] for i in idx), key=lambda ind: ind.fitness)

    def crossover(
        self,
        a: Individual,
        b: Individual,
    ) -> tuple[Individual, Individual]:
        """BLX-alpha blend: children drawn uniformly from the widened parent interval."""
        alpha = self.config.blend_alpha
        lo = np.minimum(a.genes, b.genes)
        span = np.maximum(a.genes, b.genes) - lo
        children = []
        for _ in range(2):
            genes = lo - alpha * span + self.rng.random(self.n_genes) * span * (1.0 + 2.0 * alpha)
            children.append(Individual(self._clip(genes)))
        return children[0], children[1]

    def mutate(self, individual: Individual) -> Individual:
        """Gaussian perturbation of a random subset of genes."""
        mask = self.rng.random(self.n_genes) < self.config.mutation_rate
        if not mask.any():
            return individual
        sigma = self.config.mutation_scale * (self.upper - self.lower)
        genes = individual.genes + mask * self.rng.normal(0.0, 1.0, self.n_genes) * sigma
        child = individual.copy()
        child.set_genes(self._clip(genes))
        return child

    def evolve(self, ranked: list[Individual]) -> list[Individual]:
        """Next generation from a population sorted by cost."""
        cfg = self.config
        population = [ind.copy() for ind in ranked[: cfg.n_elite]]
        while len(population) < cfg.population_size:
            a = self.select(ranked)
            b = self.select(ranked)
            if self.rng.random() < cfg.crossover_rate:
                c1, c2 = self.crossover(a, b)
                population.append(self.mutate(c1))
                if len(population) < cfg.population_size:
                    population.append(self.mutate(c2))
            else:
                population.append(a.copy())
        return population

    def run(self, progress: bool = False) -> GAResult:
        """Run all generations.

        Args:
            progress: Show a progress bar over generations

        Returns:
            GAResult with the best individual and per-generation statistics
        """
        cfg = self.config
        population = self.initial_population()
        best: Individual | None = None
        history: list[float] = []
        mean_history: list[float] = []

        iterator: Any = range(cfg.generations)
        if progress:
            iterator = tqdm(iterator, desc="Evolving", total=cfg.generations)

        for generation in iterator:
            self.evaluate(population)
            population.sort(key=lambda ind: ind.fitness)

            leader = population[0]
            if best is None or leader.fitness < best.fitness:
                best = leader.copy()

            costs = np.array([ind.fitness for ind in population])
            finite = costs[np.isfinite(costs)]
            history.append(float(leader.fitness))
            mean_history.append(float(finite.mean()) if finite.size else np.inf)
            logger.info(
                "Generation %d: best=%.6g genes=%s", generation, leader.fitness, leader.genes
            )
            if progress:
                iterator.set_postfix(best=f"{leader.fitness:.4g}")

            if generation < cfg.generations - 1:
                population = self.evolve(population)

        if best is None:
            raise ConfigurationError("No generations were run")
        logger.info("GA finished after %d evaluations: best=%.6g", self.evaluations, best.fitness)
        return GAResult(
            best=best,
            history=np.array(history),
            mean_history=np.array(mean_history),
            evaluations=self.evaluations,
        )
