from __future__ import annotations

import time

from loguru import logger
import numpy as np

from blockevo.evolution.engine.config import EngineConfig
from blockevo.evolution.engine.metrics import EngineMetrics
from blockevo.evolution.partition import PartitionMap
from blockevo.evolution.population import Individual, Population
from blockevo.exceptions import (
    ConfigurationError,
    EvolutionError,
    ShapeMismatchError,
    WorkerTaskError,
)
from blockevo.gaussian.fitter import FactorizationResult, GaussianFitter
from blockevo.linalg.matrix import Matrix
from blockevo.problems.base import FitnessFunction, as_fitness_function
from blockevo.utils.worker_pool import WorkerPool, assign_slots

__all__ = ["BlockNESEngine"]


class BlockNESEngine:
    """
    One generation of the block-factorised NES loop per call:
    - partition the coordinates into ``models`` random blocks,
    - fit a Gaussian per block to the elite vectors (in parallel),
    - sample and score the non-elite tail (in parallel),
    - rank the population ascending by fitness.
    The coordinator owns every random draw that seeds a task, so a fixed
    ``config.seed`` reproduces the run regardless of thread scheduling.
    """

    def __init__(
        self,
        problem: FitnessFunction,
        config: EngineConfig,
        pool: WorkerPool | None = None,
    ):
        self.problem = as_fitness_function(problem)
        self.config = config
        self.rng = np.random.default_rng(config.seed)
        self.fitter = GaussianFitter(config.fit)
        self.dtype = config.fit.numpy_dtype
        self.metrics = EngineMetrics()

        self._pool = pool or WorkerPool(config.max_workers)
        self._owns_pool = pool is None

        logger.info(
            "[BlockNESEngine] Init | width={}, models={}, population={}, cut={}, problem={}",
            config.width,
            config.models,
            config.population_size,
            config.cut,
            type(self.problem).__name__,
        )

    def close(self) -> None:
        if self._owns_pool:
            self._pool.close()

    def __enter__(self) -> BlockNESEngine:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def new_population(self) -> Population:
        """Unscored population; the next generation samples all of it."""
        return Population.empty(self.config.population_size)

    def initial_state(self, width: int, count: int) -> list[np.ndarray]:
        scale = self.config.initial_scale
        return [
            (self.rng.standard_normal(width) * scale).astype(self.dtype)
            for _ in range(count)
        ]

    async def run_generation(
        self,
        population: Population,
        width: int | None = None,
        models: int | None = None,
        cut: int | None = None,
    ) -> Population:
        """Run one generation and return the ranked population."""
        width = width if width is not None else self.config.width
        models = models if models is not None else self.config.models
        cut = cut if cut is not None else self.config.cut
        if not 1 <= models <= width:
            raise ConfigurationError(f"models ({models}) must lie in 1..width ({width})")
        if not 1 <= cut < len(population):
            raise ConfigurationError(
                f"cut ({cut}) must lie in 1..{len(population) - 1} for a population of {len(population)}"
            )

        try:
            return await self._generation(population, width, models, cut)
        except WorkerTaskError as exc:
            if isinstance(exc.cause, ShapeMismatchError):
                raise exc.cause from exc
            raise EvolutionError(
                f"Generation {population.generation} failed: {exc}"
            ) from exc

    async def _generation(
        self, population: Population, width: int, models: int, cut: int
    ) -> Population:
        started = time.perf_counter()
        generation = population.generation
        first = generation == 0

        # Stage 1: sample set source and partition
        state = self.initial_state(width, cut) if first else population.elite_vectors(cut)
        partition = PartitionMap.random(width, models, self.rng)

        # Stage 2: fit one Gaussian per block
        def fit_block(block: int, rng: np.random.Generator) -> FactorizationResult:
            return self.fitter.fit(
                partition.gather(state, block),
                partition.block_size(block),
                rng=rng,
                name=f"generation_{generation}_block_{block}",
            )

        fits: list[FactorizationResult] = await self._pool.map(fit_block, models, self.rng)
        final_losses = [f.final_loss for f in fits if f.final_loss is not None]
        self.metrics.record_fit_metrics(
            fits=len(fits),
            diverged=sum(1 for f in fits if f.diverged),
            mean_loss=float(np.mean(final_losses)) if final_losses else None,
        )
        logger.debug(
            "[BlockNESEngine] Generation {}: fitted {} block(s) of sizes {}",
            generation,
            models,
            partition.block_sizes(),
        )

        # Stage 3: sample and score the regenerated slots
        slots = list(range(len(population))) if first else list(range(cut, len(population)))

        def sample_and_score(_: int, rng: np.random.Generator) -> Individual:
            blocks = [fits[block].sample(rng).data for block in range(models)]
            vector = Matrix.column(partition.scatter(blocks, self.dtype), self.dtype)
            fitness, auxiliary = self.problem(vector.data)
            return Individual(
                vector=vector,
                fitness=float(fitness),
                auxiliary=auxiliary,
                born=generation,
                evaluated=True,
            )

        born = await self._pool.map(sample_and_score, len(slots), self.rng)

        # Stage 4: write back (coordinator only) and rank
        individuals = list(population.individuals)
        assign_slots(individuals, slots, born)
        ranked = Population(individuals, generation + 1).ranked()

        elapsed = time.perf_counter() - started
        self.metrics.record_generation_metrics(len(born), ranked.best.fitness, elapsed)
        logger.info(
            "[BlockNESEngine] Generation {} | head={:.6g} | scored={} | fit_loss={} | {:.3f}s",
            generation,
            ranked.best.fitness,
            len(born),
            self.metrics.last_mean_fit_loss,
            elapsed,
        )
        return ranked

    def get_status(self) -> dict[str, object]:
        return {"rng_seed": self.config.seed, **self.metrics.to_dict()}
