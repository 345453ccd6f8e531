import asyncio
import contextlib
from typing import Sequence

from loguru import logger

from blockevo.evolution.engine import BlockNESEngine
from blockevo.evolution.population import Population
from blockevo.runner.stopping import StopCondition


class EvolutionRunner:
    """Calls ``run_generation`` until any stop condition fires or ``stop()`` is requested."""

    def __init__(
        self, engine: BlockNESEngine, stop_conditions: Sequence[StopCondition] = ()
    ) -> None:
        self._engine = engine
        self._conditions = list(stop_conditions)
        self._task: asyncio.Task | None = None
        self._running = False
        self.history: list[float] = []
        self.population: Population | None = None
        self.stop_reason: str | None = None

    async def run(self, population: Population | None = None) -> Population:
        if not self._conditions:
            logger.warning("[EvolutionRunner] No stop conditions; running until stop()")
        for condition in self._conditions:
            condition.reset()

        if population is None:
            population = self._engine.new_population()
        self._running, self.stop_reason = True, None
        logger.info("[EvolutionRunner] Start | conditions={}", self._conditions)
        try:
            while self._running:
                population = await self._engine.run_generation(population)
                self.population = population
                self.history.append(population.best.fitness)

                fired = next(
                    (c for c in self._conditions if c.should_stop(population)), None
                )
                if fired is not None:
                    self.stop_reason = repr(fired)
                    logger.info(
                        "[EvolutionRunner] Stop: {} at generation {} | head={:.6g}",
                        fired,
                        population.generation,
                        population.best.fitness,
                    )
                    break
            else:
                self.stop_reason = "stop() requested"
        finally:
            self._running = False
        return population

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self.run(), name="blockevo-runner")
        logger.info("[EvolutionRunner] Runner task started")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("[EvolutionRunner] Runner task stopped")

    def is_running(self) -> bool:
        return self._running

    def get_status(self) -> dict[str, object]:
        return {
            "running": self._running,
            "stop_reason": self.stop_reason,
            **self._engine.get_status(),
        }

    @property
    def task(self) -> asyncio.Task | None:
        return self._task
