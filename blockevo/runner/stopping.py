"""Driver-side stopping rules; the engine itself only runs single generations."""

from __future__ import annotations

from abc import ABC, abstractmethod

from blockevo.evolution.population import Population


class StopCondition(ABC):
    @abstractmethod
    def should_stop(self, population: Population) -> bool:
        pass

    def reset(self) -> None:
        pass

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items() if not k.startswith("_"))
        return f"{type(self).__name__}({fields})"


class TargetFitness(StopCondition):
    """Stop once the head of the population reaches ``threshold``."""

    def __init__(self, threshold: float = 0.0):
        self.threshold = threshold

    def should_stop(self, population: Population) -> bool:
        return population.best.fitness <= self.threshold


class FitnessPlateau(StopCondition):
    """Stop after ``patience`` consecutive generations without head improvement."""

    def __init__(self, patience: int, tolerance: float = 0.0):
        if patience < 1:
            raise ValueError(f"patience must be positive, got {patience}")
        self.patience = patience
        self.tolerance = tolerance
        self._best: float | None = None
        self._stale = 0

    def reset(self) -> None:
        self._best, self._stale = None, 0

    def should_stop(self, population: Population) -> bool:
        head = population.best.fitness
        if self._best is None or head < self._best - self.tolerance:
            self._best, self._stale = head, 0
            return False
        self._stale += 1
        return self._stale >= self.patience


class GenerationBudget(StopCondition):
    """Stop after ``max_generations`` completed generations."""

    def __init__(self, max_generations: int):
        if max_generations < 1:
            raise ValueError(f"max_generations must be positive, got {max_generations}")
        self.max_generations = max_generations

    def should_stop(self, population: Population) -> bool:
        return population.generation >= self.max_generations


class AuxiliaryFound(StopCondition):
    """Stop as soon as any individual carries an auxiliary output."""

    def should_stop(self, population: Population) -> bool:
        return any(individual.auxiliary is not None for individual in population)
