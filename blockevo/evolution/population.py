from __future__ import annotations

import math
from typing import Any, Iterator

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from blockevo.linalg.matrix import Matrix

__all__ = ["Individual", "Population", "rank_key"]


class Individual(BaseModel):
    """One candidate parameter vector and its score (lower is better)."""

    vector: Matrix | None = None
    fitness: float = math.inf
    auxiliary: Any = None
    born: int = Field(default=0, description="Generation in which the vector was sampled")
    evaluated: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def parameters(self) -> np.ndarray:
        if self.vector is None:
            raise ValueError("Individual has not been sampled yet")
        return self.vector.data


def rank_key(individual: Individual) -> float:
    """Sort key; unscored and NaN fitness rank last."""
    fitness = individual.fitness
    return math.inf if math.isnan(fitness) else fitness


class Population:
    """Fixed-size ordered sequence of individuals.

    ``generation`` counts completed generations; a population at generation 0
    has never been scored and is sampled in full by the next generation.
    """

    def __init__(self, individuals: list[Individual], generation: int = 0):
        self.individuals = list(individuals)
        self.generation = generation

    @classmethod
    def empty(cls, size: int) -> Population:
        return cls([Individual() for _ in range(size)])

    def __len__(self) -> int:
        return len(self.individuals)

    def __iter__(self) -> Iterator[Individual]:
        return iter(self.individuals)

    def __getitem__(self, index: int) -> Individual:
        return self.individuals[index]

    def __repr__(self) -> str:
        best = self.individuals[0].fitness if self.individuals else None
        return f"Population(size={len(self)}, generation={self.generation}, head={best})"

    @property
    def best(self) -> Individual:
        return self.individuals[0]

    def ranked(self) -> Population:
        """Stable ascending sort by fitness; ties keep their relative order."""
        return Population(sorted(self.individuals, key=rank_key), self.generation)

    def fitnesses(self) -> np.ndarray:
        return np.array([individual.fitness for individual in self.individuals])

    def elite_vectors(self, cut: int) -> list[np.ndarray]:
        """Copies of the first ``cut`` parameter vectors."""
        return [np.array(individual.parameters) for individual in self.individuals[:cut]]
