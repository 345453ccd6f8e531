from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

import numpy as np

Evaluation = tuple[float, Any]


@runtime_checkable
class FitnessFunction(Protocol):
    """Scores one candidate; lower is better.

    Called concurrently from worker threads with a read-only flat vector, so
    implementations must not mutate shared state.
    """

    def __call__(self, vector: np.ndarray) -> Evaluation: ...


class CallableProblem:
    """Adapts a plain callable that returns a bare number or a ``(fitness, aux)`` pair."""

    def __init__(self, fn: Callable[[np.ndarray], Any]):
        self.fn = fn

    def __call__(self, vector: np.ndarray) -> Evaluation:
        outcome = self.fn(vector)
        if isinstance(outcome, tuple):
            fitness, auxiliary = outcome
            return float(fitness), auxiliary
        return float(outcome), None

    def __repr__(self) -> str:
        return f"CallableProblem({getattr(self.fn, '__name__', self.fn)!r})"


def as_fitness_function(fn: Callable[[np.ndarray], Any]) -> FitnessFunction:
    if isinstance(fn, CallableProblem):
        return fn
    return CallableProblem(fn)
