from blockevo.problems.base import (
    CallableProblem,
    Evaluation,
    FitnessFunction,
    as_fitness_function,
)
from blockevo.problems.factoring import SemiprimeFactorProblem, bits_to_int
from blockevo.problems.quadratic import TargetDistance

__all__ = [
    "CallableProblem",
    "Evaluation",
    "FitnessFunction",
    "SemiprimeFactorProblem",
    "TargetDistance",
    "as_fitness_function",
    "bits_to_int",
]
