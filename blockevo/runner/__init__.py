from blockevo.runner.evolution_runner import EvolutionRunner
from blockevo.runner.stopping import (
    AuxiliaryFound,
    FitnessPlateau,
    GenerationBudget,
    StopCondition,
    TargetFitness,
)

__all__ = [
    "AuxiliaryFound",
    "EvolutionRunner",
    "FitnessPlateau",
    "GenerationBudget",
    "StopCondition",
    "TargetFitness",
]
