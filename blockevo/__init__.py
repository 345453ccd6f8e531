"""Block-factorised natural evolution strategies."""

from blockevo.evolution import BlockNESEngine, EngineConfig, Individual, PartitionMap, Population
from blockevo.gaussian import FactorizationResult, FitConfig, GaussianFitter, fit
from blockevo.linalg import Matrix

__all__ = [
    "BlockNESEngine",
    "EngineConfig",
    "FactorizationResult",
    "FitConfig",
    "GaussianFitter",
    "Individual",
    "Matrix",
    "PartitionMap",
    "Population",
    "fit",
]
