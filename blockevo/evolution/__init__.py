from blockevo.evolution.engine import BlockNESEngine, EngineConfig, EngineMetrics
from blockevo.evolution.partition import PartitionMap
from blockevo.evolution.population import Individual, Population

__all__ = [
    "BlockNESEngine",
    "EngineConfig",
    "EngineMetrics",
    "Individual",
    "PartitionMap",
    "Population",
]
