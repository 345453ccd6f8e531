from __future__ import annotations

from blockevo.evolution.engine.config import EngineConfig
from blockevo.evolution.engine.core import BlockNESEngine
from blockevo.evolution.engine.metrics import EngineMetrics
